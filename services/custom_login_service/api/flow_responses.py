"""Runs the login flow for a route and turns its outcome into a Quart response."""

from __future__ import annotations

from quart import Response, jsonify, redirect, request, session

from services.libs.login_service_libs.error_handling import LoginFlowError, UpstreamError
from services.libs.login_service_libs.logging_utils import (
    bind_request_context,
    create_service_logger,
)

from services.custom_login_service.api.request_utils import (
    SESSION_IDENTITY_KEY,
    build_request_context,
    extract_correlation_id,
)
from services.custom_login_service.flow_enums import EntryPoint, Route
from services.custom_login_service.flow_models import (
    DispatchOutcome,
    Redirecting,
    Rendering,
)
from services.custom_login_service.flow_orchestrator import FlowOrchestrator
from services.custom_login_service.protocols import IdentityServiceProtocol

logger = create_service_logger("custom_login_service.api.flow_responses")


def to_response(
    outcome: DispatchOutcome, orchestrator: FlowOrchestrator
) -> Response | tuple[Response, int]:
    if isinstance(outcome, Redirecting):
        if outcome.sign_out:
            session.clear()
        if outcome.sign_in is not None:
            session.clear()
            session[SESSION_IDENTITY_KEY] = outcome.sign_in.id
        return redirect(outcome.location)
    if isinstance(outcome, Rendering):
        return jsonify(orchestrator.present(outcome))
    return jsonify({"error": outcome.message}), 400


async def run_flow(
    route: Route,
    entry_point: EntryPoint,
    orchestrator: FlowOrchestrator,
    identity_service: IdentityServiceProtocol,
) -> Response | tuple[Response, int]:
    correlation_id = extract_correlation_id()
    bind_request_context(str(correlation_id), route.value, request.method)
    try:
        ctx = await build_request_context(route, entry_point, identity_service, correlation_id)
        outcome = await orchestrator.handle(ctx)
        return to_response(outcome, orchestrator)

    except LoginFlowError as e:
        logger.warning(
            f"Login flow error: {e.error_detail.message}",
            extra={
                "correlation_id": e.correlation_id,
                "error_code": e.error_code,
                "operation": e.operation,
            },
        )
        status_code = 503 if isinstance(e, UpstreamError) else 400
        return jsonify({"error": e.error_detail.model_dump(mode="json")}), status_code

    except Exception as e:
        logger.error(
            f"Unexpected error handling {route.value}: {e}",
            exc_info=True,
            extra={"correlation_id": str(correlation_id)},
        )
        return jsonify({"error": "Internal server error"}), 500
