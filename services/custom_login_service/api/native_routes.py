"""Host-native auth endpoint (``/auth/<action>`` and ``/auth?action=...``).

Native GETs are forwarded to the matching custom page; native POSTs run the
same form handlers as the custom pages.
"""

from __future__ import annotations

from dishka import FromDishka
from quart import Blueprint, Response, jsonify, request
from quart_dishka import inject

from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.api.flow_responses import run_flow
from services.custom_login_service.config import settings
from services.custom_login_service.flow_enums import EntryPoint, Route
from services.custom_login_service.flow_orchestrator import FlowOrchestrator
from services.custom_login_service.protocols import IdentityServiceProtocol

bp = Blueprint("native_auth", __name__, url_prefix=settings.NATIVE_AUTH_PATH)
logger = create_service_logger("custom_login_service.api.native_routes")


async def _dispatch_action(
    action: str,
    orchestrator: FlowOrchestrator,
    identity_service: IdentityServiceProtocol,
) -> Response | tuple[Response, int]:
    route = Route.from_action(action)
    if route is None or route == Route.ACCOUNT:
        logger.info("Unknown native auth action", extra={"action": action})
        return jsonify({"error": f"Unknown action: {action}"}), 404
    return await run_flow(route, EntryPoint.NATIVE, orchestrator, identity_service)


@bp.route("", methods=["GET", "POST"])
@inject
async def native_default(
    orchestrator: FromDishka[FlowOrchestrator],
    identity_service: FromDishka[IdentityServiceProtocol],
) -> Response | tuple[Response, int]:
    """Native endpoint addressed with ``?action=``; no action means login."""
    action = request.args.get("action") or Route.LOGIN.value
    return await _dispatch_action(action, orchestrator, identity_service)


@bp.route("/<action>", methods=["GET", "POST"])
@inject
async def native_action(
    action: str,
    orchestrator: FromDishka[FlowOrchestrator],
    identity_service: FromDishka[IdentityServiceProtocol],
) -> Response | tuple[Response, int]:
    return await _dispatch_action(action, orchestrator, identity_service)
