"""Request utility functions for the custom login API routes.

Provides the per-request plumbing shared by the native and page routes:
- Correlation ID extraction and generation
- Client IP extraction
- Session identity lookup
- RequestContext construction
"""

from __future__ import annotations

import uuid
from uuid import UUID

from quart import request, session

from services.libs.login_service_libs.error_handling import UpstreamError
from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.flow_enums import EntryPoint, HttpMethod, Route
from services.custom_login_service.flow_models import Identity, RequestContext
from services.custom_login_service.protocols import IdentityServiceProtocol

logger = create_service_logger("custom_login_service.api.request_utils")

SESSION_IDENTITY_KEY = "identity_id"


def extract_correlation_id() -> UUID:
    """Extract correlation ID from request headers or generate new one."""
    correlation_header = request.headers.get("X-Correlation-ID")
    if correlation_header:
        try:
            return UUID(correlation_header)
        except ValueError:
            logger.warning(
                f"Invalid correlation ID format in header: {correlation_header}, generating new one"
            )
    return uuid.uuid4()


def extract_client_ip() -> str | None:
    """Client IP, taking the first X-Forwarded-For hop when behind a proxy."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.remote_addr


async def current_identity(
    identity_service: IdentityServiceProtocol, correlation_id: UUID
) -> Identity | None:
    """Resolve the signed-in identity from the session cookie.

    A stale identity id is dropped from the session. An unreachable identity
    store makes the visitor anonymous for this request.
    """
    identity_id = session.get(SESSION_IDENTITY_KEY)
    if not identity_id:
        return None
    try:
        identity = await identity_service.get_identity(str(identity_id))
    except UpstreamError as e:
        logger.warning(
            f"Could not resolve session identity: {e.error_detail.message}",
            extra={"correlation_id": str(correlation_id)},
        )
        return None
    if identity is None:
        session.pop(SESSION_IDENTITY_KEY, None)
    return identity


async def build_request_context(
    route: Route,
    entry_point: EntryPoint,
    identity_service: IdentityServiceProtocol,
    correlation_id: UUID,
) -> RequestContext:
    method = HttpMethod(request.method)
    form: dict[str, str] = {}
    if method == HttpMethod.POST:
        form = (await request.form).to_dict()

    return RequestContext(
        method=method,
        route=route,
        entry_point=entry_point,
        query=request.args.to_dict(),
        form=form,
        identity=await current_identity(identity_service, correlation_id),
        remote_addr=extract_client_ip(),
        correlation_id=correlation_id,
    )
