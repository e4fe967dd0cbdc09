"""Entry point the API layer calls for every intercepted auth request."""

from __future__ import annotations

from typing import Any

from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.domain_handlers.route_dispatcher import RouteDispatcher
from services.custom_login_service.flow_models import (
    DispatchOutcome,
    Rendering,
    RequestContext,
)
from services.custom_login_service.protocols import PresentationProtocol

logger = create_service_logger("custom_login_service.flow_orchestrator")


class FlowOrchestrator:
    """Runs the dispatcher for one request and hands rendered pages to presentation."""

    def __init__(self, dispatcher: RouteDispatcher, presentation: PresentationProtocol):
        self._dispatcher = dispatcher
        self._presentation = presentation

    async def handle(self, ctx: RequestContext) -> DispatchOutcome:
        return await self._dispatcher.dispatch(ctx)

    def present(self, rendering: Rendering) -> Any:
        logger.debug("Rendering page", extra={"template": rendering.template})
        return self._presentation.render(rendering.template, dict(rendering.attributes))
