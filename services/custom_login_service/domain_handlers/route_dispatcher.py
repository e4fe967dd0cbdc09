"""Route dispatcher for the login flow.

One instance per request. ``dispatch`` moves from IDLE to DISPATCHED and ends
in exactly one terminal state:

- REDIRECTING: GET decided by the redirect policy, or any form result
- RENDERING: page GET that should show its form
- INVALID_REQUEST: unsupported method/route combination or malformed form
"""

from __future__ import annotations

from typing import Protocol

from services.libs.login_service_libs.error_handling import InvalidRequestError
from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.domain_handlers.login_handler import LoginHandler
from services.custom_login_service.domain_handlers.page_attributes import PageAttributes
from services.custom_login_service.domain_handlers.password_lost_handler import (
    PasswordLostHandler,
)
from services.custom_login_service.domain_handlers.password_reset_handler import (
    PasswordResetHandler,
)
from services.custom_login_service.domain_handlers.redirect_policy import RedirectPolicy
from services.custom_login_service.domain_handlers.registration_handler import (
    RegistrationHandler,
)
from services.custom_login_service.flow_enums import (
    DispatchState,
    EntryPoint,
    ErrorCode,
    HttpMethod,
    Route,
)
from services.custom_login_service.flow_models import (
    DispatchOutcome,
    FormResult,
    FormSuccess,
    InvalidRequest,
    Redirecting,
    Rendering,
    RequestContext,
)
from services.custom_login_service.metrics import DISPATCH_OUTCOMES

logger = create_service_logger("custom_login_service.domain_handlers.route_dispatcher")


class _FormHandler(Protocol):
    async def handle(self, ctx: RequestContext) -> FormResult: ...


def _terminal_state(outcome: DispatchOutcome) -> DispatchState:
    if isinstance(outcome, Redirecting):
        return DispatchState.REDIRECTING
    if isinstance(outcome, Rendering):
        return DispatchState.RENDERING
    return DispatchState.INVALID_REQUEST


class RouteDispatcher:
    def __init__(
        self,
        redirect_policy: RedirectPolicy,
        page_attributes: PageAttributes,
        login_handler: LoginHandler,
        registration_handler: RegistrationHandler,
        password_lost_handler: PasswordLostHandler,
        password_reset_handler: PasswordResetHandler,
    ):
        self._redirect_policy = redirect_policy
        self._page_attributes = page_attributes
        self._password_reset_handler = password_reset_handler
        self._form_handlers: dict[Route, _FormHandler] = {
            Route.LOGIN: login_handler,
            Route.REGISTER: registration_handler,
            Route.LOST_PASSWORD: password_lost_handler,
            Route.RESET_PASSWORD: password_reset_handler,
        }
        self.state = DispatchState.IDLE

    async def dispatch(self, ctx: RequestContext) -> DispatchOutcome:
        if self.state != DispatchState.IDLE:
            raise RuntimeError(f"Dispatcher already used (state={self.state.value})")
        self.state = DispatchState.DISPATCHED

        if ctx.method == HttpMethod.GET:
            outcome = await self._dispatch_get(ctx)
        elif ctx.method == HttpMethod.POST:
            outcome = await self._dispatch_post(ctx)
        else:
            outcome = InvalidRequest()

        self.state = _terminal_state(outcome)
        DISPATCH_OUTCOMES.labels(
            route=ctx.route.value, method=ctx.method.value, outcome=self.state.value
        ).inc()
        logger.debug(
            "Request dispatched",
            extra={
                "route": ctx.route.value,
                "method": ctx.method.value,
                "entry_point": ctx.entry_point.value,
                "state": self.state.value,
                "correlation_id": str(ctx.correlation_id),
            },
        )
        return outcome

    async def _dispatch_get(self, ctx: RequestContext) -> DispatchOutcome:
        if ctx.route == Route.LOGOUT:
            return Redirecting(self._redirect_policy.logout_destination(), sign_out=True)
        if ctx.route == Route.RESET_PASSWORD:
            return await self._dispatch_reset_get(ctx)

        location = self._redirect_policy.decide(ctx)
        if location is not None:
            return Redirecting(location)
        return self._render(ctx)

    async def _dispatch_reset_get(self, ctx: RequestContext) -> DispatchOutcome:
        login = ctx.query.get("login")
        key = ctx.query.get("key")
        outcome = await self._password_reset_handler.check_token(login, key, ctx.correlation_id)
        if isinstance(outcome, ErrorCode):
            return Redirecting(self._redirect_policy.token_failure_destination(outcome))
        if ctx.entry_point == EntryPoint.NATIVE:
            return Redirecting(self._redirect_policy.reset_form_url(login or "", key or ""))
        return self._render(ctx)

    def _render(self, ctx: RequestContext) -> DispatchOutcome:
        template = self._page_attributes.template_for(ctx.route)
        if template is None or ctx.entry_point != EntryPoint.PAGE:
            return InvalidRequest()
        return Rendering(template, self._page_attributes.build(ctx))

    async def _dispatch_post(self, ctx: RequestContext) -> DispatchOutcome:
        handler = self._form_handlers.get(ctx.route)
        if handler is None:
            return InvalidRequest()

        try:
            result = await handler.handle(ctx)
        except InvalidRequestError as e:
            logger.warning(
                f"Invalid form submission: {e.error_detail.message}",
                extra={"route": ctx.route.value, "correlation_id": e.correlation_id},
            )
            return InvalidRequest(e.error_detail.message)

        if isinstance(result, FormSuccess):
            return Redirecting(result.redirect_url, sign_in=result.signed_in)
        return Redirecting(self._redirect_policy.failure_destination(ctx, result))
