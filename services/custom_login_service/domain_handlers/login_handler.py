"""Login domain handler for the custom login flow.

Credential checking is delegated to the identity store; this handler only
decides where the visitor goes next.
"""

from __future__ import annotations

from services.libs.login_service_libs.error_handling import (
    InvalidRequestError,
    LoginFlowError,
    UpstreamError,
    raise_validation_error,
)
from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.api.schemas import LoginForm
from services.custom_login_service.config import Settings
from services.custom_login_service.domain_handlers.form_results import (
    failure_from_error,
    record_result,
)
from services.custom_login_service.domain_handlers.redirect_policy import RedirectPolicy
from services.custom_login_service.error_catalog import message_for
from services.custom_login_service.flow_enums import ErrorCode, Route
from services.custom_login_service.flow_models import (
    FormFailure,
    FormResult,
    FormSuccess,
    Identity,
    RequestContext,
)
from services.custom_login_service.protocols import IdentityServiceProtocol

logger = create_service_logger("custom_login_service.domain_handlers.login")


class LoginHandler:
    def __init__(
        self,
        identity_service: IdentityServiceProtocol,
        redirect_policy: RedirectPolicy,
        settings: Settings,
    ):
        self._identity_service = identity_service
        self._redirect_policy = redirect_policy
        self._settings = settings

    async def handle(self, ctx: RequestContext) -> FormResult:
        form = LoginForm.model_validate(dict(ctx.form))
        try:
            identity = await self._authenticate(form, ctx)
        except InvalidRequestError:
            raise
        except UpstreamError as e:
            logger.warning(
                f"Login could not reach the identity store: {e.error_detail.message}",
                extra={"correlation_id": e.correlation_id, "error_code": e.error_code},
            )
            return record_result(Route.LOGIN, FormFailure((ErrorCode.UNAVAILABLE,)))
        except LoginFlowError as e:
            logger.info(
                "Login rejected",
                extra={"correlation_id": e.correlation_id, "error_code": e.error_code},
            )
            return record_result(Route.LOGIN, failure_from_error(e, ErrorCode.INVALID_USERNAME))

        destination = self._redirect_policy.logged_in_destination(
            identity, form.redirect_to or ctx.redirect_to
        )
        logger.info(
            "Login succeeded",
            extra={
                "identity_id": identity.id,
                "role": identity.role.value,
                "correlation_id": str(ctx.correlation_id),
            },
        )
        return record_result(Route.LOGIN, FormSuccess(destination, signed_in=identity))

    async def _authenticate(self, form: LoginForm, ctx: RequestContext) -> Identity:
        outcome = await self._identity_service.authenticate(form.log.strip(), form.pwd)
        if isinstance(outcome, Identity):
            return outcome

        codes = outcome or [ErrorCode.INVALID_USERNAME]
        raise_validation_error(
            service=self._settings.SERVICE_NAME,
            operation="login",
            code=codes[0],
            message=message_for(codes[0]),
            correlation_id=ctx.correlation_id,
            error_codes=[code.value for code in codes],
        )
