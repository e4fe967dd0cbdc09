"""Lost-password domain handler for the custom login flow.

Asks the identity store to issue a reset key, then emails the custom reset
message. The reset link targets the native reset action, which forwards the
visitor to the custom reset page after checking the key.
"""

from __future__ import annotations

from services.libs.login_service_libs.error_handling import (
    InvalidRequestError,
    LoginFlowError,
    UpstreamError,
    raise_validation_error,
)
from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.api.schemas import LostPasswordForm
from services.custom_login_service.config import Settings
from services.custom_login_service.domain_handlers.form_results import (
    failure_from_error,
    record_result,
)
from services.custom_login_service.domain_handlers.redirect_policy import (
    RedirectPolicy,
    add_query_args,
)
from services.custom_login_service.error_catalog import message_for
from services.custom_login_service.flow_enums import ErrorCode, Route
from services.custom_login_service.flow_models import (
    FormFailure,
    FormResult,
    FormSuccess,
    RequestContext,
    ResetToken,
)
from services.custom_login_service.notification_templates import (
    PASSWORD_RESET_SUBJECT,
    build_password_reset_message,
)
from services.custom_login_service.protocols import IdentityServiceProtocol

logger = create_service_logger("custom_login_service.domain_handlers.password_lost")


class PasswordLostHandler:
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
        """Initiate a password reset for the submitted login or email address.

        Returns:
            FormSuccess to the login page with ``checkemail=confirm`` (or to a
            same-site ``redirect_to``), or FormFailure with the identity
            store's error codes.
        """
        form = LostPasswordForm.model_validate(dict(ctx.form))
        try:
            token = await self._request_reset(form, ctx)
        except InvalidRequestError:
            raise
        except UpstreamError as e:
            logger.warning(
                f"Password reset request could not reach the identity store: "
                f"{e.error_detail.message}",
                extra={"correlation_id": e.correlation_id, "error_code": e.error_code},
            )
            return record_result(Route.LOST_PASSWORD, FormFailure((ErrorCode.UNAVAILABLE,)))
        except LoginFlowError as e:
            logger.info(
                "Password reset request rejected",
                extra={"correlation_id": e.correlation_id, "error_code": e.error_code},
            )
            return record_result(
                Route.LOST_PASSWORD, failure_from_error(e, ErrorCode.INVALIDCOMBO)
            )

        await self._notify(token, ctx)

        destination = self._redirect_policy.validate_redirect(form.redirect_to, "")
        if not destination:
            destination = add_query_args(
                self._redirect_policy.page_url(Route.LOGIN), checkemail="confirm"
            )
        return record_result(Route.LOST_PASSWORD, FormSuccess(destination))

    async def _request_reset(self, form: LostPasswordForm, ctx: RequestContext) -> ResetToken:
        outcome = await self._identity_service.initiate_password_reset(form.user_login)
        if isinstance(outcome, ResetToken):
            return outcome

        codes = outcome or [ErrorCode.INVALIDCOMBO]
        raise_validation_error(
            service=self._settings.SERVICE_NAME,
            operation="lost_password",
            code=codes[0],
            message=message_for(codes[0]),
            correlation_id=ctx.correlation_id,
            error_codes=[code.value for code in codes],
        )

    async def _notify(self, token: ResetToken, ctx: RequestContext) -> None:
        body = build_password_reset_message(
            token.key, token.login, self._settings.native_url(Route.RESET_PASSWORD.value)
        )
        try:
            await self._identity_service.send_notification(
                token.login, PASSWORD_RESET_SUBJECT, body
            )
        except Exception as e:
            logger.warning(
                "Failed to send password reset email",
                extra={"correlation_id": str(ctx.correlation_id), "error": str(e)},
                exc_info=True,
            )
            return

        logger.info(
            "Password reset email sent",
            extra={"correlation_id": str(ctx.correlation_id)},
        )
