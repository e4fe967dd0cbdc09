"""Password reset domain handler for the custom login flow.

Encapsulates the reset form submission:
- Reset key check (login + key) against the identity store
- Password confirmation and emptiness checks
- Password commit, only after every check has passed

Reset keys are opaque: they are passed through to the identity store and
never inspected here.
"""

from __future__ import annotations

from uuid import UUID

from services.libs.login_service_libs.error_handling import (
    InvalidRequestError,
    LoginFlowError,
    UpstreamError,
    raise_invalid_request,
    raise_token_error,
    raise_validation_error,
)
from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.api.schemas import ResetPasswordForm
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
    Identity,
    RequestContext,
    ResetToken,
)
from services.custom_login_service.protocols import IdentityServiceProtocol

logger = create_service_logger("custom_login_service.domain_handlers.password_reset")


class PasswordResetHandler:
    def __init__(
        self,
        identity_service: IdentityServiceProtocol,
        redirect_policy: RedirectPolicy,
        settings: Settings,
    ):
        self._identity_service = identity_service
        self._redirect_policy = redirect_policy
        self._settings = settings

    async def check_token(
        self, login: str | None, key: str | None, correlation_id: UUID
    ) -> Identity | ErrorCode:
        """Validate a reset key without consuming it.

        Returns the identity the key belongs to, or ``expiredkey``/``invalidkey``.
        An unreachable identity store counts as ``invalidkey``.
        """
        if not login or not key:
            return ErrorCode.INVALIDKEY
        try:
            outcome = await self._identity_service.validate_reset_token(ResetToken(login, key))
        except UpstreamError as e:
            logger.warning(
                f"Reset key check failed upstream: {e.error_detail.message}",
                extra={"correlation_id": str(correlation_id)},
            )
            return ErrorCode.INVALIDKEY

        if isinstance(outcome, ErrorCode):
            logger.info(
                "Reset key rejected",
                extra={"correlation_id": str(correlation_id), "error_code": outcome.value},
            )
        return outcome

    async def handle(self, ctx: RequestContext) -> FormResult:
        """Set a new password from the reset form.

        Raises:
            InvalidRequestError: the form carries no ``pass1`` field at all
        """
        form = ResetPasswordForm.model_validate(dict(ctx.form))
        try:
            identity = await self._validate(form, ctx)
        except InvalidRequestError:
            raise
        except LoginFlowError as e:
            return record_result(
                Route.RESET_PASSWORD, failure_from_error(e, ErrorCode.INVALIDKEY)
            )

        try:
            await self._identity_service.commit_new_password(identity, form.pass1 or "")
        except UpstreamError as e:
            # The key is still unused, so the visitor can retry from the same form
            logger.warning(
                f"Password commit could not reach the identity store: {e.error_detail.message}",
                extra={"correlation_id": e.correlation_id, "identity_id": identity.id},
            )
            return record_result(Route.RESET_PASSWORD, FormFailure((ErrorCode.UNAVAILABLE,)))

        logger.info(
            "Password reset completed successfully",
            extra={"identity_id": identity.id, "correlation_id": str(ctx.correlation_id)},
        )
        destination = add_query_args(
            self._redirect_policy.page_url(Route.LOGIN), password="changed"
        )
        return record_result(Route.RESET_PASSWORD, FormSuccess(destination))

    async def _validate(self, form: ResetPasswordForm, ctx: RequestContext) -> Identity:
        outcome = await self.check_token(form.rp_login, form.rp_key, ctx.correlation_id)
        if isinstance(outcome, ErrorCode):
            raise_token_error(
                service=self._settings.SERVICE_NAME,
                operation="reset_password",
                code=outcome,
                message=message_for(outcome),
                correlation_id=ctx.correlation_id,
            )

        if form.pass1 is None:
            raise_invalid_request(
                service=self._settings.SERVICE_NAME,
                operation="reset_password",
                message="Invalid request.",
                correlation_id=ctx.correlation_id,
            )

        if form.pass1 != form.pass2:
            raise_validation_error(
                service=self._settings.SERVICE_NAME,
                operation="reset_password",
                code=ErrorCode.PASSWORD_RESET_MISMATCH,
                message=message_for(ErrorCode.PASSWORD_RESET_MISMATCH),
                correlation_id=ctx.correlation_id,
            )

        if not form.pass1:
            raise_validation_error(
                service=self._settings.SERVICE_NAME,
                operation="reset_password",
                code=ErrorCode.PASSWORD_RESET_EMPTY,
                message=message_for(ErrorCode.PASSWORD_RESET_EMPTY),
                correlation_id=ctx.correlation_id,
            )

        return outcome
