"""Registration domain handler for the custom login flow.

Encapsulates new-user signup:
- Registration-open and CAPTCHA policy checks
- Email syntax and uniqueness validation
- Generated password (delivered by email, never shown on screen)
- Identity creation and the new-user notification

No identity is created until every check has passed.
"""

from __future__ import annotations

import secrets
import string

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from services.libs.login_service_libs.error_handling import (
    InvalidRequestError,
    LoginFlowError,
    UpstreamError,
    raise_conflict_error,
    raise_policy_error,
    raise_upstream_error,
    raise_validation_error,
)
from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.api.schemas import RegisterForm
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
from services.custom_login_service.flow_hooks import FlowHooks
from services.custom_login_service.flow_models import (
    FormFailure,
    FormResult,
    FormSuccess,
    RequestContext,
)
from services.custom_login_service.notification_templates import (
    NEW_USER_SUBJECT,
    build_new_user_message,
)
from services.custom_login_service.protocols import (
    CaptchaVerifierProtocol,
    IdentityServiceProtocol,
)

logger = create_service_logger("custom_login_service.domain_handlers.registration")

_EMAIL_ADAPTER = TypeAdapter(EmailStr)
_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def is_valid_email(value: str) -> bool:
    try:
        _EMAIL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def generate_password(length: int) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


class RegistrationHandler:
    """Handles POSTs to the registration route.

    Checks run in a fixed order and stop at the first failure:
    closed, captcha, email, email_exists.
    """

    def __init__(
        self,
        identity_service: IdentityServiceProtocol,
        captcha_verifier: CaptchaVerifierProtocol,
        redirect_policy: RedirectPolicy,
        hooks: FlowHooks,
        settings: Settings,
    ):
        self._identity_service = identity_service
        self._captcha_verifier = captcha_verifier
        self._redirect_policy = redirect_policy
        self._hooks = hooks
        self._settings = settings

    async def handle(self, ctx: RequestContext) -> FormResult:
        form = RegisterForm.model_validate(dict(ctx.form))
        try:
            await self._validate(form, ctx)
            result = await self._register(form, ctx)
        except InvalidRequestError:
            raise
        except UpstreamError as e:
            logger.warning(
                f"Registration blocked by unavailable collaborator: {e.error_detail.message}",
                extra={
                    "correlation_id": e.correlation_id,
                    "error_code": e.error_code,
                    "external_service": e.details.get("external_service"),
                },
            )
            code = ErrorCode.CAPTCHA if e.error_code == ErrorCode.CAPTCHA else ErrorCode.CLOSED
            result = FormFailure((code,))
        except LoginFlowError as e:
            logger.info(
                "Registration rejected",
                extra={
                    "correlation_id": e.correlation_id,
                    "error_code": e.error_code,
                    "category": e.error_detail.category,
                },
            )
            result = failure_from_error(e, ErrorCode.CLOSED)
        return record_result(Route.REGISTER, result)

    async def _validate(self, form: RegisterForm, ctx: RequestContext) -> None:
        if not self._settings.USERS_CAN_REGISTER:
            raise_policy_error(
                service=self._settings.SERVICE_NAME,
                operation="register",
                code=ErrorCode.CLOSED,
                message=message_for(ErrorCode.CLOSED),
                correlation_id=ctx.correlation_id,
            )

        try:
            captcha_ok = await self._captcha_verifier.verify(form.captcha_response, ctx.remote_addr)
        except Exception as e:
            raise_upstream_error(
                service=self._settings.SERVICE_NAME,
                operation="register",
                code=ErrorCode.CAPTCHA,
                message="CAPTCHA verification could not be completed",
                correlation_id=ctx.correlation_id,
                external_service="captcha",
                error=str(e),
            )
        if not captcha_ok:
            raise_policy_error(
                service=self._settings.SERVICE_NAME,
                operation="register",
                code=ErrorCode.CAPTCHA,
                message=message_for(ErrorCode.CAPTCHA),
                correlation_id=ctx.correlation_id,
            )

        if not is_valid_email(form.email):
            raise_validation_error(
                service=self._settings.SERVICE_NAME,
                operation="register",
                code=ErrorCode.EMAIL,
                message=message_for(ErrorCode.EMAIL),
                correlation_id=ctx.correlation_id,
            )

        # Email address is used as both login and email
        if await self._identity_service.identifier_exists(form.email):
            raise_conflict_error(
                service=self._settings.SERVICE_NAME,
                operation="register",
                code=ErrorCode.EMAIL_EXISTS,
                message=message_for(ErrorCode.EMAIL_EXISTS),
                correlation_id=ctx.correlation_id,
                email=form.email,
            )

    async def _register(self, form: RegisterForm, ctx: RequestContext) -> FormSuccess:
        password = generate_password(self._settings.GENERATED_PASSWORD_LENGTH)
        role = self._hooks.new_user_role(self._settings.NEW_USER_DEFAULT_ROLE)

        identity = await self._identity_service.create_identity(
            login=form.email,
            email=form.email,
            password=password,
            role=role,
            first_name=form.first_name,
            last_name=form.last_name,
        )

        try:
            await self._identity_service.send_notification(
                identity.email,
                NEW_USER_SUBJECT,
                build_new_user_message(
                    identity.login, password, self._redirect_policy.page_url(Route.LOGIN)
                ),
            )
        except Exception as e:
            # The account exists either way; the visitor can use password reset.
            logger.warning(
                "Failed to send new user notification",
                extra={
                    "identity_id": identity.id,
                    "correlation_id": str(ctx.correlation_id),
                    "error": str(e),
                },
                exc_info=True,
            )

        logger.info(
            "User registered successfully",
            extra={
                "identity_id": identity.id,
                "role": role.value,
                "correlation_id": str(ctx.correlation_id),
            },
        )

        login_url = self._redirect_policy.page_url(Route.LOGIN)
        return FormSuccess(add_query_args(login_url, registered=form.email))
