"""Factory functions that build an ErrorDetail and raise the matching error.

All factories share the signature ``(service, operation, code, message,
correlation_id, **details)`` and never return.
"""

from __future__ import annotations

from typing import Any, NoReturn
from uuid import UUID

from services.libs.login_service_libs.error_handling.error_detail import ErrorDetail
from services.libs.login_service_libs.error_handling.login_flow_error import (
    ConflictError,
    InvalidRequestError,
    LoginFlowError,
    PolicyError,
    TokenError,
    UpstreamError,
    ValidationError,
)


def _raise(
    error_cls: type[LoginFlowError],
    service: str,
    operation: str,
    code: str,
    message: str,
    correlation_id: UUID,
    details: dict[str, Any],
) -> NoReturn:
    detail = ErrorDetail(
        error_code=str(getattr(code, "value", code)),
        category=error_cls.category,
        message=message,
        correlation_id=correlation_id,
        service=service,
        operation=operation,
        details=details,
    )
    raise error_cls(detail)


def raise_validation_error(
    service: str,
    operation: str,
    code: str,
    message: str,
    correlation_id: UUID,
    **additional_context: Any,
) -> NoReturn:
    _raise(
        ValidationError, service, operation, code, message, correlation_id, additional_context
    )


def raise_conflict_error(
    service: str,
    operation: str,
    code: str,
    message: str,
    correlation_id: UUID,
    **additional_context: Any,
) -> NoReturn:
    _raise(ConflictError, service, operation, code, message, correlation_id, additional_context)


def raise_policy_error(
    service: str,
    operation: str,
    code: str,
    message: str,
    correlation_id: UUID,
    **additional_context: Any,
) -> NoReturn:
    _raise(PolicyError, service, operation, code, message, correlation_id, additional_context)


def raise_token_error(
    service: str,
    operation: str,
    code: str,
    message: str,
    correlation_id: UUID,
    **additional_context: Any,
) -> NoReturn:
    _raise(TokenError, service, operation, code, message, correlation_id, additional_context)


def raise_upstream_error(
    service: str,
    operation: str,
    code: str,
    message: str,
    correlation_id: UUID,
    external_service: str,
    **additional_context: Any,
) -> NoReturn:
    """Raise an UpstreamError.

    ``code`` is the user-facing code the failure maps to (e.g. ``captcha``), so
    the visitor sees an actionable message rather than an internal failure.
    """
    _raise(
        UpstreamError,
        service,
        operation,
        code,
        message,
        correlation_id,
        {"external_service": external_service, **additional_context},
    )


def raise_invalid_request(
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID,
    **additional_context: Any,
) -> NoReturn:
    _raise(
        InvalidRequestError,
        service,
        operation,
        "invalid_request",
        message,
        correlation_id,
        additional_context,
    )
