"""
Exception hierarchy for the login flow.

Every error wraps an ``ErrorDetail``. Subclasses name the error family:

- ValidationError: bad user input (malformed email, mismatched/empty password)
- ConflictError: identifier already exists
- PolicyError: registration closed, CAPTCHA failed
- TokenError: invalid or expired reset token
- UpstreamError: a collaborator (identity store, CAPTCHA service) was unreachable
- InvalidRequestError: the request is missing fields no form would omit
"""

from __future__ import annotations

from typing import Any

from services.libs.login_service_libs.error_handling.error_detail import ErrorDetail


class LoginFlowError(Exception):
    """Base exception carrying a structured ErrorDetail."""

    category = "login_flow"

    def __init__(self, error_detail: ErrorDetail) -> None:
        super().__init__(error_detail.message)
        self.error_detail = error_detail

    @property
    def error_code(self) -> str:
        return self.error_detail.error_code

    @property
    def correlation_id(self) -> str:
        return str(self.error_detail.correlation_id)

    @property
    def service(self) -> str:
        return self.error_detail.service

    @property
    def operation(self) -> str:
        return self.error_detail.operation

    @property
    def details(self) -> dict[str, Any]:
        return self.error_detail.details

    def __str__(self) -> str:
        return f"[{self.error_detail.error_code}] {self.error_detail.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(error_code={self.error_detail.error_code!r}, "
            f"operation={self.error_detail.operation!r})"
        )


class ValidationError(LoginFlowError):
    category = "validation"


class ConflictError(LoginFlowError):
    category = "conflict"


class PolicyError(LoginFlowError):
    category = "policy"


class TokenError(LoginFlowError):
    category = "token"


class UpstreamError(LoginFlowError):
    category = "upstream"


class InvalidRequestError(LoginFlowError):
    category = "invalid_request"
