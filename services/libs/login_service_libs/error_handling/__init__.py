"""Error handling utilities for the custom login service."""

from services.libs.login_service_libs.error_handling.error_detail import ErrorDetail
from services.libs.login_service_libs.error_handling.factories import (
    raise_conflict_error,
    raise_invalid_request,
    raise_policy_error,
    raise_token_error,
    raise_upstream_error,
    raise_validation_error,
)
from services.libs.login_service_libs.error_handling.login_flow_error import (
    ConflictError,
    InvalidRequestError,
    LoginFlowError,
    PolicyError,
    TokenError,
    UpstreamError,
    ValidationError,
)

__all__ = [
    "ErrorDetail",
    "LoginFlowError",
    "ValidationError",
    "ConflictError",
    "PolicyError",
    "TokenError",
    "UpstreamError",
    "InvalidRequestError",
    "raise_validation_error",
    "raise_conflict_error",
    "raise_policy_error",
    "raise_token_error",
    "raise_upstream_error",
    "raise_invalid_request",
]
