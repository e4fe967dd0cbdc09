"""Helpers shared by the form submission handlers."""

from __future__ import annotations

from services.libs.login_service_libs.error_handling import LoginFlowError

from services.custom_login_service.error_catalog import to_error_code
from services.custom_login_service.flow_enums import ErrorCode, Route
from services.custom_login_service.flow_models import FormFailure, FormResult, FormSuccess
from services.custom_login_service.metrics import FORM_RESULTS


def failure_from_error(error: LoginFlowError, fallback: ErrorCode) -> FormFailure:
    """Convert a domain error into the codes shown on the re-displayed form.

    Errors reported by the identity store may carry several codes under
    ``details["error_codes"]``; order is preserved. Errors whose code is not
    a flow error code (e.g. ``identity_store_unavailable``) report ``fallback``.
    """
    raw_codes = error.details.get("error_codes") or [error.error_code]
    codes = tuple(code for code in (to_error_code(str(raw)) for raw in raw_codes) if code)
    return FormFailure(codes or (fallback,))


def record_result(route: Route, result: FormResult) -> FormResult:
    FORM_RESULTS.labels(
        route=route.value,
        result="success" if isinstance(result, FormSuccess) else "failure",
    ).inc()
    return result
