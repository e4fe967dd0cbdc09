"""Error code catalog for the login flow.

Maps every ErrorCode to the message shown on the re-displayed form, and
encodes/decodes the comma-joined code lists carried in query strings.
"""

from __future__ import annotations

from typing import Iterable

from services.custom_login_service.flow_enums import ErrorCode

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred. Please try again later."

# empty_username is shared by the login and lost-password forms; the login
# wording is the one visitors have always seen.
ERROR_MESSAGES: dict[ErrorCode, str] = {
    # Login
    ErrorCode.EMPTY_USERNAME: "You do have an email address, right?",
    ErrorCode.EMPTY_PASSWORD: "You need to enter a password to login.",
    ErrorCode.INVALID_USERNAME: (
        "We don't have any users with that email address. "
        "Maybe you used a different one when signing up?"
    ),
    ErrorCode.INCORRECT_PASSWORD: (
        "The password you entered wasn't quite right. "
        "<a href='{lost_password_url}'>Did you forget your password</a>?"
    ),
    # Registration
    ErrorCode.EMAIL: "The email address you entered is not valid.",
    ErrorCode.EMAIL_EXISTS: "An account exists with this email address.",
    ErrorCode.CLOSED: "Registering new users is currently not allowed.",
    ErrorCode.CAPTCHA: "The Google reCAPTCHA check failed. Are you a robot?",
    # Lost password
    ErrorCode.INVALID_EMAIL: "There are no users registered with this email address.",
    ErrorCode.INVALIDCOMBO: "There are no users registered with this email address.",
    # Reset password
    ErrorCode.EXPIREDKEY: "The password reset link you used is not valid anymore.",
    ErrorCode.INVALIDKEY: "The password reset link you used is not valid anymore.",
    ErrorCode.PASSWORD_RESET_MISMATCH: "The two passwords you entered don't match.",
    ErrorCode.PASSWORD_RESET_EMPTY: "Sorry, we don't accept empty passwords.",
    # Identity store outage
    ErrorCode.UNAVAILABLE: (
        "We couldn't reach your account right now. Please try again in a few minutes."
    ),
}


def to_error_code(token: str) -> ErrorCode | None:
    try:
        return ErrorCode(token)
    except ValueError:
        return None


def message_for(code: ErrorCode | str, lost_password_url: str = "") -> str:
    """Return the human-readable message for an error code.

    Unknown codes map to a generic message instead of failing.
    """
    error_code = code if isinstance(code, ErrorCode) else to_error_code(code)
    if error_code is None:
        return UNKNOWN_ERROR_MESSAGE
    message = ERROR_MESSAGES.get(error_code, UNKNOWN_ERROR_MESSAGE)
    if error_code == ErrorCode.INCORRECT_PASSWORD:
        return message.format(lost_password_url=lost_password_url)
    return message


def encode_error_codes(codes: Iterable[ErrorCode | str]) -> str:
    return ",".join(str(getattr(code, "value", code)) for code in codes)


def decode_error_codes(raw: str | None) -> list[ErrorCode | str]:
    """Split a comma-joined list; known tokens come back as ErrorCode members."""
    if not raw:
        return []
    decoded: list[ErrorCode | str] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        decoded.append(to_error_code(token) or token)
    return decoded


def messages_for(raw: str | None, lost_password_url: str = "") -> list[str]:
    return [message_for(code, lost_password_url) for code in decode_error_codes(raw)]
