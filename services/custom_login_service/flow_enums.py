"""
Enums for the custom login flow.

Follows the str, Enum pattern so members compare equal to their wire tokens.
"""

from enum import Enum


class Route(str, Enum):
    """Auth routes the service intercepts, named after the host's native actions."""

    LOGIN = "login"
    REGISTER = "register"
    LOST_PASSWORD = "lostpassword"
    RESET_PASSWORD = "resetpass"
    LOGOUT = "logout"
    ACCOUNT = "account"

    @classmethod
    def from_action(cls, action: str) -> "Route | None":
        """Map a native ``action`` value to a route; ``rp`` is an alias of ``resetpass``."""
        if action == "rp":
            return cls.RESET_PASSWORD
        try:
            return cls(action)
        except ValueError:
            return None


class EntryPoint(str, Enum):
    """How a request reached the service."""

    NATIVE = "native"  # the host's built-in auth endpoint
    PAGE = "page"  # one of the custom pages


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"


class Role(str, Enum):
    ADMIN = "admin"
    STANDARD = "standard"


class ErrorCode(str, Enum):
    """Error tokens carried in redirect query strings."""

    # Login
    EMPTY_USERNAME = "empty_username"
    EMPTY_PASSWORD = "empty_password"
    INVALID_USERNAME = "invalid_username"
    INCORRECT_PASSWORD = "incorrect_password"

    # Registration
    EMAIL = "email"
    EMAIL_EXISTS = "email_exists"
    CLOSED = "closed"
    CAPTCHA = "captcha"

    # Lost password
    INVALID_EMAIL = "invalid_email"
    INVALIDCOMBO = "invalidcombo"

    # Reset password
    EXPIREDKEY = "expiredkey"
    INVALIDKEY = "invalidkey"
    PASSWORD_RESET_MISMATCH = "password_reset_mismatch"
    PASSWORD_RESET_EMPTY = "password_reset_empty"

    # Any form, when the identity store cannot be reached
    UNAVAILABLE = "unavailable"


TOKEN_ERROR_CODES = frozenset({ErrorCode.EXPIREDKEY, ErrorCode.INVALIDKEY})


class DispatchState(str, Enum):
    """Dispatcher states; REDIRECTING, RENDERING and INVALID_REQUEST are terminal."""

    IDLE = "idle"
    DISPATCHED = "dispatched"
    REDIRECTING = "redirecting"
    RENDERING = "rendering"
    INVALID_REQUEST = "invalid_request"
