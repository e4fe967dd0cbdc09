"""Bodies of the emails the login flow asks the identity store to send."""

from __future__ import annotations

from urllib.parse import quote

PASSWORD_RESET_SUBJECT = "Password Reset"
NEW_USER_SUBJECT = "Your username and password info"


def build_password_reset_message(key: str, user_login: str, native_reset_url: str) -> str:
    """Reset email pointing at the native reset action, which forwards to the custom page."""
    link = f"{native_reset_url}?key={quote(key, safe='')}&login={quote(user_login, safe='')}"
    lines = [
        "Hello!",
        "",
        "You asked us to reset your password for your account "
        f"using the email address {user_login}.",
        "",
        "If this was a mistake, or you didn't ask for a password reset, "
        "just ignore this email and nothing will happen.",
        "",
        "To reset your password, visit the following address:",
        "",
        link,
        "",
        "Thanks!",
    ]
    return "\r\n".join(lines) + "\r\n"


def build_new_user_message(user_login: str, password: str, login_url: str) -> str:
    lines = [
        f"Username: {user_login}",
        f"Password: {password}",
        "",
        login_url,
    ]
    return "\r\n".join(lines) + "\r\n"
