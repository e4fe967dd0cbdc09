from __future__ import annotations

from typing import Any, Protocol

from services.custom_login_service.flow_enums import ErrorCode, Role
from services.custom_login_service.flow_models import Identity, ResetToken


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...
    def verify(self, hash: str, password: str) -> bool: ...
    def needs_rehash(self, hash: str) -> bool: ...


class IdentityServiceProtocol(Protocol):
    """Credential storage, sessions and user persistence owned by the host.

    Methods that can fail for user-facing reasons return the host's error codes
    instead of raising, so the caller decides how to present them.
    """

    async def authenticate(self, login: str, password: str) -> Identity | list[ErrorCode]:
        """Check credentials; return the identity or the reasons it was refused."""
        ...

    async def get_identity(self, identity_id: str) -> Identity | None:
        """Resolve the identity behind an established session."""
        ...

    async def identifier_exists(self, identifier: str) -> bool:
        """True if the value is already used as a login or an email address."""
        ...

    async def create_identity(
        self,
        login: str,
        email: str,
        password: str,
        role: Role,
        first_name: str = "",
        last_name: str = "",
    ) -> Identity: ...

    async def initiate_password_reset(self, user_login: str) -> ResetToken | list[ErrorCode]:
        """Issue a reset key for a login or email address."""
        ...

    async def validate_reset_token(self, token: ResetToken) -> Identity | ErrorCode:
        """Return the token's identity, or ``expiredkey``/``invalidkey``."""
        ...

    async def commit_new_password(self, identity: Identity, new_password: str) -> None:
        """Store the password and consume any outstanding reset keys."""
        ...

    async def send_notification(self, recipient: str, subject: str, body: str) -> None: ...


class CaptchaVerifierProtocol(Protocol):
    async def verify(self, response_token: str | None, remote_ip: str | None = None) -> bool:
        """Return True only when the verification service confirmed the token."""
        ...


class NotificationSenderProtocol(Protocol):
    async def send(self, recipient: str, subject: str, body: str) -> None: ...


class PresentationProtocol(Protocol):
    """Turns a template identifier and its attributes into a response body."""

    def render(self, template: str, attributes: dict[str, Any]) -> Any: ...
