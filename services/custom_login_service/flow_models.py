"""Request-scoped value objects for the login flow.

None of these outlive the request that created them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union
from uuid import UUID, uuid4

from services.custom_login_service.flow_enums import EntryPoint, ErrorCode, HttpMethod, Role, Route


@dataclass(frozen=True)
class Identity:
    """Read-only view of a user owned by the identity store."""

    id: str
    login: str
    email: str
    role: Role = Role.STANDARD
    first_name: str = ""
    last_name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class ResetToken:
    """Opaque (login, key) pair issued by the identity store."""

    login: str
    key: str


@dataclass(frozen=True)
class RequestContext:
    """Everything a handler may know about the current request."""

    method: HttpMethod
    route: Route
    entry_point: EntryPoint = EntryPoint.PAGE
    query: Mapping[str, str] = field(default_factory=dict)
    form: Mapping[str, str] = field(default_factory=dict)
    identity: Identity | None = None
    remote_addr: str | None = None
    correlation_id: UUID = field(default_factory=uuid4)

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def redirect_to(self) -> str | None:
        """Requested redirect target; form value wins over the query string."""
        value = self.form.get("redirect_to") or self.query.get("redirect_to")
        return value or None

    def param(self, name: str) -> str | None:
        """Look a value up in the form first, then the query string."""
        if name in self.form:
            return self.form[name]
        return self.query.get(name)


@dataclass(frozen=True)
class FormSuccess:
    redirect_url: str
    # Set by a successful login; the API layer opens a session for it.
    signed_in: Identity | None = None


@dataclass(frozen=True)
class FormFailure:
    error_codes: tuple[ErrorCode, ...]

    def __post_init__(self) -> None:
        if not self.error_codes:
            raise ValueError("FormFailure requires at least one error code")


FormResult = Union[FormSuccess, FormFailure]


@dataclass(frozen=True)
class Redirecting:
    location: str
    sign_in: Identity | None = None
    sign_out: bool = False


@dataclass(frozen=True)
class Rendering:
    template: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InvalidRequest:
    message: str = "Invalid request."


DispatchOutcome = Union[Redirecting, Rendering, InvalidRequest]
