"""Shared test fixtures and protocol fakes for the custom login service tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import pytest

from services.libs.login_service_libs.error_handling import UpstreamError, raise_upstream_error

from services.custom_login_service.config import Environment, Settings
from services.custom_login_service.domain_handlers.login_handler import LoginHandler
from services.custom_login_service.domain_handlers.page_attributes import PageAttributes
from services.custom_login_service.domain_handlers.password_lost_handler import (
    PasswordLostHandler,
)
from services.custom_login_service.domain_handlers.password_reset_handler import (
    PasswordResetHandler,
)
from services.custom_login_service.domain_handlers.redirect_policy import RedirectPolicy
from services.custom_login_service.domain_handlers.registration_handler import (
    RegistrationHandler,
)
from services.custom_login_service.domain_handlers.route_dispatcher import RouteDispatcher
from services.custom_login_service.flow_enums import ErrorCode, Role
from services.custom_login_service.flow_hooks import FlowHooks
from services.custom_login_service.flow_models import Identity, ResetToken
from services.custom_login_service.protocols import (
    CaptchaVerifierProtocol,
    IdentityServiceProtocol,
)

SITE = "https://example.com"

ADMIN = Identity(
    id="u-admin", login="admin@example.com", email="admin@example.com", role=Role.ADMIN
)
MEMBER = Identity(
    id="u-member",
    login="member@example.com",
    email="member@example.com",
    role=Role.STANDARD,
    first_name="Ada",
    last_name="Lovelace",
)


@dataclass
class SentNotification:
    recipient: str
    subject: str
    body: str


@dataclass
class FakeIdentityService(IdentityServiceProtocol):
    """In-memory identity store that records every state-changing call."""

    identities: dict[str, Identity] = field(default_factory=dict)
    passwords: dict[str, str] = field(default_factory=dict)
    reset_keys: dict[tuple[str, str], ErrorCode | None] = field(default_factory=dict)
    created: list[Identity] = field(default_factory=list)
    committed: list[tuple[str, str]] = field(default_factory=list)
    notifications: list[SentNotification] = field(default_factory=list)
    issued_key: str = "reset-key-123"
    fail_with: Exception | None = None
    fail_create_with: Exception | None = None
    fail_commit_with: Exception | None = None
    fail_notifications: bool = False

    def add(self, identity: Identity, password: str = "secret") -> None:
        self.identities[identity.id] = identity
        self.passwords[identity.id] = password

    def _find(self, identifier: str) -> Identity | None:
        needle = identifier.strip().lower()
        for identity in self.identities.values():
            if needle in (identity.login.lower(), identity.email.lower()):
                return identity
        return None

    async def authenticate(self, login: str, password: str) -> Identity | list[ErrorCode]:
        if self.fail_with:
            raise self.fail_with
        errors = []
        if not login:
            errors.append(ErrorCode.EMPTY_USERNAME)
        if not password:
            errors.append(ErrorCode.EMPTY_PASSWORD)
        if errors:
            return errors
        identity = self._find(login)
        if identity is None:
            return [ErrorCode.INVALID_USERNAME]
        if self.passwords[identity.id] != password:
            return [ErrorCode.INCORRECT_PASSWORD]
        return identity

    async def get_identity(self, identity_id: str) -> Identity | None:
        return self.identities.get(identity_id)

    async def identifier_exists(self, identifier: str) -> bool:
        if self.fail_with:
            raise self.fail_with
        return self._find(identifier) is not None

    async def create_identity(
        self,
        login: str,
        email: str,
        password: str,
        role: Role,
        first_name: str = "",
        last_name: str = "",
    ) -> Identity:
        if self.fail_create_with:
            raise self.fail_create_with
        identity = Identity(
            id=f"u-{len(self.identities) + 1}",
            login=login,
            email=email,
            role=role,
            first_name=first_name,
            last_name=last_name,
        )
        self.add(identity, password)
        self.created.append(identity)
        return identity

    async def initiate_password_reset(self, user_login: str) -> ResetToken | list[ErrorCode]:
        if self.fail_with:
            raise self.fail_with
        if not user_login:
            return [ErrorCode.EMPTY_USERNAME]
        identity = self._find(user_login)
        if identity is None:
            return [ErrorCode.INVALID_EMAIL if "@" in user_login else ErrorCode.INVALIDCOMBO]
        self.reset_keys[(identity.login, self.issued_key)] = None
        return ResetToken(identity.login, self.issued_key)

    async def validate_reset_token(self, token: ResetToken) -> Identity | ErrorCode:
        if self.fail_with:
            raise self.fail_with
        if (token.login, token.key) not in self.reset_keys:
            return ErrorCode.INVALIDKEY
        problem = self.reset_keys[(token.login, token.key)]
        if problem is not None:
            return problem
        identity = self._find(token.login)
        return identity if identity is not None else ErrorCode.INVALIDKEY

    async def commit_new_password(self, identity: Identity, new_password: str) -> None:
        if self.fail_commit_with:
            raise self.fail_commit_with
        self.passwords[identity.id] = new_password
        self.committed.append((identity.id, new_password))

    async def send_notification(self, recipient: str, subject: str, body: str) -> None:
        if self.fail_notifications:
            raise RuntimeError("mail server down")
        self.notifications.append(SentNotification(recipient, subject, body))


@dataclass
class FakeCaptchaVerifier(CaptchaVerifierProtocol):
    result: bool = True
    error: Exception | None = None
    calls: list[tuple[str | None, str | None]] = field(default_factory=list)

    async def verify(self, response_token: str | None, remote_ip: str | None = None) -> bool:
        self.calls.append((response_token, remote_ip))
        if self.error:
            raise self.error
        return self.result


def identity_store_outage(operation: str = "authenticate") -> UpstreamError:
    """The error the SQL identity store raises when its database is unreachable."""
    try:
        raise_upstream_error(
            service="custom_login_service",
            operation=operation,
            code="identity_store_unavailable",
            message="Identity store is unavailable",
            correlation_id=uuid4(),
            external_service="identity_store",
        )
    except UpstreamError as e:
        return e


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "SITE_URL": SITE,
        "ENVIRONMENT": Environment.TESTING,
        "CAPTCHA_ENABLED": True,
        "CAPTCHA_SITE_KEY": "site-key",
        "ADMIN_REDIRECT": True,
        "USERS_CAN_REGISTER": True,
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    }
    values.update(overrides)
    return Settings(**values)


def make_dispatcher(
    settings: Settings,
    identity_service: IdentityServiceProtocol,
    captcha_verifier: CaptchaVerifierProtocol,
    hooks: FlowHooks | None = None,
) -> RouteDispatcher:
    hooks = hooks or FlowHooks()
    policy = RedirectPolicy(settings, hooks)
    return RouteDispatcher(
        policy,
        PageAttributes(settings, policy),
        LoginHandler(identity_service, policy, settings),
        RegistrationHandler(identity_service, captcha_verifier, policy, hooks, settings),
        PasswordLostHandler(identity_service, policy, settings),
        PasswordResetHandler(identity_service, policy, settings),
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def hooks() -> FlowHooks:
    return FlowHooks()


@pytest.fixture
def policy(settings: Settings, hooks: FlowHooks) -> RedirectPolicy:
    return RedirectPolicy(settings, hooks)


@pytest.fixture
def identity_service() -> FakeIdentityService:
    service = FakeIdentityService()
    service.add(ADMIN, "admin-pass")
    service.add(MEMBER, "member-pass")
    return service


@pytest.fixture
def captcha_verifier() -> FakeCaptchaVerifier:
    return FakeCaptchaVerifier()
