"""Integration tests for SqlAlchemyIdentityService against in-memory SQLite."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from services.libs.login_service_libs.error_handling import ConflictError, UpstreamError

from services.custom_login_service.config import Settings
from services.custom_login_service.flow_enums import ErrorCode, Role
from services.custom_login_service.flow_models import Identity, ResetToken
from services.custom_login_service.implementations.identity_service_sqlalchemy_impl import (
    SqlAlchemyIdentityService,
)
from services.custom_login_service.implementations.password_hasher_impl import (
    Argon2idPasswordHasher,
)
from services.custom_login_service.models_db import Base, PasswordResetKey, User
from services.custom_login_service.protocols import NotificationSenderProtocol
from services.custom_login_service.tests.conftest import make_settings

pytestmark = pytest.mark.integration


@dataclass
class _RecordingSender(NotificationSenderProtocol):
    sent: list[tuple[str, str, str]] = field(default_factory=list)

    async def send(self, recipient: str, subject: str, body: str) -> None:
        self.sent.append((recipient, subject, body))


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


def _service(
    engine: AsyncEngine, settings: Settings | None = None, sender: _RecordingSender | None = None
) -> SqlAlchemyIdentityService:
    return SqlAlchemyIdentityService(
        engine,
        Argon2idPasswordHasher(),
        sender or _RecordingSender(),
        settings or make_settings(),
    )


async def _create_member(service: SqlAlchemyIdentityService) -> Identity:
    return await service.create_identity(
        login="Member@Example.com",
        email="Member@Example.com",
        password="s3cret-pass",
        role=Role.STANDARD,
        first_name="Ada",
        last_name="Lovelace",
    )


@pytest.mark.asyncio
async def test_create_and_authenticate(engine: AsyncEngine) -> None:
    service = _service(engine)
    created = await _create_member(service)

    assert created.login == "member@example.com"
    assert await service.authenticate("MEMBER@example.com", "s3cret-pass") == created
    assert await service.get_identity(created.id) == created


@pytest.mark.asyncio
async def test_authenticate_error_codes(engine: AsyncEngine) -> None:
    service = _service(engine)
    await _create_member(service)

    assert await service.authenticate("", "") == [
        ErrorCode.EMPTY_USERNAME,
        ErrorCode.EMPTY_PASSWORD,
    ]
    assert await service.authenticate("ghost@example.com", "x") == [ErrorCode.INVALID_USERNAME]
    assert await service.authenticate("member@example.com", "wrong") == [
        ErrorCode.INCORRECT_PASSWORD
    ]


@pytest.mark.asyncio
async def test_identifier_exists_is_case_insensitive(engine: AsyncEngine) -> None:
    service = _service(engine)
    await _create_member(service)

    assert await service.identifier_exists(" MEMBER@EXAMPLE.COM ") is True
    assert await service.identifier_exists("other@example.com") is False


@pytest.mark.asyncio
async def test_reset_key_lifecycle(engine: AsyncEngine) -> None:
    service = _service(engine)
    member = await _create_member(service)

    token = await service.initiate_password_reset("member@example.com")
    assert isinstance(token, ResetToken)
    assert token.login == "member@example.com"

    async with async_sessionmaker(engine)() as session:
        stored = (await session.execute(select(PasswordResetKey))).scalars().one()
    assert stored.key_hash != token.key

    assert await service.validate_reset_token(token) == member
    assert await service.validate_reset_token(ResetToken(token.login, "wrong")) == (
        ErrorCode.INVALIDKEY
    )
    assert await service.validate_reset_token(ResetToken("ghost", token.key)) == (
        ErrorCode.INVALIDKEY
    )

    await service.commit_new_password(member, "brand-new")

    assert await service.validate_reset_token(token) == ErrorCode.INVALIDKEY
    assert await service.authenticate("member@example.com", "brand-new") == member


@pytest.mark.asyncio
async def test_expired_reset_key(engine: AsyncEngine) -> None:
    service = _service(engine, make_settings(RESET_KEY_TTL_SECONDS=0))
    await _create_member(service)

    token = await service.initiate_password_reset("member@example.com")

    assert isinstance(token, ResetToken)
    assert await service.validate_reset_token(token) == ErrorCode.EXPIREDKEY


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "user_login, expected",
    [
        ("", [ErrorCode.EMPTY_USERNAME]),
        ("ghost@example.com", [ErrorCode.INVALID_EMAIL]),
        ("ghost", [ErrorCode.INVALIDCOMBO]),
    ],
)
async def test_initiate_password_reset_errors(
    engine: AsyncEngine, user_login: str, expected: list[ErrorCode]
) -> None:
    service = _service(engine)
    await _create_member(service)

    assert await service.initiate_password_reset(user_login) == expected


@pytest.mark.asyncio
async def test_send_notification_resolves_login_to_email(engine: AsyncEngine) -> None:
    sender = _RecordingSender()
    service = _service(engine, sender=sender)
    await _create_member(service)

    await service.send_notification("member@example.com", "Subject", "Body")
    await service.send_notification("unknown@example.com", "Subject", "Body")

    assert [recipient for recipient, _, _ in sender.sent] == [
        "member@example.com",
        "unknown@example.com",
    ]


@pytest.mark.asyncio
async def test_database_failure_raises_upstream_error(engine: AsyncEngine) -> None:
    service = _service(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    with pytest.raises(UpstreamError) as exc_info:
        await service.authenticate("member@example.com", "pass")

    assert exc_info.value.error_code == "identity_store_unavailable"
    assert exc_info.value.details["external_service"] == "identity_store"


@pytest.mark.asyncio
async def test_duplicate_email_insert_is_reported_as_email_exists(engine: AsyncEngine) -> None:
    service = _service(engine)
    await _create_member(service)

    # Bypasses identifier_exists, as a concurrent registration would
    with pytest.raises(ConflictError) as exc_info:
        await service.create_identity(
            login="member@example.com",
            email="MEMBER@example.com",
            password="other",
            role=Role.STANDARD,
        )

    assert exc_info.value.error_code == ErrorCode.EMAIL_EXISTS.value


@pytest.mark.asyncio
async def test_login_upgrades_hash_made_with_older_cost_parameters(engine: AsyncEngine) -> None:
    weak = Argon2idPasswordHasher(time_cost=1, memory_cost=8192, parallelism=1)
    strong = Argon2idPasswordHasher(time_cost=2, memory_cost=16384, parallelism=1)
    created = await _create_member(
        SqlAlchemyIdentityService(engine, weak, _RecordingSender(), make_settings())
    )
    service = SqlAlchemyIdentityService(engine, strong, _RecordingSender(), make_settings())

    assert await service.authenticate("member@example.com", "s3cret-pass") == created

    async with async_sessionmaker(engine)() as session:
        stored = (await session.execute(select(User.password_hash))).scalar_one()
    assert not strong.needs_rehash(stored)
    assert strong.verify(stored, "s3cret-pass")
