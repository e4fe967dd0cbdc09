"""Reference identity store backed by SQLAlchemy.

Users and password reset keys live in two tables. Reset keys are stored as
SHA-256 digests, expire after ``RESET_KEY_TTL_SECONDS`` and are consumed by the
first successful password change.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import UTC, datetime, timedelta
from typing import NoReturn
from uuid import uuid4

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from services.libs.login_service_libs.error_handling import (
    raise_conflict_error,
    raise_upstream_error,
)
from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.config import Settings
from services.custom_login_service.error_catalog import message_for
from services.custom_login_service.flow_enums import ErrorCode, Role
from services.custom_login_service.flow_models import Identity, ResetToken
from services.custom_login_service.models_db import PasswordResetKey, User
from services.custom_login_service.protocols import (
    NotificationSenderProtocol,
    PasswordHasher,
)

logger = create_service_logger("custom_login_service.identity_store")

IDENTITY_STORE_UNAVAILABLE = "identity_store_unavailable"


def _digest(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back as naive values
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _to_identity(user: User) -> Identity:
    try:
        role = Role(user.role)
    except ValueError:
        role = Role.STANDARD
    return Identity(
        id=user.id,
        login=user.login,
        email=user.email,
        role=role,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
    )


class SqlAlchemyIdentityService:
    def __init__(
        self,
        engine: AsyncEngine,
        hasher: PasswordHasher,
        notification_sender: NotificationSenderProtocol,
        settings: Settings,
    ) -> None:
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)
        self._hasher = hasher
        self._notification_sender = notification_sender
        self._settings = settings

    def _unavailable(self, operation: str, error: SQLAlchemyError) -> NoReturn:
        logger.error(
            f"Identity store failure during {operation}: {error}",
            exc_info=True,
        )
        raise_upstream_error(
            service=self._settings.SERVICE_NAME,
            operation=operation,
            code=IDENTITY_STORE_UNAVAILABLE,
            message="Identity store is unavailable",
            correlation_id=uuid4(),
            external_service="identity_store",
            error=str(error),
        )

    async def _find_user(self, identifier: str) -> User | None:
        needle = identifier.strip().lower()
        async with self._session_factory() as session:
            stmt = select(User).where(or_(User.login == needle, User.email == needle))
            res = await session.execute(stmt)
            return res.scalars().first()

    async def authenticate(self, login: str, password: str) -> Identity | list[ErrorCode]:
        errors: list[ErrorCode] = []
        if not login.strip():
            errors.append(ErrorCode.EMPTY_USERNAME)
        if not password:
            errors.append(ErrorCode.EMPTY_PASSWORD)
        if errors:
            return errors

        try:
            user = await self._find_user(login)
        except SQLAlchemyError as e:
            self._unavailable("authenticate", e)

        if user is None:
            return [ErrorCode.INVALID_USERNAME]
        if not self._hasher.verify(user.password_hash, password):
            return [ErrorCode.INCORRECT_PASSWORD]
        if self._hasher.needs_rehash(user.password_hash):
            await self._upgrade_hash(user, password)
        return _to_identity(user)

    async def _upgrade_hash(self, user: User, password: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(User)
                    .where(User.id == user.id)
                    .values(password_hash=self._hasher.hash(password))
                )
                await session.commit()
        except SQLAlchemyError as e:
            # The login itself already succeeded
            logger.warning(
                f"Could not upgrade password hash: {e}", extra={"identity_id": user.id}
            )
            return
        logger.info("Password hash upgraded", extra={"identity_id": user.id})

    async def get_identity(self, identity_id: str) -> Identity | None:
        try:
            async with self._session_factory() as session:
                user = await session.get(User, identity_id)
        except SQLAlchemyError as e:
            self._unavailable("get_identity", e)
        return _to_identity(user) if user is not None else None

    async def identifier_exists(self, identifier: str) -> bool:
        try:
            return await self._find_user(identifier) is not None
        except SQLAlchemyError as e:
            self._unavailable("identifier_exists", e)

    async def create_identity(
        self,
        login: str,
        email: str,
        password: str,
        role: Role,
        first_name: str = "",
        last_name: str = "",
    ) -> Identity:
        try:
            async with self._session_factory() as session:
                user = User(
                    login=login.strip().lower(),
                    email=email.strip().lower(),
                    password_hash=self._hasher.hash(password),
                    role=role.value,
                    first_name=first_name,
                    last_name=last_name,
                    registered_at=datetime.now(UTC),
                )
                session.add(user)
                await session.flush()
                await session.commit()
                return _to_identity(user)
        except IntegrityError:
            # Lost a race with a concurrent registration for the same login or email
            raise_conflict_error(
                service=self._settings.SERVICE_NAME,
                operation="create_identity",
                code=ErrorCode.EMAIL_EXISTS,
                message=message_for(ErrorCode.EMAIL_EXISTS),
                correlation_id=uuid4(),
                email=email.strip().lower(),
            )
        except SQLAlchemyError as e:
            self._unavailable("create_identity", e)

    async def initiate_password_reset(self, user_login: str) -> ResetToken | list[ErrorCode]:
        identifier = user_login.strip()
        if not identifier:
            return [ErrorCode.EMPTY_USERNAME]

        try:
            user = await self._find_user(identifier)
            if user is None:
                return [ErrorCode.INVALID_EMAIL if "@" in identifier else ErrorCode.INVALIDCOMBO]

            key = secrets.token_urlsafe(15)
            now = datetime.now(UTC)
            async with self._session_factory() as session:
                session.add(
                    PasswordResetKey(
                        user_id=user.id,
                        key_hash=_digest(key),
                        created_at=now,
                        expires_at=now + timedelta(seconds=self._settings.RESET_KEY_TTL_SECONDS),
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            self._unavailable("initiate_password_reset", e)

        logger.info("Password reset key issued", extra={"identity_id": user.id})
        return ResetToken(login=user.login, key=key)

    async def validate_reset_token(self, token: ResetToken) -> Identity | ErrorCode:
        try:
            user = await self._find_user(token.login)
            if user is None:
                return ErrorCode.INVALIDKEY
            async with self._session_factory() as session:
                stmt = select(PasswordResetKey).where(
                    PasswordResetKey.user_id == user.id,
                    PasswordResetKey.key_hash == _digest(token.key),
                    PasswordResetKey.used_at.is_(None),
                )
                res = await session.execute(stmt)
                reset_key = res.scalars().first()
        except SQLAlchemyError as e:
            self._unavailable("validate_reset_token", e)

        if reset_key is None:
            return ErrorCode.INVALIDKEY
        if _as_utc(reset_key.expires_at) <= datetime.now(UTC):
            return ErrorCode.EXPIREDKEY
        return _to_identity(user)

    async def commit_new_password(self, identity: Identity, new_password: str) -> None:
        now = datetime.now(UTC)
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(User)
                    .where(User.id == identity.id)
                    .values(password_hash=self._hasher.hash(new_password))
                )
                await session.execute(
                    update(PasswordResetKey)
                    .where(
                        PasswordResetKey.user_id == identity.id,
                        PasswordResetKey.used_at.is_(None),
                    )
                    .values(used_at=now)
                )
                await session.commit()
        except SQLAlchemyError as e:
            self._unavailable("commit_new_password", e)

        logger.info("Password changed", extra={"identity_id": identity.id})

    async def send_notification(self, recipient: str, subject: str, body: str) -> None:
        """Send to the email address of the user behind ``recipient`` (login or email)."""
        try:
            user = await self._find_user(recipient)
        except SQLAlchemyError as e:
            self._unavailable("send_notification", e)
        address = user.email if user is not None else recipient
        await self._notification_sender.send(address, subject, body)
