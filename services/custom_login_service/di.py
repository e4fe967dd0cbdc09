"""Dishka DI configuration for the custom login service."""

from __future__ import annotations

from typing import AsyncIterator

from aiohttp import ClientSession
from dishka import Provider, Scope, provide
from prometheus_client import REGISTRY, CollectorRegistry
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from services.custom_login_service.config import Settings, settings
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
from services.custom_login_service.flow_hooks import FlowHooks
from services.custom_login_service.flow_orchestrator import FlowOrchestrator
from services.custom_login_service.implementations.captcha_verifier_impl import (
    DisabledCaptchaVerifier,
    RecaptchaVerifierImpl,
)
from services.custom_login_service.implementations.identity_service_sqlalchemy_impl import (
    SqlAlchemyIdentityService,
)
from services.custom_login_service.implementations.notification_sender_impl import (
    LoggingNotificationSender,
)
from services.custom_login_service.implementations.notification_sender_smtp_impl import (
    SmtpNotificationSender,
)
from services.custom_login_service.implementations.password_hasher_impl import (
    Argon2idPasswordHasher,
)
from services.custom_login_service.implementations.presentation_impl import JsonPresentation
from services.custom_login_service.protocols import (
    CaptchaVerifierProtocol,
    IdentityServiceProtocol,
    NotificationSenderProtocol,
    PasswordHasher,
    PresentationProtocol,
)


class CoreProvider(Provider):
    @provide(scope=Scope.APP)
    def provide_settings(self) -> Settings:
        return settings

    @provide(scope=Scope.APP)
    def provide_metrics_registry(self) -> CollectorRegistry:
        return REGISTRY

    @provide(scope=Scope.APP)
    async def provide_http_session(self) -> AsyncIterator[ClientSession]:
        session = ClientSession()
        yield session
        await session.close()

    @provide(scope=Scope.APP)
    async def provide_database_engine(self, settings: Settings) -> AsyncIterator[AsyncEngine]:
        engine = create_async_engine(settings.DATABASE_URL, echo=False)
        yield engine
        await engine.dispose()


class ImplementationsProvider(Provider):
    @provide(scope=Scope.APP)
    def provide_password_hasher(self, settings: Settings) -> PasswordHasher:
        return Argon2idPasswordHasher.from_settings(settings)

    @provide(scope=Scope.APP)
    def provide_notification_sender(self, settings: Settings) -> NotificationSenderProtocol:
        """Log-only delivery unless SMTP is configured."""
        if settings.NOTIFICATION_BACKEND == "smtp":
            return SmtpNotificationSender(settings)
        return LoggingNotificationSender()

    @provide(scope=Scope.APP)
    def provide_identity_service(
        self,
        engine: AsyncEngine,
        hasher: PasswordHasher,
        notification_sender: NotificationSenderProtocol,
        settings: Settings,
    ) -> IdentityServiceProtocol:
        return SqlAlchemyIdentityService(engine, hasher, notification_sender, settings)

    @provide(scope=Scope.APP)
    def provide_captcha_verifier(
        self, session: ClientSession, settings: Settings
    ) -> CaptchaVerifierProtocol:
        if not settings.CAPTCHA_ENABLED:
            return DisabledCaptchaVerifier()
        return RecaptchaVerifierImpl(session, settings)

    @provide(scope=Scope.APP)
    def provide_presentation(self) -> PresentationProtocol:
        return JsonPresentation()

    @provide(scope=Scope.APP)
    def provide_flow_hooks(self) -> FlowHooks:
        return FlowHooks()


class FlowProvider(Provider):
    """Redirect policy, handlers, dispatcher and orchestrator.

    The dispatcher carries per-request state, so everything above it is
    request-scoped.
    """

    @provide(scope=Scope.APP)
    def provide_redirect_policy(self, settings: Settings, hooks: FlowHooks) -> RedirectPolicy:
        return RedirectPolicy(settings, hooks)

    @provide(scope=Scope.APP)
    def provide_page_attributes(
        self, settings: Settings, redirect_policy: RedirectPolicy
    ) -> PageAttributes:
        return PageAttributes(settings, redirect_policy)

    @provide(scope=Scope.REQUEST)
    def provide_login_handler(
        self,
        identity_service: IdentityServiceProtocol,
        redirect_policy: RedirectPolicy,
        settings: Settings,
    ) -> LoginHandler:
        return LoginHandler(identity_service, redirect_policy, settings)

    @provide(scope=Scope.REQUEST)
    def provide_registration_handler(
        self,
        identity_service: IdentityServiceProtocol,
        captcha_verifier: CaptchaVerifierProtocol,
        redirect_policy: RedirectPolicy,
        hooks: FlowHooks,
        settings: Settings,
    ) -> RegistrationHandler:
        return RegistrationHandler(
            identity_service, captcha_verifier, redirect_policy, hooks, settings
        )

    @provide(scope=Scope.REQUEST)
    def provide_password_lost_handler(
        self,
        identity_service: IdentityServiceProtocol,
        redirect_policy: RedirectPolicy,
        settings: Settings,
    ) -> PasswordLostHandler:
        return PasswordLostHandler(identity_service, redirect_policy, settings)

    @provide(scope=Scope.REQUEST)
    def provide_password_reset_handler(
        self,
        identity_service: IdentityServiceProtocol,
        redirect_policy: RedirectPolicy,
        settings: Settings,
    ) -> PasswordResetHandler:
        return PasswordResetHandler(identity_service, redirect_policy, settings)

    @provide(scope=Scope.REQUEST)
    def provide_route_dispatcher(
        self,
        redirect_policy: RedirectPolicy,
        page_attributes: PageAttributes,
        login_handler: LoginHandler,
        registration_handler: RegistrationHandler,
        password_lost_handler: PasswordLostHandler,
        password_reset_handler: PasswordResetHandler,
    ) -> RouteDispatcher:
        return RouteDispatcher(
            redirect_policy,
            page_attributes,
            login_handler,
            registration_handler,
            password_lost_handler,
            password_reset_handler,
        )

    @provide(scope=Scope.REQUEST)
    def provide_flow_orchestrator(
        self,
        dispatcher: RouteDispatcher,
        presentation: PresentationProtocol,
    ) -> FlowOrchestrator:
        return FlowOrchestrator(dispatcher, presentation)
