"""Route tests for the native endpoint and the custom pages.

Uses a lightweight LoginServiceApp with Dishka DI and protocol fakes.
"""

from __future__ import annotations

from typing import AsyncIterator

import pytest
from dishka import Provider, Scope, make_async_container, provide
from prometheus_client import CollectorRegistry, Counter, Histogram
from quart.typing import TestClientProtocol as QuartTestClient
from quart_dishka import QuartDishka
from sqlalchemy.ext.asyncio import create_async_engine

from services.libs.login_service_libs import LoginServiceApp
from services.libs.login_service_libs.metrics_middleware import setup_metrics_middleware

from services.custom_login_service.api.health_routes import bp as health_bp
from services.custom_login_service.api.native_routes import bp as native_bp
from services.custom_login_service.api.page_routes import bp as pages_bp
from services.custom_login_service.config import Settings
from services.custom_login_service.error_catalog import message_for
from services.custom_login_service.flow_enums import ErrorCode
from services.custom_login_service.flow_hooks import FlowHooks
from services.custom_login_service.flow_orchestrator import FlowOrchestrator
from services.custom_login_service.implementations.presentation_impl import JsonPresentation
from services.custom_login_service.protocols import IdentityServiceProtocol
from services.custom_login_service.tests.conftest import (
    MEMBER,
    SITE,
    FakeCaptchaVerifier,
    FakeIdentityService,
    identity_store_outage,
    make_dispatcher,
    make_settings,
)


class _TestProvider(Provider):
    def __init__(
        self,
        identity_service: FakeIdentityService,
        captcha_verifier: FakeCaptchaVerifier,
        settings: Settings,
        registry: CollectorRegistry,
    ) -> None:
        super().__init__()
        self._identity_service = identity_service
        self._captcha_verifier = captcha_verifier
        self._settings = settings
        self._registry = registry

    @provide(scope=Scope.APP)
    def provide_settings(self) -> Settings:
        return self._settings

    @provide(scope=Scope.APP)
    def provide_registry(self) -> CollectorRegistry:
        return self._registry

    @provide(scope=Scope.APP)
    async def provide_identity_service(self) -> AsyncIterator[IdentityServiceProtocol]:
        yield self._identity_service

    @provide(scope=Scope.REQUEST)
    def provide_orchestrator(self) -> FlowOrchestrator:
        hooks = FlowHooks()
        dispatcher = make_dispatcher(
            self._settings, self._identity_service, self._captcha_verifier, hooks
        )
        return FlowOrchestrator(dispatcher, JsonPresentation())


async def _create_app(
    identity_service: FakeIdentityService,
    captcha_verifier: FakeCaptchaVerifier,
    registry: CollectorRegistry | None = None,
) -> tuple[LoginServiceApp, QuartTestClient]:
    registry = registry or CollectorRegistry()
    app = LoginServiceApp(__name__)
    app.secret_key = "test-secret"
    container = make_async_container(
        _TestProvider(identity_service, captcha_verifier, make_settings(), registry)
    )
    QuartDishka(app=app, container=container)
    app.container = container
    app.database_engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    app.register_blueprint(health_bp)
    app.register_blueprint(native_bp)
    app.register_blueprint(pages_bp)
    return app, app.test_client()


@pytest.mark.asyncio
async def test_login_page_renders_empty_form(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.get("/login")

    assert resp.status_code == 200
    data = await resp.get_json()
    assert data["template"] == "login-form"
    assert data["attributes"]["errors"] == []


@pytest.mark.asyncio
async def test_login_session_account_and_logout_round_trip(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.post("/login", form={"log": MEMBER.login, "pwd": "member-pass"})
    assert resp.status_code == 302
    assert resp.headers["Location"] == f"{SITE}/account"

    resp = await client.get("/account")
    assert resp.status_code == 200
    data = await resp.get_json()
    assert data["template"] == "account-info-form"
    assert data["attributes"]["email"] == MEMBER.email

    resp = await client.get("/register")
    assert resp.status_code == 302
    assert resp.headers["Location"] == f"{SITE}/account"

    resp = await client.get("/logout")
    assert resp.status_code == 302
    assert resp.headers["Location"] == f"{SITE}/login?logged_out=true"

    resp = await client.get("/account")
    assert resp.status_code == 302
    assert resp.headers["Location"] == f"{SITE}/login?redirect_to={SITE}/account"


@pytest.mark.asyncio
async def test_failed_login_redirects_with_error_codes(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.post("/auth/login", form={"log": MEMBER.login, "pwd": "nope"})

    assert resp.status_code == 302
    assert resp.headers["Location"] == f"{SITE}/login?login=incorrect_password"


@pytest.mark.asyncio
async def test_native_reset_link_forwards_to_reset_page(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    identity_service.reset_keys[(MEMBER.login, "K")] = None
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.get("/auth/rp", query_string={"key": "K", "login": MEMBER.login})

    assert resp.status_code == 302
    assert resp.headers["Location"] == f"{SITE}/reset-password?login={MEMBER.login}&key=K"


@pytest.mark.asyncio
async def test_native_action_query_parameter(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.get("/auth", query_string={"action": "register"})

    assert resp.status_code == 302
    assert resp.headers["Location"] == f"{SITE}/register"


@pytest.mark.asyncio
async def test_unknown_native_action_is_404(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.get("/auth/bogus")

    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_register_with_bad_email_redirects_with_error(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.post(
        "/register", form={"email": "not-an-email", "g-recaptcha-response": "t"}
    )

    assert resp.status_code == 302
    assert resp.headers["Location"] == f"{SITE}/register?register-errors=email"
    assert identity_service.created == []


@pytest.mark.asyncio
async def test_reset_without_pass1_returns_invalid_request(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    identity_service.reset_keys[(MEMBER.login, "K")] = None
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.post("/reset-password", form={"rp_key": "K", "rp_login": MEMBER.login})

    assert resp.status_code == 400
    assert await resp.get_json() == {"error": "Invalid request."}


@pytest.mark.asyncio
async def test_identity_store_outage_during_login_redirects_with_error(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    identity_service.fail_with = identity_store_outage("authenticate")
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.post("/login", form={"log": MEMBER.login, "pwd": "member-pass"})

    assert resp.status_code == 302
    assert resp.headers["Location"] == f"{SITE}/login?login=unavailable"

    resp = await client.get("/login", query_string={"login": "unavailable"})
    data = await resp.get_json()
    assert data["attributes"]["errors"] == [message_for(ErrorCode.UNAVAILABLE)]


@pytest.mark.asyncio
async def test_healthz_reports_database_status(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    _, client = await _create_app(identity_service, captcha_verifier)

    resp = await client.get("/healthz")

    assert resp.status_code == 200
    data = await resp.get_json()
    assert data["status"] == "healthy"
    assert data["dependencies"]["database"]["status"] == "healthy"


@pytest.mark.asyncio
async def test_metrics_middleware_counts_requests(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    registry = CollectorRegistry()
    app, client = await _create_app(identity_service, captcha_verifier, registry)
    app.extensions["metrics"] = {
        "request_count": Counter(
            "test_requests_total",
            "requests",
            labelnames=("method", "endpoint", "status_code"),
            registry=registry,
        ),
        "request_duration": Histogram(
            "test_request_duration_seconds",
            "latency",
            labelnames=("method", "endpoint"),
            registry=registry,
        ),
    }
    setup_metrics_middleware(app)

    await client.get("/login")
    resp = await client.get("/metrics")

    assert resp.status_code == 200
    body = (await resp.get_data()).decode()
    assert 'test_requests_total{endpoint="/login",method="GET",status_code="200"} 1.0' in body
    assert 'endpoint="/metrics"' not in body
