"""Unit tests for FlowOrchestrator."""

from __future__ import annotations

import pytest

from services.custom_login_service.flow_enums import HttpMethod, Route
from services.custom_login_service.flow_hooks import FlowHooks
from services.custom_login_service.flow_models import Rendering, RequestContext
from services.custom_login_service.flow_orchestrator import FlowOrchestrator
from services.custom_login_service.implementations.presentation_impl import JsonPresentation
from services.custom_login_service.tests.conftest import (
    FakeCaptchaVerifier,
    FakeIdentityService,
    make_dispatcher,
    make_settings,
)


@pytest.mark.asyncio
async def test_handle_dispatches_and_present_renders_json(
    identity_service: FakeIdentityService, captcha_verifier: FakeCaptchaVerifier
) -> None:
    hooks = FlowHooks()
    orchestrator = FlowOrchestrator(
        make_dispatcher(make_settings(), identity_service, captcha_verifier, hooks),
        JsonPresentation(),
    )

    outcome = await orchestrator.handle(
        RequestContext(method=HttpMethod.GET, route=Route.REGISTER)
    )

    assert isinstance(outcome, Rendering)
    body = orchestrator.present(outcome)
    assert body["template"] == "register-form"
    assert body["attributes"]["errors"] == []
