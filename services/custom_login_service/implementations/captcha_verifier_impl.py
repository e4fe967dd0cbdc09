"""reCAPTCHA verification client.

Verification fails closed: a missing token, a transport error, a timeout, a
non-200 status or an unreadable body all count as a failed check.
"""

from __future__ import annotations

import asyncio
import json

import aiohttp

from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.config import Settings
from services.custom_login_service.metrics import CAPTCHA_VERIFICATIONS
from services.custom_login_service.protocols import CaptchaVerifierProtocol

logger = create_service_logger("custom_login_service.captcha_verifier")


class RecaptchaVerifierImpl(CaptchaVerifierProtocol):
    def __init__(self, session: aiohttp.ClientSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._timeout = aiohttp.ClientTimeout(total=settings.CAPTCHA_TIMEOUT_SECONDS)

    async def verify(self, response_token: str | None, remote_ip: str | None = None) -> bool:
        if not response_token:
            return self._record(False, "missing_token")

        data = {
            "secret": self._settings.CAPTCHA_SECRET_KEY.get_secret_value(),
            "response": response_token,
        }
        if remote_ip:
            data["remoteip"] = remote_ip

        try:
            async with self._session.post(
                self._settings.CAPTCHA_VERIFY_URL, data=data, timeout=self._timeout
            ) as response:
                if response.status != 200:
                    return self._record(False, "unexpected_status", status_code=response.status)
                response_text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            return self._record(False, "request_failed", error_type=exc.__class__.__name__)

        try:
            body = json.loads(response_text)
        except json.JSONDecodeError:
            return self._record(False, "malformed_body")
        if not isinstance(body, dict):
            return self._record(False, "malformed_body")

        if body.get("success") is True:
            return self._record(True, "success")
        return self._record(False, "rejected", error_codes=body.get("error-codes", []))

    def _record(self, passed: bool, reason: str, **context: object) -> bool:
        CAPTCHA_VERIFICATIONS.labels(result=reason).inc()
        if passed:
            logger.debug("CAPTCHA verification passed")
        else:
            logger.info(
                "CAPTCHA verification failed",
                extra={"reason": reason, **context},
            )
        return passed


class DisabledCaptchaVerifier(CaptchaVerifierProtocol):
    """Used when CAPTCHA_ENABLED is false; every submission passes."""

    async def verify(self, response_token: str | None, remote_ip: str | None = None) -> bool:
        CAPTCHA_VERIFICATIONS.labels(result="disabled").inc()
        return True
