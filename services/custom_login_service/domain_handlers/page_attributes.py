"""Attributes handed to the presentation layer for each custom page.

Query-string state written by the redirect policy (error codes, success
markers, reset key) is read back here and turned into display values.
"""

from __future__ import annotations

from typing import Any

from services.custom_login_service.config import Settings
from services.custom_login_service.domain_handlers.redirect_policy import RedirectPolicy
from services.custom_login_service.error_catalog import messages_for
from services.custom_login_service.flow_enums import Route
from services.custom_login_service.flow_models import RequestContext

ALREADY_SIGNED_IN_MESSAGE = "You are already signed in."
REGISTRATION_CLOSED_MESSAGE = "Registering new users is currently not allowed."

TEMPLATES: dict[Route, str] = {
    Route.LOGIN: "login-form",
    Route.REGISTER: "register-form",
    Route.LOST_PASSWORD: "password-lost-form",
    Route.RESET_PASSWORD: "password-reset-form",
    Route.ACCOUNT: "account-info-form",
}


class PageAttributes:
    def __init__(self, settings: Settings, redirect_policy: RedirectPolicy) -> None:
        self._settings = settings
        self._redirect_policy = redirect_policy

    def template_for(self, route: Route) -> str | None:
        return TEMPLATES.get(route)

    def build(self, ctx: RequestContext) -> dict[str, Any]:
        """Attributes for the page matching ``ctx.route``.

        Forms are replaced by a notice for visitors who are already signed in.
        """
        if ctx.route == Route.ACCOUNT:
            return self._account(ctx)

        attributes: dict[str, Any] = {
            "show_title": ctx.query.get("show_title") == "true",
            "show_form": True,
            "notice": None,
        }
        if ctx.is_authenticated:
            attributes.update(show_form=False, notice=ALREADY_SIGNED_IN_MESSAGE)
            return attributes

        builders = {
            Route.LOGIN: self._login,
            Route.REGISTER: self._register,
            Route.LOST_PASSWORD: self._lost_password,
            Route.RESET_PASSWORD: self._reset_password,
        }
        attributes.update(builders[ctx.route](ctx))
        return attributes

    def _errors(self, raw: str | None) -> list[str]:
        return messages_for(raw, self._redirect_policy.page_url(Route.LOST_PASSWORD))

    def _login(self, ctx: RequestContext) -> dict[str, Any]:
        registered = ctx.query.get("registered")
        return {
            "redirect": self._redirect_policy.validate_redirect(ctx.query.get("redirect_to"), ""),
            "errors": self._errors(ctx.query.get("login")),
            "logged_out": ctx.query.get("logged_out") == "true",
            "registered": registered is not None,
            "lost_password_sent": ctx.query.get("checkemail") == "confirm",
            "password_updated": ctx.query.get("password") == "changed",
            "username_value": registered or "",
        }

    def _register(self, ctx: RequestContext) -> dict[str, Any]:
        if not self._settings.USERS_CAN_REGISTER:
            return {"show_form": False, "notice": REGISTRATION_CLOSED_MESSAGE, "errors": []}
        return {
            "errors": self._errors(ctx.query.get("register-errors")),
            "recaptcha_site_key": self._settings.CAPTCHA_SITE_KEY,
            "captcha_enabled": self._settings.CAPTCHA_ENABLED,
        }

    def _lost_password(self, ctx: RequestContext) -> dict[str, Any]:
        return {"errors": self._errors(ctx.query.get("errors"))}

    def _reset_password(self, ctx: RequestContext) -> dict[str, Any]:
        return {
            "login": ctx.query.get("login", ""),
            "key": ctx.query.get("key", ""),
            "errors": self._errors(ctx.query.get("error")),
        }

    def _account(self, ctx: RequestContext) -> dict[str, Any]:
        identity = ctx.identity
        if identity is None:
            return {}
        display_name = " ".join(n for n in (identity.first_name, identity.last_name) if n)
        return {
            "login": identity.login,
            "email": identity.email,
            "first_name": identity.first_name,
            "last_name": identity.last_name,
            "display_name": display_name or identity.login,
            "role": identity.role.value,
            "logout_url": self._settings.home_url(self._settings.LOGOUT_PAGE_PATH),
        }
