"""Redirect policy for the login flow.

Computes destination URLs and the query-string state that travels with them.
Every method is a pure function of its arguments, the settings and the hooks.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from services.custom_login_service.config import Settings
from services.custom_login_service.error_catalog import encode_error_codes
from services.custom_login_service.flow_enums import (
    TOKEN_ERROR_CODES,
    EntryPoint,
    ErrorCode,
    Route,
)
from services.custom_login_service.flow_hooks import FlowHooks
from services.custom_login_service.flow_models import FormFailure, Identity, RequestContext

# Query parameter that carries a failure's error codes back to each page.
ERROR_PARAMS: dict[Route, str] = {
    Route.LOGIN: "login",
    Route.REGISTER: "register-errors",
    Route.LOST_PASSWORD: "errors",
    Route.RESET_PASSWORD: "error",
}

# Parameters a native login GET forwards to the custom login page.
_CARRIED_LOGIN_PARAMS = ("redirect_to", "checkemail")


def add_query_args(url: str, **params: str) -> str:
    """Append query parameters, replacing keys that are already present."""
    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    kept = [(key, value) for key, value in pairs if key not in params]
    query = urlencode(kept + list(params.items()), safe=",:/@")
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


class RedirectPolicy:
    def __init__(self, settings: Settings, hooks: FlowHooks) -> None:
        self._settings = settings
        self._hooks = hooks

    def page_url(self, route: Route) -> str:
        paths = {
            Route.LOGIN: self._settings.LOGIN_PAGE_PATH,
            Route.LOGOUT: self._settings.LOGIN_PAGE_PATH,
            Route.REGISTER: self._settings.REGISTER_PAGE_PATH,
            Route.LOST_PASSWORD: self._settings.LOST_PASSWORD_PAGE_PATH,
            Route.RESET_PASSWORD: self._settings.RESET_PASSWORD_PAGE_PATH,
            Route.ACCOUNT: self._settings.ACCOUNT_PAGE_PATH,
        }
        return self._settings.home_url(paths[route])

    @property
    def admin_url(self) -> str:
        return self._settings.home_url(self._settings.ADMIN_URL)

    def validate_redirect(self, url: str | None, fallback: str = "") -> str:
        """Return ``url`` if it stays on this site (or an allowed host), else ``fallback``."""
        if not url:
            return fallback
        candidate = url.strip()
        if any(ord(ch) < 32 or ord(ch) == 127 for ch in candidate) or "\\" in candidate:
            return fallback
        if candidate.startswith("//"):
            return fallback

        parts = urlsplit(candidate)
        if not parts.scheme and not parts.netloc:
            return candidate if candidate.startswith("/") else fallback
        if parts.scheme not in ("http", "https") or not parts.netloc:
            return fallback
        if parts.username or parts.password:
            return fallback

        host = (parts.hostname or "").lower()
        allowed = {self._settings.site_host}
        allowed.update(h.lower() for h in self._settings.ALLOWED_REDIRECT_HOSTS)
        return candidate if host in allowed else fallback

    def logged_in_destination(
        self, identity: Identity, requested_redirect_to: str | None = None
    ) -> str:
        """Where an authenticated visitor belongs.

        Admins go to the admin area (or a same-site ``redirect_to``) only while
        ADMIN_REDIRECT is enabled; everyone else goes to the account page.
        """
        if identity.is_admin and self._settings.ADMIN_REDIRECT:
            return self.validate_redirect(requested_redirect_to, self.admin_url)
        return self._hooks.logged_in_redirect(self.page_url(Route.ACCOUNT), identity)

    def anonymous_destination(self, ctx: RequestContext) -> str:
        """Custom page for a native GET by an anonymous visitor."""
        url = self.page_url(ctx.route)
        if ctx.route == Route.LOGIN:
            carried = {
                name: ctx.query[name] for name in _CARRIED_LOGIN_PARAMS if ctx.query.get(name)
            }
            if carried:
                url = add_query_args(url, **carried)
        return url

    def logout_destination(self) -> str:
        return add_query_args(self.page_url(Route.LOGIN), logged_out="true")

    def login_required_destination(self, ctx: RequestContext) -> str:
        return add_query_args(self.page_url(Route.LOGIN), redirect_to=self.page_url(ctx.route))

    def reset_form_url(self, login: str, key: str) -> str:
        return add_query_args(self.page_url(Route.RESET_PASSWORD), login=login, key=key)

    def token_failure_destination(self, code: ErrorCode) -> str:
        return add_query_args(self.page_url(Route.LOGIN), login=code.value)

    def failure_destination(self, ctx: RequestContext, failure: FormFailure) -> str:
        """Originating page with the failure's codes appended."""
        if ctx.route == Route.RESET_PASSWORD:
            token_codes = [code for code in failure.error_codes if code in TOKEN_ERROR_CODES]
            if token_codes:
                return self.token_failure_destination(token_codes[0])
            return add_query_args(
                self.page_url(Route.RESET_PASSWORD),
                key=ctx.param("rp_key") or "",
                login=ctx.param("rp_login") or "",
                error=encode_error_codes(failure.error_codes),
            )

        codes = encode_error_codes(failure.error_codes)
        return add_query_args(self.page_url(ctx.route), **{ERROR_PARAMS[ctx.route]: codes})

    def decide(self, ctx: RequestContext) -> str | None:
        """Redirect target for a GET, or None when the page should render.

        Reset-password GETs are not decided here: they need the identity
        store to check the reset token first.
        """
        if ctx.route == Route.LOGOUT:
            return self.logout_destination()
        if ctx.route in (Route.LOGIN, Route.REGISTER, Route.LOST_PASSWORD):
            if ctx.identity is not None:
                return self.logged_in_destination(ctx.identity, ctx.redirect_to)
        if ctx.route == Route.ACCOUNT:
            return None if ctx.is_authenticated else self.login_required_destination(ctx)
        if ctx.entry_point == EntryPoint.NATIVE and ctx.route != Route.RESET_PASSWORD:
            return self.anonymous_destination(ctx)
        return None
