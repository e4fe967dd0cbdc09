"""Request count and latency metrics for Quart services.

The counter and histogram are looked up in ``app.extensions["metrics"]`` under
``request_count`` and ``request_duration``. Requests are labelled by their URL
rule (``/auth/<action>``), not the raw path.
"""

from __future__ import annotations

import time

from quart import Quart, Response, current_app, g, request

from services.libs.login_service_libs.logging_utils import create_service_logger

logger = create_service_logger("login_service_libs.metrics_middleware")

# Not worth counting: scrapes and health checks
UNTRACKED_PATHS = frozenset({"/metrics", "/healthz"})


def _endpoint_label() -> str:
    rule = request.url_rule
    return rule.rule if rule is not None else "<unmatched>"


def setup_metrics_middleware(app: Quart, logger_name: str | None = None) -> None:
    service_logger = create_service_logger(logger_name) if logger_name else logger

    @app.before_request
    async def start_timer() -> None:
        g.request_started = time.perf_counter()

    @app.after_request
    async def record_request(response: Response) -> Response:
        started = getattr(g, "request_started", None)
        metrics = current_app.extensions.get("metrics") or {}
        if started is None or not metrics or request.path in UNTRACKED_PATHS:
            return response

        endpoint = _endpoint_label()
        try:
            request_count = metrics.get("request_count")
            if request_count is not None:
                request_count.labels(
                    method=request.method,
                    endpoint=endpoint,
                    status_code=str(response.status_code),
                ).inc()
            request_duration = metrics.get("request_duration")
            if request_duration is not None:
                request_duration.labels(method=request.method, endpoint=endpoint).observe(
                    time.perf_counter() - started
                )
        except ValueError as e:
            # Raised by prometheus_client on a label mismatch
            service_logger.error(f"Could not record request metrics: {e}")

        return response
