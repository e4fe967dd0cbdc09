from __future__ import annotations

from prometheus_client import Counter, Histogram

# General request metrics (recorded by the metrics middleware)
REQUEST_COUNT = Counter(
    "custom_login_requests_total",
    "Total number of HTTP requests",
    labelnames=("method", "endpoint", "status_code"),
)

REQUEST_LATENCY = Histogram(
    "custom_login_request_duration_seconds",
    "Latency of HTTP requests",
    labelnames=("method", "endpoint"),
)

# Flow metrics
DISPATCH_OUTCOMES = Counter(
    "custom_login_dispatch_total",
    "Dispatcher decisions per route",
    labelnames=("route", "method", "outcome"),
)

FORM_RESULTS = Counter(
    "custom_login_form_results_total",
    "Form submission results",
    labelnames=("route", "result"),
)

CAPTCHA_VERIFICATIONS = Counter(
    "custom_login_captcha_verifications_total",
    "CAPTCHA verification attempts",
    labelnames=("result",),
)


def get_http_metrics() -> dict[str, Counter | Histogram]:
    """Metrics consumed by the metrics middleware via app.extensions["metrics"]."""
    return {
        "request_count": REQUEST_COUNT,
        "request_duration": REQUEST_LATENCY,
    }
