"""Prometheus metric definitions shared across services."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
mpesa_stk_push_total = Counter(
    "mpesa_stk_push_total",
    "STK push initiation outcomes",
    ["service", "outcome"],
)
mpesa_gateway_latency_seconds = Histogram(
    "mpesa_gateway_latency_seconds",
    "Latency of calls to the M-Pesa gateway",
    ["service", "operation"],
)
poll_attempts_total = Counter("poll_attempts_total", "Payment status poll attempts", ["service"])
poll_outcomes_total = Counter(
    "poll_outcomes_total",
    "Terminal payment status poll outcomes",
    ["service", "state"],
)
sales_recorded_total = Counter("sales_recorded_total", "Sales recorded", ["service", "payment_method"])
purchase_link_failures_total = Counter(
    "purchase_link_failures_total",
    "Sales whose user purchase links could not be written",
    ["service"],
)
notification_failures_total = Counter(
    "notification_failures_total",
    "Sale delivery notifications that failed",
    ["service", "channel"],
)
status_cache_hits_total = Counter("status_cache_hits_total", "Terminal status cache hits", ["service"])


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
