"""Prometheus metric definitions shared across services."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


payment_requests_total = Counter("payment_requests_total", "Total payment requests", ["service", "mode"])
payment_validation_failures_total = Counter(
    "payment_validation_failures_total",
    "Payment requests rejected by field validation",
    ["service", "field"],
)
payment_outcomes_total = Counter(
    "payment_outcomes_total",
    "Completed payment attempts by status and reason",
    ["service", "status", "reason"],
)
payment_latency_seconds = Histogram("payment_latency_seconds", "Payment latency seconds", ["service"])
ledger_errors_total = Counter(
    "ledger_errors_total",
    "Ledger store failures",
    ["service", "operation"],
)
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


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
