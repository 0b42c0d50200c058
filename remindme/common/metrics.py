"""Prometheus metric definitions shared by the scheduler processes."""

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response


reminders_scheduled_total = Counter("reminders_scheduled_total", "Total reminders accepted", ["service"])
reminders_rejected_total = Counter(
    "reminders_rejected_total",
    "Total reminder submissions rejected",
    ["service", "error_code"],
)
reminders_delivered_total = Counter("reminders_delivered_total", "Total reminders delivered", ["service"])
reminder_delivery_failures_total = Counter(
    "reminder_delivery_failures_total",
    "Total reminders lost to delivery failure",
    ["service"],
)
reminder_corrupt_payloads_total = Counter(
    "reminder_corrupt_payloads_total",
    "Total queue entries dropped because they failed to deserialize",
    ["service"],
)
store_errors_total = Counter("store_errors_total", "Reminder store call failures", ["service", "operation"])
reminder_dispatch_lag_seconds = Histogram(
    "reminder_dispatch_lag_seconds",
    "Seconds between a reminder's due time and its dispatch",
    ["service"],
)
reminder_queue_depth = Gauge("reminder_queue_depth", "Reminders currently waiting in the queue", ["service"])
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
