"""Prometheus metrics for attendance marks, the credit bank and billing"""

from prometheus_client import Counter, Histogram

# Attendance metrics
attendance_mark_counter = Counter(
    "studio_attendance_marks_total",
    "Attendance marks recorded",
    ["status"],  # present | absent | makeup
)

makeup_credit_counter = Counter(
    "studio_makeup_credits_total",
    "Makeup credit bank changes",
    ["effect"],  # emit | consume | retract
)

# Billing metrics
payments_created_counter = Counter(
    "studio_payments_created_total",
    "Payment records created",
    ["source"],  # enrollment | manual
)

payments_paid_counter = Counter(
    "studio_payments_paid_total",
    "Payments marked as paid",
)

batch_failure_counter = Counter(
    "studio_batch_item_failures_total",
    "Failed records within non-transactional batch edits",
    ["operation"],  # update_future | delete_future
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_credit_effect(effect: str) -> None:
    """Count a credit-bank change; no-op effects are not recorded"""
    if effect != "none":
        makeup_credit_counter.labels(effect=effect).inc()
