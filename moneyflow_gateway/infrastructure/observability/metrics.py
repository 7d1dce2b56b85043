"""Prometheus metrics for settlement outcomes, fee volume, and platform health"""

from decimal import Decimal

from prometheus_client import Counter, Histogram

# Settlement metrics
settlement_counter = Counter(
    "moneyflow_settlement_total",
    "Transfer settlements by outcome",
    ["status", "reason"],  # completed | pending_claim | failed, reason only for failed
)

fee_volume_counter = Counter(
    "moneyflow_fee_volume_xaf",
    "Fees charged on settled transfers, in base currency",
    ["scope"],  # national | international
)

side_effect_failures_counter = Counter(
    "moneyflow_side_effect_failures_total",
    "Post-commit hooks that failed after a settled transfer",
    ["hook"],  # merchant_payment | notification | recipient_lookup
)

# Platform metrics
platform_call_failures_counter = Counter(
    "platform_call_failures_total",
    "Failed calls to the hosted data platform",
    ["operation"],
)

notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification insert response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_settlement(status: str, reason: str | None, fee_amount: Decimal | None = None, scope: str | None = None) -> None:
    """Record a settlement outcome and, for settled transfers, the fee charged"""
    settlement_counter.labels(status=status, reason=reason or "").inc()

    if status != "failed" and fee_amount is not None and scope:
        fee_volume_counter.labels(scope=scope).inc(float(fee_amount))
