"""
Prometheus metrics for observability
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import CollectorRegistry

# Create a custom registry to avoid conflicts
metrics_registry = CollectorRegistry()

# Accrual metrics
accrual_credits_total = Counter(
    "accrual_credits_total",
    "Total daily returns credited",
    registry=metrics_registry,
)

accrual_settlements_total = Counter(
    "accrual_settlements_total",
    "Total matured investments settled",
    registry=metrics_registry,
)

accrual_skips_total = Counter(
    "accrual_skips_total",
    "Total investments skipped by an accrual pass",
    ["reason"],  # already_processed, not_active, outside_term
    registry=metrics_registry,
)

accrual_errors_total = Counter(
    "accrual_errors_total",
    "Total per-investment accrual errors",
    ["reason"],  # validation, insufficient_balance, wallet_missing, transient, database, unexpected
    registry=metrics_registry,
)

accrual_retries_total = Counter(
    "accrual_retries_total",
    "Total per-investment retries after transient database errors",
    registry=metrics_registry,
)

accrual_passes_total = Counter(
    "accrual_passes_total",
    "Total accrual passes",
    ["outcome"],  # ok, partial, cancelled, failed
    registry=metrics_registry,
)

accrual_pass_duration_seconds = Histogram(
    "accrual_pass_duration_seconds",
    "Accrual pass duration in seconds",
    registry=metrics_registry,
    buckets=(0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0, 1800.0, 3600.0),
)

# Ledger metrics
ledger_invariant_violations_total = Counter(
    "ledger_invariant_violations_total",
    "Total ledger invariant violations detected",
    registry=metrics_registry,
)


def record_accrual_credit() -> None:
    """Record one daily return credited"""
    accrual_credits_total.inc()


def record_settlement() -> None:
    """Record one investment settled"""
    accrual_settlements_total.inc()


def record_accrual_skip(reason: str) -> None:
    """
    Record a skipped investment.

    Args:
        reason: already_processed, not_active, outside_term
    """
    accrual_skips_total.labels(reason=reason).inc()


def record_accrual_error(reason: str) -> None:
    """
    Record a per-investment error.

    Args:
        reason: Error class (validation, insufficient_balance, wallet_missing, transient, database, unexpected)
    """
    accrual_errors_total.labels(reason=reason).inc()


def record_accrual_retry() -> None:
    """Record a transient-error retry"""
    accrual_retries_total.inc()


def record_accrual_pass(outcome: str, duration_seconds: float) -> None:
    """
    Record a finished (or failed) accrual pass.

    Args:
        outcome: ok, partial, cancelled, failed
        duration_seconds: Wall time of the pass
    """
    accrual_passes_total.labels(outcome=outcome).inc()
    accrual_pass_duration_seconds.observe(duration_seconds)


def record_ledger_invariant_violation() -> None:
    """Record ledger invariant violation"""
    ledger_invariant_violations_total.inc()


def get_metrics_output() -> bytes:
    """Get Prometheus metrics output"""
    return generate_latest(metrics_registry)


__all__ = [
    "CONTENT_TYPE_LATEST",
    "get_metrics_output",
    "record_accrual_credit",
    "record_settlement",
    "record_accrual_skip",
    "record_accrual_error",
    "record_accrual_retry",
    "record_accrual_pass",
    "record_ledger_invariant_violation",
]
