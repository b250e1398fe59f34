"""
Shared constants and helpers for accrual tests
"""

from datetime import date, datetime, timezone

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}

# Fixed "as of" context used by the accrual tests
AS_OF = date(2025, 6, 15)
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def run_kwargs(**overrides):
    """Default keyword arguments for run_accrual_pass in tests"""
    kwargs = {
        'as_of_date': AS_OF,
        'now': NOW,
        'max_workers': 1,
        'retry_backoff_seconds': 0,
    }
    kwargs.update(overrides)
    return kwargs
