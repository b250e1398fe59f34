"""
Tests for the daily accrual job script (CLI contract: JSON output + exit codes)
"""

import importlib.util
import json
import re
import pytest
from datetime import date
from decimal import Decimal
from pathlib import Path

from app.services.accrual_service import AccrualRunError
from app.services.wallet_helpers import get_wallet_balances
from tests.accrual_utils import AS_OF

SCRIPT_PATH = Path(__file__).resolve().parent.parent / "scripts" / "run_daily_accrual_job.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("run_daily_accrual_job", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


job_script = _load_script()


def _summary(**overrides):
    summary = {
        'trace_id': 'job-daily-accrual-20250615-abcdef12',
        'as_of_date': AS_OF.isoformat(),
        'now': '2025-06-15T23:59:59.999999+00:00',
        'dry_run': False,
        'active_found': 2,
        'processed': 2,
        'settled': 0,
        'skipped': 0,
        'not_started': 0,
        'accrued_amount': '30.00',
        'settled_amount': '0',
        'errors_count': 0,
        'errors': [],
        'cancelled': False,
        'timed_out': False,
        'duration_seconds': 0.01,
    }
    summary.update(overrides)
    return summary


def _last_json_line(text):
    lines = [line for line in text.strip().splitlines() if line.strip()]
    return json.loads(lines[-1])


# --- Helpers ---

def test_parse_as_of_date():
    assert job_script.parse_as_of_date("2025-01-27") == date(2025, 1, 27)
    assert job_script.parse_as_of_date(None) is None
    assert job_script.parse_as_of_date("") is None


def test_parse_as_of_date_rejects_bad_format():
    with pytest.raises(ValueError, match="Invalid date format"):
        job_script.parse_as_of_date("27/01/2025")


def test_generate_trace_id_format():
    trace_id = job_script.generate_trace_id(date(2025, 1, 27))
    assert re.fullmatch(r"job-daily-accrual-20250127-[0-9a-f]{8}", trace_id)
    assert trace_id != job_script.generate_trace_id(date(2025, 1, 27))


@pytest.mark.parametrize("overrides,expected", [
    ({}, 0),
    ({'errors_count': 1}, 1),
    ({'cancelled': True}, 1),
    ({'timed_out': True}, 1),
])
def test_exit_code_for(overrides, expected):
    assert job_script.exit_code_for(_summary(**overrides)) == expected


# --- main() with a stubbed pass ---

def test_main_clean_run_exits_0(monkeypatch, capsys):
    calls = {}

    def fake_pass(**kwargs):
        calls.update(kwargs)
        return _summary(trace_id=kwargs['trace_id'])

    monkeypatch.setattr(job_script, "run_accrual_pass", fake_pass)

    exit_code = job_script.main(["--as-of", "2025-06-15", "--max-workers", "2", "--timeout", "60"])

    assert exit_code == 0
    assert calls['as_of_date'] == AS_OF
    assert calls['dry_run'] is False
    assert calls['max_workers'] == 2
    assert calls['timeout_seconds'] == 60
    assert calls['trace_id'].startswith("job-daily-accrual-20250615-")

    output = _last_json_line(capsys.readouterr().out)
    assert output['job'] == "daily_accrual"
    assert output['exit_code'] == 0
    assert output['as_of'] == AS_OF.isoformat()
    assert output['trace_id'] == calls['trace_id']
    assert output['summary']['processed'] == 2


def test_main_partial_run_exits_1(monkeypatch, capsys):
    errors = [{'investment_id': 'x', 'error': 'WalletNotFoundError: no wallet'}]
    monkeypatch.setattr(
        job_script, "run_accrual_pass",
        lambda **kwargs: _summary(errors_count=1, errors=errors),
    )

    assert job_script.main(["--dry-run"]) == 1
    output = _last_json_line(capsys.readouterr().out)
    assert output['exit_code'] == 1
    assert output['dry_run'] is True
    assert output['summary']['errors'] == errors


def test_main_fatal_error_exits_2(monkeypatch, capsys):
    def failing_pass(**kwargs):
        raise AccrualRunError("Cannot list active investments: boom")

    monkeypatch.setattr(job_script, "run_accrual_pass", failing_pass)

    assert job_script.main([]) == 2
    error = _last_json_line(capsys.readouterr().err)
    assert error['exit_code'] == 2
    assert "boom" in error['error']


def test_main_unexpected_error_exits_2(monkeypatch, capsys):
    def failing_pass(**kwargs):
        raise RuntimeError("kaput")

    monkeypatch.setattr(job_script, "run_accrual_pass", failing_pass)

    assert job_script.main([]) == 2
    error = _last_json_line(capsys.readouterr().err)
    assert error['error'] == "Unexpected error: RuntimeError: kaput"


def test_main_bad_date_exits_2_without_running(monkeypatch, capsys):
    monkeypatch.setattr(job_script, "run_accrual_pass", lambda **kwargs: pytest.fail("must not run"))

    assert job_script.main(["--as-of", "2025-02-30"]) == 2
    error = _last_json_line(capsys.readouterr().err)
    assert error['exit_code'] == 2


def test_main_negative_timeout_exits_2(monkeypatch):
    monkeypatch.setattr(job_script, "run_accrual_pass", lambda **kwargs: pytest.fail("must not run"))
    assert job_script.main(["--timeout", "-1"]) == 2


def test_main_unknown_argument_exits_2(monkeypatch):
    monkeypatch.setattr(job_script, "run_accrual_pass", lambda **kwargs: pytest.fail("must not run"))
    assert job_script.main(["--bogus"]) == 2


# --- main() against the test database ---

def test_main_real_run_credits_once(db_session, test_user, make_investment, capsys):
    make_investment(test_user, locked_amount=Decimal("1000"), rate=Decimal("1.5"))

    assert job_script.main(["--as-of", AS_OF.isoformat()]) == 0
    first = _last_json_line(capsys.readouterr().out)
    assert first['summary']['processed'] == 1
    assert Decimal(first['summary']['accrued_amount']) == Decimal("15")

    assert job_script.main(["--as-of", AS_OF.isoformat()]) == 0
    second = _last_json_line(capsys.readouterr().out)
    assert second['summary']['processed'] == 0
    assert second['summary']['skipped'] == 1

    db_session.expire_all()
    assert get_wallet_balances(db_session, test_user.id)['returns_balance'] == Decimal("15")
