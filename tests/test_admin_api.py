"""
Admin API tests - token guard, manual accrual trigger, read endpoints
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4
from fastapi.testclient import TestClient

from app.api.admin import accruals as accruals_api
from app.core.ledger.models import AuditEntry, AuditKind
from app.infrastructure.settings import get_settings
from app.services.accrual_service import AccrualRunError
from tests.accrual_utils import ADMIN_HEADERS, AS_OF, NOW

RUN_URL = "/admin/v1/accruals/run"


# --- Token guard ---

def test_missing_admin_token_returns_401(client: TestClient):
    response = client.post(RUN_URL, json={"as_of_date": AS_OF.isoformat()})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "ADMIN_TOKEN_MISSING"


def test_wrong_admin_token_returns_403(client: TestClient):
    response = client.post(RUN_URL, json={}, headers={"X-Admin-Token": "nope"})
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ADMIN_TOKEN_INVALID"


def test_admin_api_disabled_without_configured_token(client: TestClient, monkeypatch):
    monkeypatch.setattr(get_settings(), "ADMIN_API_TOKEN", "")

    response = client.post(RUN_URL, json={}, headers=ADMIN_HEADERS)
    assert response.status_code == 403
    body = response.json()
    assert body["error"]["code"] == "ADMIN_API_DISABLED"
    assert body["error"]["trace_id"]


def test_read_endpoints_are_guarded(client: TestClient, test_user):
    response = client.get(f"/admin/v1/users/{test_user.id}/wallet")
    assert response.status_code == 401


# --- POST /accruals/run ---

def test_run_accruals_credits_and_is_idempotent(client: TestClient, db_session, test_user, make_investment):
    make_investment(test_user, locked_amount=Decimal("1000"), rate=Decimal("1.5"))

    response = client.post(RUN_URL, json={"as_of_date": AS_OF.isoformat()}, headers=ADMIN_HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["as_of_date"] == AS_OF.isoformat()
    assert data["processed"] == 1
    assert Decimal(data["accrued_amount"]) == Decimal("15")
    assert data["errors"] == []

    again = client.post(RUN_URL, json={"as_of_date": AS_OF.isoformat()}, headers=ADMIN_HEADERS)
    assert again.status_code == 200
    assert again.json()["processed"] == 0
    assert again.json()["skipped"] == 1

    wallet = client.get(f"/admin/v1/users/{test_user.id}/wallet", headers=ADMIN_HEADERS).json()
    assert Decimal(wallet["returns_balance"]) == Decimal("15")


def test_run_accruals_without_body(client: TestClient, db_session):
    response = client.post(RUN_URL, headers=ADMIN_HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["active_found"] == 0
    assert data["dry_run"] is False


def test_run_accruals_dry_run_changes_nothing(client: TestClient, db_session, test_user, make_investment):
    investment = make_investment(test_user)

    response = client.post(
        RUN_URL,
        json={"as_of_date": AS_OF.isoformat(), "dry_run": True},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["dry_run"] is True
    assert response.json()["processed"] == 1

    history = client.get(f"/admin/v1/investments/{investment.id}/returns", headers=ADMIN_HEADERS).json()
    assert history["items"] == []
    wallet = client.get(f"/admin/v1/users/{test_user.id}/wallet", headers=ADMIN_HEADERS).json()
    assert Decimal(wallet["returns_balance"]) == Decimal("0")


def test_run_accruals_reports_partial_failures(client: TestClient, db_session, make_user, make_investment):
    healthy = make_user()
    broken = make_user(with_wallet=False)
    make_investment(healthy)
    failing = make_investment(broken, fund_wallet=False)

    response = client.post(RUN_URL, json={"as_of_date": AS_OF.isoformat()}, headers=ADMIN_HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed_with_errors"
    assert data["processed"] == 1
    assert data["errors_count"] == 1
    assert data["errors"][0]["investment_id"] == str(failing.id)


def test_run_accruals_propagates_request_trace_id(client: TestClient, db_session, test_user, make_investment):
    make_investment(test_user)
    trace_id = "admin-run-trace-123"

    response = client.post(
        RUN_URL,
        json={"as_of_date": AS_OF.isoformat()},
        headers={**ADMIN_HEADERS, "X-Trace-ID": trace_id},
    )
    assert response.status_code == 200
    assert response.headers["X-Trace-ID"] == trace_id
    assert response.json()["trace_id"] == trace_id

    db_session.expire_all()
    entry = db_session.query(AuditEntry).filter(AuditEntry.kind == AuditKind.BOT_RETURN).one()
    assert entry.entry_metadata["trace_id"] == trace_id


def test_run_accruals_fatal_error_returns_503(client: TestClient, monkeypatch):
    def failing_pass(*args, **kwargs):
        raise AccrualRunError("Cannot list active investments: connection refused")

    monkeypatch.setattr(accruals_api, "run_accrual_pass", failing_pass)

    response = client.post(RUN_URL, json={}, headers=ADMIN_HEADERS)
    assert response.status_code == 503
    body = response.json()
    assert body["error"]["code"] == "ACCRUAL_RUN_FAILED"
    assert "connection refused" in body["error"]["message"]


def test_run_accruals_rejects_bad_date(client: TestClient):
    response = client.post(RUN_URL, json={"as_of_date": "2025-13-45"}, headers=ADMIN_HEADERS)
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# --- Read endpoints ---

def test_get_user_wallet(client: TestClient, funded_user):
    response = client.get(f"/admin/v1/users/{funded_user.id}/wallet", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == str(funded_user.id)
    assert Decimal(data["available_balance"]) == Decimal("10000")
    assert Decimal(data["locked_balance"]) == Decimal("0")
    assert Decimal(data["returns_balance"]) == Decimal("0")
    assert Decimal(data["total_balance"]) == Decimal("10000")


def test_get_wallet_of_user_without_wallet_is_zero(client: TestClient, make_user):
    user = make_user(with_wallet=False)
    response = client.get(f"/admin/v1/users/{user.id}/wallet", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    assert Decimal(response.json()["total_balance"]) == Decimal("0")


def test_get_wallet_unknown_user_returns_404(client: TestClient, db_session):
    response = client.get(f"/admin/v1/users/{uuid4()}/wallet", headers=ADMIN_HEADERS)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "HTTP_404"


def test_list_user_investments_with_status_filter(client: TestClient, db_session, test_user, make_investment):
    active = make_investment(test_user, end_date=NOW + timedelta(days=10))
    matured = make_investment(test_user, locked_amount=Decimal("500"), end_date=NOW - timedelta(hours=1))

    # Settles the matured one, accrues the other
    run = client.post(RUN_URL, json={"as_of_date": AS_OF.isoformat()}, headers=ADMIN_HEADERS)
    assert run.json()["settled"] == 1

    url = f"/admin/v1/users/{test_user.id}/investments"
    all_items = client.get(url, headers=ADMIN_HEADERS).json()
    assert {item["id"] for item in all_items} == {str(active.id), str(matured.id)}

    completed = client.get(url, params={"status": "completed"}, headers=ADMIN_HEADERS).json()
    assert [item["id"] for item in completed] == [str(matured.id)]
    assert completed[0]["completed_at"] is not None

    active_items = client.get(url, params={"status": "active"}, headers=ADMIN_HEADERS).json()
    assert [item["id"] for item in active_items] == [str(active.id)]
    assert Decimal(active_items[0]["accumulated_returns"]) == Decimal("15")
    assert active_items[0]["completed_at"] is None


def test_list_user_investments_rejects_unknown_status(client: TestClient, test_user):
    response = client.get(
        f"/admin/v1/users/{test_user.id}/investments",
        params={"status": "paused"},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 422


def test_get_investment_returns_history(client: TestClient, db_session, test_user, make_investment):
    investment = make_investment(test_user)
    for offset in range(2):
        day = (AS_OF + timedelta(days=offset)).isoformat()
        response = client.post(RUN_URL, json={"as_of_date": day}, headers=ADMIN_HEADERS)
        assert response.json()["processed"] == 1

    response = client.get(f"/admin/v1/investments/{investment.id}/returns", headers=ADMIN_HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["investment_id"] == str(investment.id)
    assert data["status"] == "active"
    assert data["days_credited"] == 2
    assert Decimal(data["total_returns"]) == Decimal("30")
    assert [item["date"] for item in data["items"]] == [
        AS_OF.isoformat(),
        (AS_OF + timedelta(days=1)).isoformat(),
    ]
    assert [Decimal(item["cumulative_return"]) for item in data["items"]] == [Decimal("15"), Decimal("30")]


def test_get_returns_unknown_investment_returns_404(client: TestClient, db_session):
    response = client.get(f"/admin/v1/investments/{uuid4()}/returns", headers=ADMIN_HEADERS)
    assert response.status_code == 404
