"""
Concurrency tests for the accrual pass

Each thread uses its own session, like the runner's worker pool.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from app.core.investments.models import Investment, DailyReturnRecord
from app.core.ledger.models import AuditEntry, AuditKind
from app.services import accrual_service
from app.services.accrual_service import run_accrual_pass
from app.services.fund_services import record_deposit
from app.services.wallet_helpers import get_wallet_balances
from tests.accrual_utils import AS_OF, NOW, run_kwargs


def test_same_user_investments_in_parallel_lose_no_update(db_session, session_factory, test_user, make_investment):
    """Two units for the same wallet row running at once both land"""
    first = make_investment(test_user, locked_amount=Decimal("1000"))
    second = make_investment(test_user, locked_amount=Decimal("2000"))
    barrier = threading.Barrier(2)

    def process(investment_id):
        barrier.wait()
        for attempt in range(20):
            db = session_factory()
            try:
                return accrual_service.process_investment(db, investment_id, as_of_date=AS_OF, now=NOW)
            except Exception as e:
                db.rollback()
                if not accrual_service.is_transient_error(e):
                    raise
                time.sleep(0.01 * (attempt + 1))
            finally:
                db.close()
        raise AssertionError("unit never succeeded")

    with ThreadPoolExecutor(max_workers=2) as executor:
        results = list(executor.map(process, [first.id, second.id]))

    assert sorted(amount for _, amount in results) == [Decimal("15"), Decimal("30")]
    assert get_wallet_balances(db_session, test_user.id)['returns_balance'] == Decimal("45")


def test_deposit_during_accrual_is_not_lost(db_session, session_factory, make_user, make_investment):
    users = [make_user() for _ in range(3)]
    for user in users:
        make_investment(user)

    def deposit_all():
        db = session_factory()
        try:
            for user in users:
                for attempt in range(20):
                    try:
                        record_deposit(db, user.id, Decimal("100"))
                        break
                    except Exception as e:
                        db.rollback()
                        if not accrual_service.is_transient_error(e):
                            raise
                        time.sleep(0.01 * (attempt + 1))
        finally:
            db.close()

    depositor = threading.Thread(target=deposit_all)
    depositor.start()
    summary = run_accrual_pass(session_factory, **run_kwargs(max_workers=3, max_retries=20, retry_backoff_seconds=0.01))
    depositor.join()

    assert summary['errors_count'] == 0
    for user in users:
        balances = get_wallet_balances(db_session, user.id)
        assert balances['available_balance'] == Decimal("100")
        assert balances['returns_balance'] == Decimal("15")


def test_overlapping_passes_never_double_credit(db_session, session_factory, make_user, make_investment):
    users = [make_user() for _ in range(3)]
    investments = []
    for user in users:
        investments.append(make_investment(user))
        investments.append(make_investment(user, locked_amount=Decimal("2000")))

    barrier = threading.Barrier(2)

    def run_pass():
        barrier.wait()
        return run_accrual_pass(session_factory, **run_kwargs(max_workers=2, max_retries=20, retry_backoff_seconds=0.01))

    with ThreadPoolExecutor(max_workers=2) as executor:
        summaries = list(executor.map(lambda _: run_pass(), range(2)))

    assert all(s['errors_count'] == 0 for s in summaries)
    assert sum(s['processed'] for s in summaries) == len(investments)
    assert sum(s['skipped'] for s in summaries) == len(investments)

    for investment in investments:
        count = db_session.query(DailyReturnRecord).filter(DailyReturnRecord.investment_id == investment.id).count()
        assert count == 1

    for user in users:
        assert get_wallet_balances(db_session, user.id)['returns_balance'] == Decimal("45")

    assert db_session.query(AuditEntry).filter(AuditEntry.kind == AuditKind.BOT_RETURN).count() == len(investments)
    db_session.expire_all()
    assert {i.accumulated_returns for i in db_session.query(Investment)} == {Decimal("15"), Decimal("30")}
