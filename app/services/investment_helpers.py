"""
Investment store helpers - Snapshot, row locking, idempotency lookups and read models
"""

from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import update

from app.core.investments.models import Investment, InvestmentStatus, DailyReturnRecord


def load_active_snapshot(db: Session) -> "OrderedDict[UUID, List[UUID]]":
    """
    Snapshot every ACTIVE investment, grouped by owning user.

    One SELECT, so the snapshot is consistent; allocations created after it
    are picked up by the next pass.

    Returns:
        OrderedDict user_id -> [investment_id, ...] (oldest investment first)
    """
    rows = db.query(Investment.id, Investment.user_id).filter(
        Investment.status == InvestmentStatus.ACTIVE.value,
    ).order_by(
        Investment.user_id.asc(),
        Investment.created_at.asc(),
        Investment.id.asc(),
    ).all()

    groups: "OrderedDict[UUID, List[UUID]]" = OrderedDict()
    for investment_id, user_id in rows:
        groups.setdefault(user_id, []).append(investment_id)
    return groups


def lock_investment(db: Session, investment_id: UUID) -> Optional[Investment]:
    """
    Load an investment with a row lock (SELECT ... FOR UPDATE).

    Always reloads from the database so a stale identity-map copy is never
    used for a decision. Returns None if the row does not exist.
    """
    return db.query(Investment).filter(
        Investment.id == investment_id,
    ).populate_existing().with_for_update().first()


def get_daily_return(db: Session, investment_id: UUID, day: date) -> Optional[DailyReturnRecord]:
    """Idempotency lookup: the record for (investment, day), if any"""
    return db.query(DailyReturnRecord).filter(
        DailyReturnRecord.investment_id == investment_id,
        DailyReturnRecord.date == day,
    ).first()


def insert_daily_return(
    db: Session,
    investment: Investment,
    day: date,
    daily_return: Decimal,
    cumulative_return: Decimal,
) -> DailyReturnRecord:
    """
    Insert the (investment, day) record and flush immediately.

    The flush is the concurrency gate: a concurrent pass that already
    inserted the same key makes this raise IntegrityError.
    """
    record = DailyReturnRecord(
        investment_id=investment.id,
        user_id=investment.user_id,
        plan_id=investment.plan_id,
        date=day,
        daily_return=daily_return,
        cumulative_return=cumulative_return,
    )
    db.add(record)
    db.flush()
    return record


def mark_investment_completed(db: Session, investment_id: UUID, now: datetime) -> bool:
    """
    Compare-and-swap ACTIVE -> COMPLETED.

    Returns False when the investment is no longer ACTIVE (another pass
    settled it first). Does not commit.
    """
    result = db.execute(
        update(Investment)
        .where(
            Investment.id == investment_id,
            Investment.status == InvestmentStatus.ACTIVE.value,
        )
        .values(
            status=InvestmentStatus.COMPLETED.value,
            completed_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def get_returns_history(db: Session, investment_id: UUID) -> List[DailyReturnRecord]:
    """Daily return records for an investment, oldest first"""
    return db.query(DailyReturnRecord).filter(
        DailyReturnRecord.investment_id == investment_id,
    ).order_by(DailyReturnRecord.date.asc()).all()


def list_investments_for_user(
    db: Session,
    user_id: UUID,
    status: Optional[InvestmentStatus] = None,
) -> List[Investment]:
    """A user's investments, newest first, optionally filtered by status"""
    query = db.query(Investment).filter(Investment.user_id == user_id)
    if status is not None:
        query = query.filter(Investment.status == status.value)
    return query.order_by(Investment.start_date.desc(), Investment.created_at.desc()).all()


def summarize_returns(records: List[DailyReturnRecord]) -> Dict[str, Any]:
    """Totals for a returns history view"""
    total = sum((Decimal(str(r.daily_return)) for r in records), Decimal("0"))
    return {
        'days_credited': len(records),
        'total_returns': total,
    }
