"""
Settlement state machine - Decide accrue vs settle, and settle matured investments
"""

import enum
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session

from app.core.investments.models import Investment, InvestmentStatus
from app.core.ledger.models import AuditKind, AuditStatus
from app.services.investment_helpers import mark_investment_completed
from app.services.wallet_helpers import release_settlement, append_audit_entry

logger = logging.getLogger(__name__)


class SettlementState(str, enum.Enum):
    """
    Settlement states

    MATURED_PENDING_SETTLEMENT is derived on every pass, never persisted.
    """
    ACTIVE = "ACTIVE"
    MATURED_PENDING_SETTLEMENT = "MATURED_PENDING_SETTLEMENT"
    COMPLETED = "COMPLETED"


class AlreadySettledError(Exception):
    """Raised when the ACTIVE -> COMPLETED swap finds the investment already completed"""
    pass


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def evaluate_settlement_state(investment: Investment, now: datetime) -> SettlementState:
    """
    Derive the settlement state of an investment at instant `now`.

    - status completed               -> COMPLETED (terminal)
    - status active, end_date <= now -> MATURED_PENDING_SETTLEMENT
    - otherwise                      -> ACTIVE
    """
    if investment.status == InvestmentStatus.COMPLETED.value:
        return SettlementState.COMPLETED
    if as_utc(investment.end_date) <= as_utc(now):
        return SettlementState.MATURED_PENDING_SETTLEMENT
    return SettlementState.ACTIVE


def settle_investment(
    db: Session,
    investment: Investment,
    now: datetime,
    trace_id: Optional[str] = None,
) -> Decimal:
    """
    Settle a matured investment inside the caller's transaction.

    Steps:
    1. CAS the investment ACTIVE -> COMPLETED (completed_at = now)
    2. Wallet, one atomic statement:
       locked_balance    -= locked_amount
       returns_balance   -= accumulated_returns
       available_balance += locked_amount + accumulated_returns
    3. Append one bot_return_credit audit entry

    Does not commit. Any exception leaves the transaction for the caller to
    roll back.

    Returns:
        total credited to available_balance

    Raises:
        AlreadySettledError: investment was no longer ACTIVE
        WalletNotFoundError / InsufficientBalanceError: from the ledger primitive
    """
    locked_amount = Decimal(str(investment.locked_amount))
    accumulated_returns = Decimal(str(investment.accumulated_returns or 0))

    if not mark_investment_completed(db, investment.id, now):
        raise AlreadySettledError(f"Investment {investment.id} is not active")

    total_credit = release_settlement(
        db,
        investment.user_id,
        locked_amount=locked_amount,
        returns_amount=accumulated_returns,
    )

    append_audit_entry(
        db,
        user_id=investment.user_id,
        investment_id=investment.id,
        kind=AuditKind.BOT_RETURN_CREDIT,
        amount=total_credit,
        status=AuditStatus.APPROVED,
        description=(
            f"Bot allocation period ended: ${total_credit:.2f} credited to available balance "
            f"(principal ${locked_amount:.2f} + returns ${accumulated_returns:.2f})"
        ),
        metadata={
            'plan_id': str(investment.plan_id),
            'locked_amount': str(locked_amount),
            'accumulated_returns': str(accumulated_returns),
            'completed_at': as_utc(now).isoformat(),
            'trace_id': trace_id,
        },
    )

    logger.info(
        "Investment settled",
        extra={
            'investment_id': str(investment.id),
            'user_id': str(investment.user_id),
            'total_credit': str(total_credit),
        },
    )
    return total_credit
