"""
Ledger invariant validation utilities
"""

import logging
from decimal import Decimal
from uuid import UUID
from sqlalchemy.orm import Session

from app.core.investments.models import Investment, InvestmentStatus
from app.services.wallet_helpers import get_wallet_balances
from app.utils.metrics import record_ledger_invariant_violation

logger = logging.getLogger(__name__)


def validate_wallet_invariants(
    db: Session,
    user_id: UUID,
) -> bool:
    """
    Validate bucket invariants for a user's wallet.

    Invariant: every bucket is non-negative.

    Args:
        db: Database session
        user_id: Wallet owner

    Returns:
        True if invariant holds, False otherwise

    Side effects:
        Records metric if violation detected
    """
    balances = get_wallet_balances(db, user_id)

    negative = {
        bucket: amount
        for bucket, amount in balances.items()
        if bucket != 'total_balance' and amount < 0
    }
    if negative:
        logger.error(
            f"Wallet invariant violation: user_id={user_id}, negative_buckets={negative}"
        )
        record_ledger_invariant_violation()
        return False

    return True


def validate_locked_coverage(
    db: Session,
    user_id: UUID,
) -> bool:
    """
    Validate that locked_balance covers the principal of the user's active investments.

    Deposits and withdrawals never touch locked_balance, so after any engine
    write locked_balance must be >= SUM(locked_amount) over ACTIVE investments.

    Returns:
        True if coverage holds, False otherwise
    """
    active_principal = Decimal("0")
    for (locked_amount,) in db.query(Investment.locked_amount).filter(
        Investment.user_id == user_id,
        Investment.status == InvestmentStatus.ACTIVE.value,
    ):
        active_principal += Decimal(str(locked_amount))

    locked_balance = get_wallet_balances(db, user_id)['locked_balance']
    if locked_balance < active_principal:
        logger.error(
            f"Locked coverage violation: user_id={user_id}, "
            f"locked_balance={locked_balance}, active_principal={active_principal}"
        )
        record_ledger_invariant_violation()
        return False

    return True
