"""
Fund movement services - Deposits, withdrawals and plan allocations on the wallet ledger
"""

import logging
from decimal import Decimal
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.investments.models import Investment, InvestmentStatus
from app.core.ledger.models import AuditEntry, AuditKind, AuditStatus
from app.core.plans.models import InvestmentPlan
from app.services.wallet_helpers import (
    InsufficientBalanceError,
    apply_wallet_delta,
    append_audit_entry,
    ensure_wallet,
)

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when validation fails"""
    pass


class PlanNotFoundError(Exception):
    """Raised when the investment plan does not exist"""
    pass


def _validate_amount(amount: Decimal) -> Decimal:
    if isinstance(amount, float):
        raise ValidationError("Amount must be a Decimal, not float")
    try:
        amount = Decimal(str(amount))
    except ArithmeticError:
        raise ValidationError(f"Invalid amount: {amount!r}")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than 0")
    return amount


def record_deposit(
    db: Session,
    user_id: UUID,
    amount: Decimal,
    *,
    reference: Optional[str] = None,
) -> AuditEntry:
    """
    Record an approved deposit: available_balance += amount.

    Creates the wallet if missing. Commits.
    """
    amount = _validate_amount(amount)

    try:
        try:
            ensure_wallet(db, user_id)
        except IntegrityError:
            # A concurrent first deposit created the wallet; nothing else is pending yet
            db.rollback()
        apply_wallet_delta(db, user_id, available=amount)

        entry = append_audit_entry(
            db,
            user_id=user_id,
            kind=AuditKind.DEPOSIT,
            amount=amount,
            status=AuditStatus.APPROVED,
            description=f"Deposit approved: ${amount:.2f}",
            metadata={'reference': reference} if reference else None,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Deposit recorded", extra={'user_id': str(user_id), 'amount': str(amount)})
    return entry


def record_withdrawal(
    db: Session,
    user_id: UUID,
    amount: Decimal,
    *,
    reference: Optional[str] = None,
) -> AuditEntry:
    """
    Record an approved withdrawal: available_balance -= amount.

    Raises:
        ValidationError: amount <= 0
        WalletNotFoundError: user has no wallet
        InsufficientBalanceError: available_balance < amount (nothing is written)
    """
    amount = _validate_amount(amount)

    try:
        apply_wallet_delta(db, user_id, available=-amount)
    except Exception:
        db.rollback()
        raise

    entry = append_audit_entry(
        db,
        user_id=user_id,
        kind=AuditKind.WITHDRAWAL,
        amount=amount,
        status=AuditStatus.APPROVED,
        description=f"Withdrawal approved: ${amount:.2f}",
        metadata={'reference': reference} if reference else None,
    )
    db.commit()

    logger.info("Withdrawal recorded", extra={'user_id': str(user_id), 'amount': str(amount)})
    return entry


def allocate_to_plan(
    db: Session,
    user_id: UUID,
    plan_id: UUID,
    amount: Decimal,
    start_date: Optional[datetime] = None,
) -> Investment:
    """
    Allocate funds to an investment plan.

    Moves amount from available_balance to locked_balance and creates an
    ACTIVE Investment with:
    - locked_amount = initial_amount = amount
    - accumulated_returns = 0
    - daily_return_rate copied from the plan (frozen)
    - end_date = start_date + plan.duration_days

    Commits.

    Raises:
        ValidationError: amount <= 0, below plan minimum, inactive plan, negative rate
        PlanNotFoundError: plan does not exist
        InsufficientBalanceError: available_balance < amount
    """
    amount = _validate_amount(amount)

    plan = db.query(InvestmentPlan).filter(InvestmentPlan.id == plan_id).first()
    if not plan:
        raise PlanNotFoundError(f"Investment plan {plan_id} not found")
    if not plan.is_active:
        raise ValidationError(f"Investment plan {plan.name} is not active")

    rate = Decimal(str(plan.daily_return_rate))
    if rate < 0:
        raise ValidationError(f"Investment plan {plan.name} has a negative rate")

    minimum = Decimal(str(plan.minimum_investment or 0))
    if amount < minimum:
        raise ValidationError(f"Minimum investment for {plan.name} is {minimum}")

    if start_date is None:
        start_date = datetime.now(timezone.utc)
    elif start_date.tzinfo is None:
        start_date = start_date.replace(tzinfo=timezone.utc)

    try:
        apply_wallet_delta(db, user_id, available=-amount, locked=amount)

        investment = Investment(
            user_id=user_id,
            plan_id=plan.id,
            initial_amount=amount,
            locked_amount=amount,
            accumulated_returns=Decimal("0"),
            daily_return_rate=rate,
            start_date=start_date,
            end_date=start_date + timedelta(days=plan.duration_days),
            status=InvestmentStatus.ACTIVE.value,
        )
        db.add(investment)
        db.flush()  # Get investment.id

        append_audit_entry(
            db,
            user_id=user_id,
            investment_id=investment.id,
            kind=AuditKind.BOT_ALLOCATION,
            amount=amount,
            description=f"Allocated ${amount:.2f} to {plan.name}",
            metadata={
                'plan_id': str(plan.id),
                'daily_return_rate': str(rate),
                'duration_days': plan.duration_days,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(investment)
    logger.info(
        "Funds allocated to plan",
        extra={'user_id': str(user_id), 'plan_id': str(plan.id), 'investment_id': str(investment.id), 'amount': str(amount)},
    )
    return investment


__all__ = [
    "ValidationError",
    "PlanNotFoundError",
    "InsufficientBalanceError",
    "record_deposit",
    "record_withdrawal",
    "allocate_to_plan",
]
