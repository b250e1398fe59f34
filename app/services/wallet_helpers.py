"""
Wallet provisioning, atomic balance mutation and audit helpers (ledger store)
"""

from decimal import Decimal
from typing import Any, Dict, Optional, Union
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import func, update

from app.core.wallets.models import Wallet, WalletBucket
from app.core.ledger.models import AuditEntry, AuditKind, AuditStatus

ZERO = Decimal("0")

Amount = Union[Decimal, int, str]


class WalletError(Exception):
    """Base exception for wallet operations"""
    pass


class WalletNotFoundError(WalletError):
    """Raised when the user has no wallet row"""
    pass


class InsufficientBalanceError(WalletError):
    """Raised when a debit would take a bucket below zero"""
    pass


def _to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    return Decimal(str(value))


def ensure_wallet(db: Session, user_id: UUID) -> Wallet:
    """
    Ensure a wallet row exists for a user.

    Creates a zero-balance wallet if missing. Flushes, does not commit.
    """
    wallet = db.query(Wallet).filter(Wallet.user_id == user_id).first()
    if wallet:
        return wallet

    wallet = Wallet(
        user_id=user_id,
        available_balance=ZERO,
        locked_balance=ZERO,
        returns_balance=ZERO,
    )
    db.add(wallet)
    db.flush()  # Flush to get the ID
    return wallet


def get_wallet_balances(db: Session, user_id: UUID) -> Dict[str, Decimal]:
    """
    Get wallet balances for all buckets.

    Reads the columns directly so the result reflects committed atomic
    updates even when a Wallet instance is cached in the session.

    Returns:
    - total_balance: Sum of all buckets
    - available_balance
    - locked_balance
    - returns_balance
    """
    row = db.query(
        Wallet.available_balance,
        Wallet.locked_balance,
        Wallet.returns_balance,
    ).filter(Wallet.user_id == user_id).first()

    if row is None:
        available_balance = locked_balance = returns_balance = ZERO
    else:
        available_balance = Decimal(str(row.available_balance))
        locked_balance = Decimal(str(row.locked_balance))
        returns_balance = Decimal(str(row.returns_balance))

    return {
        'total_balance': available_balance + locked_balance + returns_balance,
        'available_balance': available_balance,
        'locked_balance': locked_balance,
        'returns_balance': returns_balance,
    }


def apply_wallet_delta(
    db: Session,
    user_id: UUID,
    *,
    available: Amount = ZERO,
    locked: Amount = ZERO,
    returns: Amount = ZERO,
) -> None:
    """
    Atomically add signed deltas to a user's wallet buckets.

    Emits a single conditional statement:

        UPDATE wallets
           SET available_balance = available_balance + :d1, ...
         WHERE user_id = :uid AND available_balance >= :-d1 ...

    The database serializes concurrent writers on the row, so deposits,
    withdrawals, accruals and settlements for the same user never lose an
    update. Debit guards make the whole mutation fail instead of driving a
    bucket negative.

    Does not commit.

    Raises:
        WalletNotFoundError: user has no wallet
        InsufficientBalanceError: a debited bucket holds less than the debit
    """
    deltas = {
        WalletBucket.AVAILABLE: _to_decimal(available),
        WalletBucket.LOCKED: _to_decimal(locked),
        WalletBucket.RETURNS: _to_decimal(returns),
    }
    deltas = {bucket: delta for bucket, delta in deltas.items() if delta != ZERO}
    if not deltas:
        return

    conditions = [Wallet.user_id == user_id]
    values: Dict[str, Any] = {}
    for bucket, delta in deltas.items():
        column = getattr(Wallet, bucket.value)
        values[bucket.value] = column + delta
        if delta < ZERO:
            conditions.append(column >= -delta)
    values["updated_at"] = func.now()

    result = db.execute(
        update(Wallet)
        .where(*conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    exists = db.query(Wallet.id).filter(Wallet.user_id == user_id).first()
    if exists is None:
        raise WalletNotFoundError(f"No wallet for user {user_id}")

    requested = ", ".join(f"{bucket.value} {delta:+}" for bucket, delta in deltas.items())
    raise InsufficientBalanceError(f"Insufficient balance for user {user_id}: {requested}")


def credit_returns(db: Session, user_id: UUID, amount: Amount) -> None:
    """Credit one daily return to returns_balance"""
    apply_wallet_delta(db, user_id, returns=amount)


def release_settlement(
    db: Session,
    user_id: UUID,
    locked_amount: Amount,
    returns_amount: Amount,
) -> Decimal:
    """
    Release a matured investment back to available funds.

    locked_balance -= locked_amount, returns_balance -= returns_amount and
    available_balance += locked_amount + returns_amount, in one statement.
    The wallet total is unchanged.

    Returns the amount credited to available_balance.
    """
    locked_amount = _to_decimal(locked_amount)
    returns_amount = _to_decimal(returns_amount)
    total_credit = locked_amount + returns_amount
    apply_wallet_delta(
        db,
        user_id,
        available=total_credit,
        locked=-locked_amount,
        returns=-returns_amount,
    )
    return total_credit


def append_audit_entry(
    db: Session,
    *,
    user_id: UUID,
    kind: AuditKind,
    amount: Amount,
    description: str,
    investment_id: Optional[UUID] = None,
    status: AuditStatus = AuditStatus.COMPLETED,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditEntry:
    """Append one immutable audit entry. Does not commit."""
    entry = AuditEntry(
        user_id=user_id,
        investment_id=investment_id,
        kind=kind,
        amount=_to_decimal(amount),
        status=status.value,
        description=description,
        entry_metadata=metadata,
    )
    db.add(entry)
    return entry
