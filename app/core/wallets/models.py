"""
Wallet model - Per-user balance buckets
"""

from decimal import Decimal
from sqlalchemy import Column, ForeignKey, Numeric, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
import enum
from app.core.common.base_model import BaseModel


class WalletBucket(str, enum.Enum):
    """Wallet bucket enum (column names on the wallets table)"""
    AVAILABLE = "available_balance"  # Spendable / withdrawable
    LOCKED = "locked_balance"  # Principal committed to active investments
    RETURNS = "returns_balance"  # Returns credited by daily accrual, released at settlement


class Wallet(BaseModel):
    """
    Wallet model - One row per user holding the three balance buckets

    The row is the per-user serialization point: every writer (deposit and
    withdrawal approval, allocation, accrual, settlement) mutates it through
    the single conditional UPDATE in app.services.wallet_helpers.apply_wallet_delta.
    Never read a balance, compute in memory and write it back.
    """

    __tablename__ = "wallets"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", name="fk_wallets_user_id"), nullable=False, unique=True, index=True)

    available_balance = Column(Numeric(24, 8), nullable=False, default=Decimal("0"))
    locked_balance = Column(Numeric(24, 8), nullable=False, default=Decimal("0"))
    returns_balance = Column(Numeric(24, 8), nullable=False, default=Decimal("0"))

    # Relationships
    user = relationship("User", back_populates="wallet")

    __table_args__ = (
        CheckConstraint('available_balance >= 0', name='ck_wallets_available_non_negative'),
        CheckConstraint('locked_balance >= 0', name='ck_wallets_locked_non_negative'),
        CheckConstraint('returns_balance >= 0', name='ck_wallets_returns_non_negative'),
    )

    @property
    def total_balance(self) -> Decimal:
        return self.available_balance + self.locked_balance + self.returns_balance

    def __repr__(self) -> str:
        return (
            f"<Wallet(user_id={self.user_id}, available={self.available_balance}, "
            f"locked={self.locked_balance}, returns={self.returns_balance})>"
        )
