"""
Investment models - Allocations and their per-day return records
"""

from decimal import Decimal
from sqlalchemy import Column, String, ForeignKey, Numeric, DateTime, Date, Uuid, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.ext.hybrid import hybrid_property
import enum
from app.core.common.base_model import BaseModel


class InvestmentStatus(str, enum.Enum):
    """Investment status enum"""
    ACTIVE = "active"  # Accruing daily returns
    COMPLETED = "completed"  # Settled (terminal)


class Investment(BaseModel):
    """
    Investment model - A user's allocation to an InvestmentPlan

    Created ACTIVE by the allocation flow with accumulated_returns = 0.
    Afterwards only the accrual engine mutates it:
    - accumulated_returns grows by exactly one daily return per accrual
    - status flips ACTIVE -> COMPLETED exactly once, at settlement

    A COMPLETED investment is immutable except for completed_at.
    """

    __tablename__ = "investments"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", name="fk_investments_user_id"), nullable=False, index=True)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("investment_plans.id", name="fk_investments_plan_id"), nullable=False, index=True)

    # Amounts
    initial_amount = Column(Numeric(24, 8), nullable=False)  # Immutable
    locked_amount = Column(Numeric(24, 8), nullable=False)  # Principal currently at risk
    accumulated_returns = Column(Numeric(24, 8), nullable=False, default=Decimal("0"))

    # Frozen copy of the plan rate at creation (percent per day)
    daily_return_rate = Column(Numeric(10, 4), nullable=False)

    # Lock period
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)  # Maturity instant

    status = Column(String(20), nullable=False, default=InvestmentStatus.ACTIVE.value, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="investments")
    plan = relationship("InvestmentPlan", back_populates="investments")
    daily_returns = relationship("DailyReturnRecord", back_populates="investment", lazy="select", order_by="DailyReturnRecord.date")

    __table_args__ = (
        CheckConstraint('initial_amount > 0', name='ck_investments_initial_amount_positive'),
        CheckConstraint('locked_amount >= 0', name='ck_investments_locked_amount_non_negative'),
        CheckConstraint('accumulated_returns >= 0', name='ck_investments_accumulated_returns_non_negative'),
        CheckConstraint('daily_return_rate >= 0', name='ck_investments_rate_non_negative'),
        CheckConstraint(
            "(status = 'completed' AND completed_at IS NOT NULL) OR (status != 'completed')",
            name='ck_investments_completed_at_set',
        ),
        Index('ix_investments_status_end_date', 'status', 'end_date'),
        Index('ix_investments_user_status', 'user_id', 'status'),
    )

    @hybrid_property
    def total_value(self) -> Decimal:
        """Principal plus returns credited so far"""
        return self.locked_amount + self.accumulated_returns

    def __repr__(self) -> str:
        return (
            f"<Investment(id={self.id}, user_id={self.user_id}, locked_amount={self.locked_amount}, "
            f"accumulated_returns={self.accumulated_returns}, status={self.status})>"
        )


class DailyReturnRecord(BaseModel):
    """
    DailyReturnRecord model - One credited return per investment per calendar day

    UNIQUE(investment_id, date) is the idempotency key of the whole accrual
    engine: the insert is the concurrency gate, a duplicate means the day was
    already processed. Rows are never updated or deleted.
    """

    __tablename__ = "daily_returns"

    investment_id = Column(Uuid(as_uuid=True), ForeignKey("investments.id", name="fk_daily_returns_investment_id"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", name="fk_daily_returns_user_id"), nullable=False, index=True)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("investment_plans.id", name="fk_daily_returns_plan_id"), nullable=False, index=True)

    date = Column(Date, nullable=False)  # Calendar day, not a timestamp
    daily_return = Column(Numeric(24, 8), nullable=False)
    cumulative_return = Column(Numeric(24, 8), nullable=False)  # accumulated_returns right after this credit

    # Relationships
    investment = relationship("Investment", back_populates="daily_returns")

    __table_args__ = (
        CheckConstraint('daily_return >= 0', name='ck_daily_returns_daily_return_non_negative'),
        UniqueConstraint('investment_id', 'date', name='uq_daily_returns_investment_date'),
        Index('ix_daily_returns_user_date', 'user_id', 'date'),
    )

    def __repr__(self) -> str:
        return f"<DailyReturnRecord(investment_id={self.investment_id}, date={self.date}, daily_return={self.daily_return}, cumulative_return={self.cumulative_return})>"
