"""
InvestmentPlan model - Return-rate plans users allocate funds to ("bots")
"""

from decimal import Decimal
from sqlalchemy import Column, String, Numeric, Integer, Boolean, Text, CheckConstraint
from sqlalchemy.orm import relationship
from app.core.common.base_model import BaseModel


class InvestmentPlan(BaseModel):
    """
    InvestmentPlan model

    daily_return_rate is a percentage (1.5 means 1.5% of the locked principal
    per day). Investments copy the rate at creation, so editing a plan never
    changes the returns of existing investments.
    """

    __tablename__ = "investment_plans"

    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    strategy = Column(String(255), nullable=True)
    risk_level = Column(String(20), nullable=True)

    daily_return_rate = Column(Numeric(10, 4), nullable=False)
    minimum_investment = Column(Numeric(24, 8), nullable=False, default=Decimal("0"))
    duration_days = Column(Integer, nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    investments = relationship("Investment", back_populates="plan", lazy="select")

    __table_args__ = (
        CheckConstraint('daily_return_rate >= 0', name='ck_investment_plans_rate_non_negative'),
        CheckConstraint('minimum_investment >= 0', name='ck_investment_plans_minimum_non_negative'),
        CheckConstraint('duration_days > 0', name='ck_investment_plans_duration_positive'),
    )

    def __repr__(self) -> str:
        return f"<InvestmentPlan(id={self.id}, name={self.name}, daily_return_rate={self.daily_return_rate}, duration_days={self.duration_days})>"
