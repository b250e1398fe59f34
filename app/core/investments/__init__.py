"""
Investments domain
"""
from app.core.investments.models import Investment, InvestmentStatus, DailyReturnRecord

__all__ = [
    "Investment",
    "InvestmentStatus",
    "DailyReturnRecord",
]
