"""
Core domain models - Export all models so mapper relationships always resolve
"""

from app.core.users.models import User
from app.core.wallets.models import Wallet
from app.core.plans.models import InvestmentPlan
from app.core.investments.models import Investment, DailyReturnRecord
from app.core.ledger.models import AuditEntry

__all__ = ["User", "Wallet", "InvestmentPlan", "Investment", "DailyReturnRecord", "AuditEntry"]
