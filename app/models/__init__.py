"""
Models registry for Alembic - Import all models here to ensure Base.metadata is complete

This module is used ONLY by Alembic to discover all models.
Import order matters to avoid circular dependencies:
1. Base and common models first
2. Models without foreign keys
3. Models with foreign keys (in dependency order)
"""

# Import Base first
from app.infrastructure.database import Base

# 1. User model (no foreign keys to other domain models)
from app.core.users.models import User, UserStatus

# 2. Wallet (depends on User)
from app.core.wallets.models import Wallet, WalletBucket

# 3. Plans (no foreign keys)
from app.core.plans.models import InvestmentPlan

# 4. Investments and daily return records (depend on User and InvestmentPlan)
from app.core.investments.models import Investment, InvestmentStatus, DailyReturnRecord

# 5. Audit trail (depends on User and Investment)
from app.core.ledger.models import AuditEntry, AuditKind, AuditStatus

# Export all for convenience
__all__ = [
    "Base",
    "User",
    "UserStatus",
    "Wallet",
    "WalletBucket",
    "InvestmentPlan",
    "Investment",
    "InvestmentStatus",
    "DailyReturnRecord",
    "AuditEntry",
    "AuditKind",
    "AuditStatus",
]
