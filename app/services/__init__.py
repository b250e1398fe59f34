"""
Services layer - Application business logic
"""

from app.services.wallet_helpers import (
    ensure_wallet,
    get_wallet_balances,
    WalletError,
    WalletNotFoundError,
    InsufficientBalanceError,
)
from app.services.fund_services import (
    record_deposit,
    record_withdrawal,
    allocate_to_plan,
    ValidationError,
    PlanNotFoundError,
)
from app.services.accrual_service import (
    run_accrual_pass,
    AccrualError,
    AccrualRunError,
    InvestmentValidationError,
)

__all__ = [
    # Wallet helpers
    "ensure_wallet",
    "get_wallet_balances",
    # Fund services
    "record_deposit",
    "record_withdrawal",
    "allocate_to_plan",
    # Accrual engine
    "run_accrual_pass",
    # Exceptions
    "WalletError",
    "WalletNotFoundError",
    "InsufficientBalanceError",
    "ValidationError",
    "PlanNotFoundError",
    "AccrualError",
    "AccrualRunError",
    "InvestmentValidationError",
]
