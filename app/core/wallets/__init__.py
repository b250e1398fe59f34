"""
Wallets domain
"""
from app.core.wallets.models import Wallet, WalletBucket

__all__ = [
    "Wallet",
    "WalletBucket",
]
