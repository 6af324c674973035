from autobridge.models.user import User, UserRole
from autobridge.models.wallet import Wallet
from autobridge.models.wallet_transaction import WalletTransaction, WalletTransactionType, WalletTransactionStatus
from autobridge.models.bid import Bid, BidStatus

__all__ = [
    "User",
    "UserRole",
    "Wallet",
    "WalletTransaction",
    "WalletTransactionType",
    "WalletTransactionStatus",
    "Bid",
    "BidStatus",
]
