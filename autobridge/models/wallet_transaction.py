import enum
from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, Index, JSON, DateTime, func
from sqlalchemy.orm import relationship
from autobridge.core.database import Base
from autobridge.models.base import value_enum


class WalletTransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    BID_LOCK = "bid_lock"
    BID_UNLOCK = "bid_unlock"
    BID_FORFEIT = "bid_forfeit"
    PAYMENT = "payment"
    SIGNUP_FEE = "signup_fee"
    REFUND = "refund"


class WalletTransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REVERSED = "reversed"


class WalletTransaction(Base):
    """Append-only ledger row. Corrections are new rows, never edits."""

    __tablename__ = "wallet_transactions"

    id = Column(Integer, primary_key=True, index=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    tx_type = Column("type", value_enum(WalletTransactionType), nullable=False)
    # As presented by the payer; usd_amount is the normalized ledger value.
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    usd_amount = Column(Numeric(12, 2), nullable=False)
    exchange_rate = Column(Numeric(10, 4), nullable=True)
    balance_before = Column(Numeric(12, 2), nullable=False)
    balance_after = Column(Numeric(12, 2), nullable=False)
    bid_id = Column(Integer, ForeignKey("bids.id"), nullable=True)
    status = Column(value_enum(WalletTransactionStatus), nullable=False, default=WalletTransactionStatus.PENDING)
    description = Column(String(255), nullable=True)
    reference = Column(String(64), nullable=True, unique=True, index=True)
    details = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    wallet = relationship("Wallet", back_populates="transactions")
    bid = relationship("Bid")


Index("ix_wallet_transactions_wallet_id_type", WalletTransaction.wallet_id, WalletTransaction.tx_type)
Index("ix_wallet_transactions_user_created", WalletTransaction.user_id, WalletTransaction.created_at)
