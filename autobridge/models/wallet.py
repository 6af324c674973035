from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, CheckConstraint
from sqlalchemy.orm import relationship
from autobridge.core.database import Base
from autobridge.models.base import TimestampMixin


class Wallet(Base, TimestampMixin):
    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("total_balance >= 0", name="ck_wallets_total_non_negative"),
        CheckConstraint("available_balance >= 0", name="ck_wallets_available_non_negative"),
        CheckConstraint("locked_balance >= 0", name="ck_wallets_locked_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    # Always total = available + locked, in the ledger currency.
    total_balance = Column(Numeric(12, 2), default=0, nullable=False)
    available_balance = Column(Numeric(12, 2), default=0, nullable=False)
    locked_balance = Column(Numeric(12, 2), default=0, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)

    user = relationship("User", back_populates="wallet")
    transactions = relationship("WalletTransaction", back_populates="wallet")
