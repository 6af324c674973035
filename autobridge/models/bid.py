import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Boolean, DateTime, Index
from sqlalchemy.orm import relationship
from autobridge.core.database import Base
from autobridge.models.base import TimestampMixin, value_enum


class BidStatus(str, enum.Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    OUTBID = "outbid"


class Bid(Base, TimestampMixin):
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    vehicle_id = Column(String(64), nullable=False)
    max_bid_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(value_enum(BidStatus), nullable=False, default=BidStatus.PENDING)
    won_at = Column(DateTime(timezone=True), nullable=True)

    # Collateral held in the bidder's wallet while the bid is outstanding.
    deposit_amount = Column(Numeric(10, 2), nullable=True)
    deposit_locked = Column(Boolean, default=False, nullable=False)
    deposit_forfeited_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="bids")


Index("ix_bids_user_status", Bid.user_id, Bid.status)
Index("ix_bids_user_vehicle", Bid.user_id, Bid.vehicle_id)
