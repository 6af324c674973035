import enum
from sqlalchemy import Column, Integer, String, Boolean, Index, DateTime
from sqlalchemy.orm import relationship
from autobridge.core.database import Base
from autobridge.models.base import TimestampMixin, value_enum


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    SUPPORT = "support"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(value_enum(UserRole), nullable=False, default=UserRole.USER)
    is_active = Column(Boolean, default=True, nullable=False)
    signup_fee_paid = Column(Boolean, default=False, nullable=False)
    signup_fee_paid_at = Column(DateTime(timezone=True), nullable=True)

    wallet = relationship("Wallet", back_populates="user", uselist=False)
    bids = relationship("Bid", back_populates="user")


Index("ix_users_role_active", User.role, User.is_active)
