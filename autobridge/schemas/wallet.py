from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from autobridge.models import WalletTransactionStatus, WalletTransactionType


class BalanceOut(BaseModel):
    total: Decimal
    available: Decimal
    locked: Decimal
    currency: str = "USD"


class EligibilityOut(BaseModel):
    eligible: bool
    available_balance: Decimal
    required_deposit: Decimal
    shortfall: Decimal


class WalletTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tx_type: WalletTransactionType = Field(serialization_alias="type")
    amount: Decimal
    currency: str
    usd_amount: Decimal
    exchange_rate: Decimal | None = None
    balance_before: Decimal
    balance_after: Decimal
    bid_id: int | None = None
    status: WalletTransactionStatus
    description: str | None = None
    reference: str | None = None
    created_at: datetime


class FundWalletRequest(BaseModel):
    # Naira; converted to USD at intake.
    amount: Decimal
    callback_url: str | None = None


class CheckoutOut(BaseModel):
    authorization_url: str
    reference: str
