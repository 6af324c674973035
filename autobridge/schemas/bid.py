from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from autobridge.models import BidStatus


class CreateBidRequest(BaseModel):
    vehicle_id: str = Field(min_length=1, max_length=64)
    max_bid_amount: Decimal = Field(gt=0)


class BidOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_id: str
    max_bid_amount: Decimal
    status: BidStatus
    deposit_amount: Decimal | None = None
    deposit_locked: bool
    deposit_forfeited_at: datetime | None = None
    won_at: datetime | None = None


class UpdateBidStatusRequest(BaseModel):
    status: Literal["won", "lost", "outbid"]
