from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from autobridge.core.database import get_db
from autobridge.dependencies import get_current_user, require_admin
from autobridge.middlewares.rate_limit import limiter
from autobridge.models import BidStatus, User
from autobridge.schemas.bid import BidOut, CreateBidRequest, UpdateBidStatusRequest
from autobridge.services.bidding import forfeit_won_bid, list_bids, place_bid, resolve_bid

router = APIRouter()


@router.post("", response_model=BidOut, status_code=201)
@limiter.limit("20/minute")
def create_bid(request: Request, payload: CreateBidRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return place_bid(db, user, payload.vehicle_id, payload.max_bid_amount)


@router.get("", response_model=list[BidOut])
def my_bids(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return list_bids(db, user.id)


@router.post("/{bid_id}/status", response_model=BidOut)
def update_bid_status(
    bid_id: int,
    payload: UpdateBidStatusRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return resolve_bid(db, bid_id, BidStatus(payload.status))


@router.post("/{bid_id}/forfeit", response_model=BidOut)
def forfeit_bid(bid_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return forfeit_won_bid(db, bid_id)
