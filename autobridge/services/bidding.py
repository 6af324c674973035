import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from autobridge.core.config import get_settings
from autobridge.core.exceptions import BidNotFound, InsufficientBalance, InvalidBidState, SignupFeeRequired
from autobridge.models import Bid, BidStatus, User
from autobridge.services.wallet import (
    check_eligibility,
    lock_bid,
    lock_deposit,
    release_deposit,
    seize_deposit,
    to_money,
    unit_of_work,
)


logger = logging.getLogger(__name__)

RELEASE_OUTCOMES = {BidStatus.LOST, BidStatus.OUTBID}


def _discard_bid(db: Session, bid_id: int) -> None:
    db.query(Bid).filter(Bid.id == bid_id).delete(synchronize_session=False)
    db.commit()


def place_bid(db: Session, user: User, vehicle_id: str, max_bid_amount) -> Bid:
    """Create a bid and reserve its deposit, or leave no trace of it.

    The bid row is committed first so the deposit lock can reference it. If
    locking fails for any reason the bid is deleted before the error is
    re-raised.
    """
    settings = get_settings()
    if settings.require_signup_fee and not user.signup_fee_paid:
        raise SignupFeeRequired()

    eligibility = check_eligibility(db, user.id, max_bid_amount)
    if not eligibility.eligible:
        raise InsufficientBalance(required=eligibility.required_deposit, available=eligibility.available_balance)

    bid = Bid(
        user_id=user.id,
        vehicle_id=vehicle_id,
        max_bid_amount=to_money(max_bid_amount),
        status=BidStatus.PENDING,
        deposit_locked=False,
    )
    db.add(bid)
    db.commit()
    db.refresh(bid)
    bid_id = bid.id

    try:
        lock_deposit(db, user.id, bid_id, max_bid_amount)
    except Exception:
        logger.info("Deposit lock failed for bid %s, discarding bid", bid_id)
        _discard_bid(db, bid_id)
        raise

    db.refresh(bid)
    logger.info("Bid %s placed by user %s on vehicle %s for $%s", bid.id, user.id, vehicle_id, bid.max_bid_amount)
    return bid


def resolve_bid(db: Session, bid_id: int, outcome: BidStatus) -> Bid:
    """Settle a pending bid. Lost and outbid release the deposit; won keeps it locked.

    The status check, status write and release share one transaction under
    the bid row lock, so concurrent resolutions cannot both apply.
    """
    with unit_of_work(db):
        bid = lock_bid(db, bid_id)
        if bid is None:
            raise BidNotFound(bid_id)
        if bid.status != BidStatus.PENDING:
            raise InvalidBidState(bid_id, f"Bid already resolved as {bid.status.value}")
        if outcome == BidStatus.PENDING:
            raise InvalidBidState(bid_id, "Outcome must be won, lost or outbid")

        if outcome in RELEASE_OUTCOMES:
            release_deposit(db, bid)
        else:
            bid.won_at = datetime.now(timezone.utc)
        bid.status = outcome
    db.refresh(bid)
    logger.info("Bid %s resolved as %s", bid_id, outcome.value)
    return bid


def forfeit_won_bid(db: Session, bid_id: int) -> Bid:
    """Forfeit the deposit of a won bid whose buyer did not complete payment."""
    with unit_of_work(db):
        bid = lock_bid(db, bid_id)
        if bid is None:
            raise BidNotFound(bid_id)
        if bid.status != BidStatus.WON:
            raise InvalidBidState(bid_id, "Only won bids can be forfeited")
        entry = seize_deposit(db, bid)
    db.refresh(bid)
    if entry is not None:
        logger.warning("Forfeited $%s deposit for won bid %s", entry.amount, bid_id)
    return bid


def list_bids(db: Session, user_id: int, limit: int = 50) -> list[Bid]:
    return db.query(Bid).filter(Bid.user_id == user_id).order_by(Bid.id.desc()).limit(limit).all()
