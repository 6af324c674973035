from decimal import Decimal

import pytest

from sqlalchemy import update

from autobridge.core.exceptions import InsufficientBalance, InvalidBidState, LockedBalanceMismatch, SignupFeeRequired
from autobridge.models import Bid, BidStatus, Wallet, WalletTransaction, WalletTransactionType
from autobridge.services import bidding
from autobridge.services.bidding import forfeit_won_bid, place_bid, resolve_bid
from autobridge.services.wallet import BidEligibility, add_funds, get_balance


def test_place_bid_locks_deposit(db, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("1000"))

    bid = place_bid(db, user, "LOT-1", Decimal("5000"))

    assert bid.status == BidStatus.PENDING
    assert bid.deposit_locked is True
    assert bid.deposit_amount == Decimal("500")
    balance = get_balance(db, user.id)
    assert (balance.available, balance.locked) == (Decimal("500"), Decimal("500"))


def test_place_bid_requires_signup_fee(db, make_user):
    user = make_user(signup_fee_paid=False)
    add_funds(db, user.id, Decimal("1000"))
    with pytest.raises(SignupFeeRequired):
        place_bid(db, user, "LOT-1", Decimal("5000"))
    assert db.query(Bid).count() == 0


def test_place_bid_rejects_ineligible_before_creating_bid(db, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("450"))

    with pytest.raises(InsufficientBalance) as excinfo:
        place_bid(db, user, "LOT-1", Decimal("5000"))

    assert excinfo.value.shortfall == Decimal("50")
    assert db.query(Bid).count() == 0


def test_place_bid_discards_bid_when_lock_fails(db, make_user, monkeypatch):
    user = make_user()
    add_funds(db, user.id, Decimal("100"))

    # Balance moved between the advisory check and the lock.
    def _stale_eligibility(db, user_id, amount):
        return BidEligibility(
            eligible=True,
            available_balance=Decimal("1000"),
            required_deposit=Decimal("500"),
            shortfall=Decimal("0"),
        )

    monkeypatch.setattr(bidding, "check_eligibility", _stale_eligibility)

    with pytest.raises(InsufficientBalance):
        place_bid(db, user, "LOT-1", Decimal("5000"))

    assert db.query(Bid).count() == 0
    assert db.query(WalletTransaction).count() == 1
    balance = get_balance(db, user.id)
    assert (balance.total, balance.available, balance.locked) == (Decimal("100"), Decimal("100"), Decimal("0"))


def test_lost_bid_releases_deposit(db, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("1000"))
    bid = place_bid(db, user, "LOT-1", Decimal("5000"))

    resolved = resolve_bid(db, bid.id, BidStatus.LOST)

    assert resolved.status == BidStatus.LOST
    assert resolved.deposit_locked is False
    balance = get_balance(db, user.id)
    assert (balance.total, balance.available, balance.locked) == (Decimal("1000"), Decimal("1000"), Decimal("0"))


def test_won_bid_keeps_deposit_locked(db, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("1000"))
    bid = place_bid(db, user, "LOT-1", Decimal("5000"))

    resolved = resolve_bid(db, bid.id, BidStatus.WON)

    assert resolved.status == BidStatus.WON
    assert resolved.won_at is not None
    assert resolved.deposit_locked is True
    assert get_balance(db, user.id).locked == Decimal("500")


def test_resolve_twice_is_rejected(db, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("1000"))
    bid = place_bid(db, user, "LOT-1", Decimal("5000"))
    resolve_bid(db, bid.id, BidStatus.OUTBID)

    with pytest.raises(InvalidBidState):
        resolve_bid(db, bid.id, BidStatus.WON)


def test_forfeit_only_for_won_bids(db, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("1000"))
    bid = place_bid(db, user, "LOT-1", Decimal("5000"))

    with pytest.raises(InvalidBidState):
        forfeit_won_bid(db, bid.id)

    resolve_bid(db, bid.id, BidStatus.WON)
    forfeited = forfeit_won_bid(db, bid.id)

    assert forfeited.deposit_forfeited_at is not None
    balance = get_balance(db, user.id)
    assert (balance.total, balance.available, balance.locked) == (Decimal("500"), Decimal("500"), Decimal("0"))


def test_resolution_sees_status_committed_by_another_session(db, session_factory, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("1000"))
    bid = place_bid(db, user, "LOT-1", Decimal("5000"))
    assert bid.status == BidStatus.PENDING

    other = session_factory()
    try:
        resolve_bid(other, bid.id, BidStatus.LOST)
    finally:
        other.close()

    with pytest.raises(InvalidBidState):
        resolve_bid(db, bid.id, BidStatus.WON)
    with pytest.raises(InvalidBidState):
        forfeit_won_bid(db, bid.id)

    stored = db.query(Bid).filter(Bid.id == bid.id).one()
    assert stored.status == BidStatus.LOST
    assert stored.won_at is None
    balance = get_balance(db, user.id)
    assert (balance.total, balance.available, balance.locked) == (Decimal("1000"), Decimal("1000"), Decimal("0"))


def test_failed_release_leaves_bid_pending(db, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("1000"))
    bid = place_bid(db, user, "LOT-1", Decimal("5000"))
    db.execute(
        update(Wallet)
        .where(Wallet.user_id == user.id)
        .values(locked_balance=Decimal("0"), available_balance=Decimal("1000"))
    )
    db.commit()

    with pytest.raises(LockedBalanceMismatch):
        resolve_bid(db, bid.id, BidStatus.OUTBID)

    stored = db.query(Bid).filter(Bid.id == bid.id).one()
    assert stored.status == BidStatus.PENDING
    assert stored.deposit_locked is True
    unlocks = db.query(WalletTransaction).filter(WalletTransaction.tx_type == WalletTransactionType.BID_UNLOCK)
    assert unlocks.count() == 0
