from decimal import Decimal

from sqlalchemy import update

from autobridge.models import Bid, BidStatus, Wallet
from autobridge.services.reconciliation import reconcile_wallets
from autobridge.services.wallet import add_funds, forfeit_deposit, lock_deposit, unlock_deposit


def _locked_bid(db, user, amount):
    bid = Bid(user_id=user.id, vehicle_id="LOT-9", max_bid_amount=Decimal(amount), status=BidStatus.PENDING)
    db.add(bid)
    db.commit()
    lock_deposit(db, user.id, bid.id, Decimal(amount))
    return bid


def test_ledger_activity_reconciles(db, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("1000"))
    first = _locked_bid(db, user, "2000")
    second = _locked_bid(db, user, "3000")
    unlock_deposit(db, first.id)
    forfeit_deposit(db, second.id)

    assert reconcile_wallets(db) == []


def test_balance_edited_outside_ledger_is_reported(db, make_user):
    user = make_user()
    add_funds(db, user.id, Decimal("1000"))
    db.execute(update(Wallet).where(Wallet.user_id == user.id).values(available_balance=Decimal("1200")))
    db.commit()

    [drift] = reconcile_wallets(db)

    assert drift.user_id == user.id
    assert any("available" in issue for issue in drift.issues)
