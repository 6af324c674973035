"""Wallet ledger: balances, funding, and bid-deposit reservation.

Every mutating function here is one unit of work. The bid row (if any) and
then the wallet row are locked ``FOR UPDATE`` in that order, the balance
change is a server-side conditional UPDATE, and the paired
``WalletTransaction`` row is written in the same commit. Any failure rolls the
session back, leaving both balances and history untouched.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autobridge.core.config import get_settings
from autobridge.core.exceptions import (
    BidNotFound,
    DepositAlreadyLocked,
    DepositForfeited,
    InsufficientBalance,
    InvalidAmount,
    LockedBalanceMismatch,
    WalletNotFound,
)
from autobridge.models import (
    Bid,
    User,
    Wallet,
    WalletTransaction,
    WalletTransactionStatus,
    WalletTransactionType,
)


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MAX_HISTORY = 100


@dataclass(frozen=True)
class BalanceSnapshot:
    total: Decimal
    available: Decimal
    locked: Decimal


@dataclass(frozen=True)
class BidEligibility:
    eligible: bool
    available_balance: Decimal
    required_deposit: Decimal
    shortfall: Decimal


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _positive_amount(value) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(value)
    try:
        amount = to_money(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(value)
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(value)
    return amount


def _exchange_rate(value) -> Decimal | None:
    if value is None:
        return None
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise InvalidAmount(value)
    if not rate.is_finite() or rate <= 0:
        raise InvalidAmount(value)
    return rate


def required_deposit(bid_amount) -> Decimal:
    rate = Decimal(str(get_settings().bid_deposit_rate))
    return to_money(Decimal(str(bid_amount)) * rate)


@contextmanager
def unit_of_work(db: Session):
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _get_wallet(db: Session, user_id: int) -> Wallet | None:
    return db.query(Wallet).filter(Wallet.user_id == user_id).first()


def _lock_wallet(db: Session, user_id: int) -> Wallet | None:
    return (
        db.query(Wallet)
        .filter(Wallet.user_id == user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def lock_bid(db: Session, bid_id: int) -> Bid | None:
    return db.query(Bid).filter(Bid.id == bid_id).with_for_update().populate_existing().first()


def _record(
    db: Session,
    wallet: Wallet,
    tx_type: WalletTransactionType,
    *,
    amount: Decimal,
    balance_before: Decimal,
    balance_after: Decimal,
    description: str,
    currency: str | None = None,
    usd_amount: Decimal | None = None,
    exchange_rate: Decimal | None = None,
    bid_id: int | None = None,
    reference: str | None = None,
    details: dict | None = None,
) -> WalletTransaction:
    entry = WalletTransaction(
        wallet_id=wallet.id,
        user_id=wallet.user_id,
        tx_type=tx_type,
        amount=amount,
        currency=currency or wallet.currency,
        usd_amount=amount if usd_amount is None else usd_amount,
        exchange_rate=exchange_rate,
        balance_before=balance_before,
        balance_after=balance_after,
        bid_id=bid_id,
        status=WalletTransactionStatus.COMPLETED,
        description=description,
        reference=reference,
        details=details,
    )
    db.add(entry)
    return entry


def create_wallet(db: Session, user_id: int) -> Wallet:
    """Provision the user's empty wallet. Called once at registration."""
    wallet = _get_wallet(db, user_id)
    if wallet:
        return wallet
    wallet = Wallet(
        user_id=user_id,
        total_balance=ZERO,
        available_balance=ZERO,
        locked_balance=ZERO,
        currency=get_settings().ledger_currency,
    )
    db.add(wallet)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent registration request created it first.
        db.rollback()
        existing = _get_wallet(db, user_id)
        if existing is None:
            raise
        return existing
    db.refresh(wallet)
    logger.info("Wallet created for user %s", user_id)
    return wallet


def get_balance(db: Session, user_id: int) -> BalanceSnapshot:
    wallet = _get_wallet(db, user_id)
    if not wallet:
        return BalanceSnapshot(total=ZERO, available=ZERO, locked=ZERO)
    return BalanceSnapshot(
        total=to_money(wallet.total_balance),
        available=to_money(wallet.available_balance),
        locked=to_money(wallet.locked_balance),
    )


def get_transactions(db: Session, user_id: int, limit: int = 20) -> list[WalletTransaction]:
    limit = max(1, min(int(limit), MAX_HISTORY))
    return (
        db.query(WalletTransaction)
        .filter(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .limit(limit)
        .all()
    )


def has_transaction_reference(db: Session, reference: str) -> bool:
    return db.query(WalletTransaction.id).filter(WalletTransaction.reference == reference).first() is not None


def check_eligibility(db: Session, user_id: int, bid_amount) -> BidEligibility:
    """Advisory check of the deposit rule. Reserves nothing; lock_deposit re-validates."""
    required = required_deposit(_positive_amount(bid_amount))
    available = get_balance(db, user_id).available
    return BidEligibility(
        eligible=available >= required,
        available_balance=available,
        required_deposit=required,
        shortfall=max(ZERO, required - available),
    )


def add_funds(
    db: Session,
    user_id: int,
    usd_amount,
    source_currency: str | None = None,
    source_amount=None,
    exchange_rate=None,
    reference: str | None = None,
    description: str | None = None,
) -> WalletTransaction:
    """Credit verified external funds to total and available balance.

    The caller must have verified the payment already (e.g. a signed webhook);
    no verification happens here.
    """
    usd = _positive_amount(usd_amount)
    currency = (source_currency or get_settings().ledger_currency).upper()
    original = usd if source_amount is None else _positive_amount(source_amount)
    rate = _exchange_rate(exchange_rate)

    with unit_of_work(db):
        wallet = _lock_wallet(db, user_id)
        if wallet is None:
            raise WalletNotFound(user_id)
        before = to_money(wallet.total_balance)
        db.execute(
            update(Wallet)
            .where(Wallet.id == wallet.id)
            .values(
                total_balance=Wallet.total_balance + usd,
                available_balance=Wallet.available_balance + usd,
            )
            .execution_options(synchronize_session=False)
        )
        entry = _record(
            db,
            wallet,
            WalletTransactionType.DEPOSIT,
            amount=original,
            currency=currency,
            usd_amount=usd,
            exchange_rate=rate,
            balance_before=before,
            balance_after=before + usd,
            description=description or f"Wallet funding via {currency}",
            reference=reference,
            details={"reference": reference},
        )
    db.refresh(entry)
    logger.info("Added $%s to wallet for user %s (reference=%s)", usd, user_id, reference)
    return entry


def record_signup_fee(
    db: Session,
    user_id: int,
    amount,
    currency: str,
    usd_amount,
    reference: str,
    exchange_rate=None,
) -> WalletTransaction:
    """Log an externally paid signup fee. Wallet balances are not touched."""
    original = _positive_amount(amount)
    usd = _positive_amount(usd_amount)
    rate = _exchange_rate(exchange_rate)

    with unit_of_work(db):
        user = db.query(User).filter(User.id == user_id).with_for_update().first()
        wallet = _lock_wallet(db, user_id)
        if user is None or wallet is None:
            raise WalletNotFound(user_id)
        total = to_money(wallet.total_balance)
        entry = _record(
            db,
            wallet,
            WalletTransactionType.SIGNUP_FEE,
            amount=original,
            currency=currency.upper(),
            usd_amount=usd,
            exchange_rate=rate,
            balance_before=total,
            balance_after=total,
            description="Signup fee payment",
            reference=reference,
            details={"reference": reference},
        )
        user.signup_fee_paid = True
        user.signup_fee_paid_at = _now()
    db.refresh(entry)
    logger.info("Signup fee recorded for user %s (%s %s)", user_id, original, currency)
    return entry


def lock_deposit(db: Session, user_id: int, bid_id: int, bid_amount) -> WalletTransaction:
    """Move the bid's collateral from available to locked.

    A bid that already holds a locked deposit raises DepositAlreadyLocked; a
    second lock never deducts twice.
    """
    amount = _positive_amount(bid_amount)
    deposit = required_deposit(amount)
    if deposit <= 0:
        raise InvalidAmount(bid_amount)

    with unit_of_work(db):
        bid = lock_bid(db, bid_id)
        if bid is None or bid.user_id != user_id:
            raise BidNotFound(bid_id)
        if bid.deposit_forfeited_at is not None:
            raise DepositForfeited(bid_id)
        if bid.deposit_locked:
            raise DepositAlreadyLocked(bid_id)

        wallet = _lock_wallet(db, user_id)
        if wallet is None:
            raise WalletNotFound(user_id)
        before = to_money(wallet.available_balance)
        result = db.execute(
            update(Wallet)
            .where(Wallet.id == wallet.id, Wallet.available_balance >= deposit)
            .values(
                available_balance=Wallet.available_balance - deposit,
                locked_balance=Wallet.locked_balance + deposit,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InsufficientBalance(required=deposit, available=before)

        bid.deposit_amount = deposit
        bid.deposit_locked = True
        entry = _record(
            db,
            wallet,
            WalletTransactionType.BID_LOCK,
            amount=deposit,
            balance_before=before,
            balance_after=before - deposit,
            bid_id=bid.id,
            description=f"Deposit locked for bid (${deposit} against ${amount} max bid)",
        )
    db.refresh(entry)
    logger.info("Locked $%s deposit for bid %s", deposit, bid_id)
    return entry


def release_deposit(db: Session, bid: Bid) -> WalletTransaction | None:
    """Move a locked deposit back to available inside the caller's unit of work.

    The caller must hold ``bid`` locked (``lock_bid``) and commit afterwards.
    """
    if not bid.deposit_locked or not bid.deposit_amount:
        logger.info("No locked deposit to release for bid %s", bid.id)
        return None

    deposit = to_money(bid.deposit_amount)
    wallet = _lock_wallet(db, bid.user_id)
    if wallet is None:
        raise WalletNotFound(bid.user_id)
    before = to_money(wallet.available_balance)
    result = db.execute(
        update(Wallet)
        .where(Wallet.id == wallet.id, Wallet.locked_balance >= deposit)
        .values(
            locked_balance=Wallet.locked_balance - deposit,
            available_balance=Wallet.available_balance + deposit,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise LockedBalanceMismatch(bid.id)

    bid.deposit_locked = False
    return _record(
        db,
        wallet,
        WalletTransactionType.BID_UNLOCK,
        amount=deposit,
        balance_before=before,
        balance_after=before + deposit,
        bid_id=bid.id,
        description="Deposit released - bid not won",
    )


def seize_deposit(db: Session, bid: Bid) -> WalletTransaction | None:
    """Remove a locked deposit from locked and total inside the caller's unit of work."""
    if not bid.deposit_locked or not bid.deposit_amount:
        logger.info("No locked deposit to forfeit for bid %s", bid.id)
        return None

    deposit = to_money(bid.deposit_amount)
    wallet = _lock_wallet(db, bid.user_id)
    if wallet is None:
        raise WalletNotFound(bid.user_id)
    before = to_money(wallet.total_balance)
    result = db.execute(
        update(Wallet)
        .where(Wallet.id == wallet.id, Wallet.locked_balance >= deposit)
        .values(
            locked_balance=Wallet.locked_balance - deposit,
            total_balance=Wallet.total_balance - deposit,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise LockedBalanceMismatch(bid.id)

    bid.deposit_locked = False
    bid.deposit_forfeited_at = _now()
    return _record(
        db,
        wallet,
        WalletTransactionType.BID_FORFEIT,
        amount=deposit,
        balance_before=before,
        balance_after=before - deposit,
        bid_id=bid.id,
        description="Deposit forfeited - payment not completed",
    )


def unlock_deposit(db: Session, bid_id: int) -> WalletTransaction | None:
    """Return a lost bid's deposit to available balance. No-op when nothing is locked."""
    with unit_of_work(db):
        bid = lock_bid(db, bid_id)
        if bid is None:
            raise BidNotFound(bid_id)
        entry = release_deposit(db, bid)
    if entry is None:
        return None
    db.refresh(entry)
    logger.info("Unlocked $%s deposit for bid %s", entry.amount, bid_id)
    return entry


def forfeit_deposit(db: Session, bid_id: int) -> WalletTransaction | None:
    """Permanently remove a won bid's locked deposit after non-payment.

    Irreversible: total and locked both drop, available is untouched. The
    decision to forfeit belongs to the caller.
    """
    with unit_of_work(db):
        bid = lock_bid(db, bid_id)
        if bid is None:
            raise BidNotFound(bid_id)
        entry = seize_deposit(db, bid)
    if entry is None:
        return None
    db.refresh(entry)
    logger.warning("Forfeited $%s deposit for bid %s", entry.amount, bid_id)
    return entry
