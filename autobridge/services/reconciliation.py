import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from autobridge.models import Wallet, WalletTransaction, WalletTransactionStatus, WalletTransactionType
from autobridge.services.wallet import ZERO, to_money


logger = logging.getLogger(__name__)

TOTAL_CREDITS = (WalletTransactionType.DEPOSIT, WalletTransactionType.REFUND)
TOTAL_DEBITS = (WalletTransactionType.WITHDRAWAL, WalletTransactionType.PAYMENT, WalletTransactionType.BID_FORFEIT)


@dataclass
class WalletDrift:
    wallet_id: int
    user_id: int
    issues: list[str] = field(default_factory=list)


def _sums_by_type(db: Session, wallet_id: int) -> dict[WalletTransactionType, Decimal]:
    rows = (
        db.query(WalletTransaction.tx_type, func.sum(WalletTransaction.usd_amount))
        .filter(
            WalletTransaction.wallet_id == wallet_id,
            WalletTransaction.status == WalletTransactionStatus.COMPLETED,
        )
        .group_by(WalletTransaction.tx_type)
        .all()
    )
    return {tx_type: to_money(total or 0) for tx_type, total in rows}


def reconcile_wallet(db: Session, wallet: Wallet) -> list[str]:
    """Compare stored balances with the partition rule and with a replay of the log."""
    total = to_money(wallet.total_balance)
    available = to_money(wallet.available_balance)
    locked = to_money(wallet.locked_balance)
    issues = []

    if total != available + locked:
        issues.append(f"total {total} != available {available} + locked {locked}")
    for name, value in (("total", total), ("available", available), ("locked", locked)):
        if value < 0:
            issues.append(f"{name} balance is negative ({value})")

    sums = _sums_by_type(db, wallet.id)
    expected_total = sum((sums.get(t, ZERO) for t in TOTAL_CREDITS), ZERO) - sum(
        (sums.get(t, ZERO) for t in TOTAL_DEBITS), ZERO
    )
    expected_locked = (
        sums.get(WalletTransactionType.BID_LOCK, ZERO)
        - sums.get(WalletTransactionType.BID_UNLOCK, ZERO)
        - sums.get(WalletTransactionType.BID_FORFEIT, ZERO)
    )
    if total != expected_total:
        issues.append(f"total {total} != ledger replay {expected_total}")
    if locked != expected_locked:
        issues.append(f"locked {locked} != ledger replay {expected_locked}")
    return issues


def reconcile_wallets(db: Session) -> list[WalletDrift]:
    drifts = []
    for wallet in db.query(Wallet).order_by(Wallet.id).all():
        issues = reconcile_wallet(db, wallet)
        if issues:
            logger.error("Wallet %s (user %s) drift: %s", wallet.id, wallet.user_id, "; ".join(issues))
            drifts.append(WalletDrift(wallet_id=wallet.id, user_id=wallet.user_id, issues=issues))
    return drifts
