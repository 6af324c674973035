#!/usr/bin/env python3
"""Replay every wallet's transaction log against its stored balances."""

from __future__ import annotations

from autobridge.core import database
from autobridge.core.logging import configure_logging
from autobridge.services.reconciliation import reconcile_wallets


def fail(message: str) -> None:
    print(f"ERROR: {message}")
    raise SystemExit(1)


def main() -> None:
    configure_logging()
    database.init_engine()
    db = database.SessionLocal()
    try:
        drifts = reconcile_wallets(db)
    finally:
        db.close()
        database.dispose_engine()

    for drift in drifts:
        for issue in drift.issues:
            print(f"DRIFT: wallet={drift.wallet_id} user={drift.user_id} {issue}")
    if drifts:
        fail(f"{len(drifts)} wallet(s) out of balance.")
    print("SUCCESS: all wallets reconcile.")


if __name__ == "__main__":
    main()
