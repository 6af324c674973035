import secrets
from decimal import Decimal

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from autobridge.core.config import get_settings
from autobridge.core.database import get_db
from autobridge.dependencies import get_current_user
from autobridge.middlewares.rate_limit import limiter
from autobridge.models import User
from autobridge.schemas.wallet import BalanceOut, CheckoutOut, EligibilityOut, FundWalletRequest, WalletTransactionOut
from autobridge.services.paystack import (
    SIGNUP_FEE,
    WALLET_FUNDING,
    apply_charge_success,
    charge_user_id,
    create_paystack_checkout,
    verify_paystack_signature,
    verify_paystack_transaction,
)
from autobridge.services.wallet import check_eligibility, get_balance, get_transactions

router = APIRouter()
settings = get_settings()


def _checkout(user: User, amount_ngn: Decimal, kind: str, prefix: str, callback_url: str | None) -> dict:
    reference = f"{prefix}_{user.id}_{secrets.token_hex(6)}"
    callback = callback_url or f"{settings.frontend_base_url.rstrip('/')}/dashboard/wallet?payment=success"
    try:
        response = create_paystack_checkout(
            email=user.email,
            amount_kobo=int(amount_ngn * 100),
            reference=reference,
            callback_url=callback,
            metadata={"user_id": user.id, "type": kind},
        )
    except Exception:
        raise HTTPException(status_code=502, detail="Payment initialization failed")
    data = response.get("data") or {}
    if not response.get("status") or not data.get("authorization_url"):
        raise HTTPException(status_code=502, detail=response.get("message") or "Payment initialization failed")
    return {"authorization_url": data["authorization_url"], "reference": reference}


@router.get("/balance", response_model=BalanceOut)
def wallet_balance(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    snapshot = get_balance(db, user.id)
    return BalanceOut(
        total=snapshot.total,
        available=snapshot.available,
        locked=snapshot.locked,
        currency=settings.ledger_currency,
    )


@router.get("/transactions", response_model=list[WalletTransactionOut])
def wallet_transactions(
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_transactions(db, user.id, limit=limit)


@router.get("/eligibility", response_model=EligibilityOut)
def bid_eligibility(
    amount: Decimal = Query(..., gt=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = check_eligibility(db, user.id, amount)
    return EligibilityOut(
        eligible=result.eligible,
        available_balance=result.available_balance,
        required_deposit=result.required_deposit,
        shortfall=result.shortfall,
    )


@router.post("/fund", response_model=CheckoutOut)
@limiter.limit("5/minute")
def fund_wallet(request: Request, payload: FundWalletRequest, user: User = Depends(get_current_user)):
    if payload.amount < settings.min_funding_ngn:
        raise HTTPException(status_code=400, detail=f"Minimum amount is {settings.min_funding_ngn}")
    return _checkout(user, payload.amount, WALLET_FUNDING, "WALLET", payload.callback_url)


@router.post("/signup-fee", response_model=CheckoutOut)
@limiter.limit("5/minute")
def pay_signup_fee(request: Request, user: User = Depends(get_current_user)):
    if user.signup_fee_paid:
        raise HTTPException(status_code=400, detail="Signup fee already paid")
    return _checkout(user, settings.signup_fee_ngn, SIGNUP_FEE, "SIGNUP", None)


@router.post("/paystack/webhook")
async def paystack_webhook(request: Request, db: Session = Depends(get_db)):
    signature = request.headers.get("x-paystack-signature")
    if not signature:
        raise HTTPException(status_code=401, detail="Missing signature")

    body = await request.body()
    if not verify_paystack_signature(body, signature):
        raise HTTPException(status_code=401, detail="Invalid signature")

    payload = await request.json()
    event = payload.get("event")
    data = payload.get("data", {}) or {}

    outcome = "ignored"
    if event == "charge.success":
        outcome = apply_charge_success(db, data)
    return {"status": "ok", "outcome": outcome}


@router.get("/paystack/verify")
def paystack_verify(
    reference: str = Query(..., min_length=1, max_length=64),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Confirm a payment directly with Paystack when its webhook was missed."""
    try:
        response = verify_paystack_transaction(reference)
    except httpx.HTTPError:
        raise HTTPException(status_code=502, detail="Payment verification failed")

    data = response.get("data") or {}
    if not response.get("status") or data.get("status") != "success":
        return {"status": "pending"}
    if str(data.get("reference") or "") != reference or charge_user_id(data) != user.id:
        raise HTTPException(status_code=404, detail="Transaction not found")

    outcome = apply_charge_success(db, data)
    return {"status": "success", "outcome": outcome}
