import hashlib
import hmac
import json
import logging
from decimal import Decimal, InvalidOperation
from urllib.parse import quote

import httpx
from sqlalchemy.orm import Session

from autobridge.core.config import get_settings
from autobridge.services.wallet import add_funds, has_transaction_reference, record_signup_fee, to_money


logger = logging.getLogger(__name__)

WALLET_FUNDING = "wallet_funding"
SIGNUP_FEE = "signup_fee"


def _client() -> httpx.Client:
    settings = get_settings()
    return httpx.Client(
        base_url=settings.paystack_base_url,
        timeout=settings.paystack_timeout_seconds,
        headers={"Authorization": f"Bearer {settings.paystack_secret_key}"},
    )


def create_paystack_checkout(email: str, amount_kobo: int, reference: str, callback_url: str, metadata: dict) -> dict:
    payload = {
        "email": email,
        "amount": amount_kobo,
        "reference": reference,
        "callback_url": callback_url,
        "metadata": metadata,
    }
    with _client() as client:
        response = client.post("/transaction/initialize", json=payload)
        response.raise_for_status()
        return response.json()


def verify_paystack_transaction(reference: str) -> dict:
    with _client() as client:
        response = client.get(f"/transaction/verify/{quote(reference, safe='')}")
        response.raise_for_status()
        return response.json()


def verify_paystack_signature(body: bytes, signature: str) -> bool:
    settings = get_settings()
    secret = settings.paystack_webhook_secret or settings.paystack_secret_key
    computed = hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(computed, signature or "")


def ngn_to_usd(amount_ngn: Decimal) -> Decimal:
    rate = Decimal(str(get_settings().ngn_per_usd))
    return to_money(Decimal(amount_ngn) / rate)


def _parse_metadata(raw) -> dict:
    # Paystack echoes metadata back either as an object or a JSON string.
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def charge_user_id(data: dict) -> int | None:
    metadata = _parse_metadata(data.get("metadata"))
    raw = metadata.get("user_id") or metadata.get("userId")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def apply_charge_success(db: Session, data: dict) -> str:
    """Apply a verified ``charge.success`` event to the ledger.

    Returns a short outcome label: credited, signup_fee, duplicate or ignored.
    """
    reference = str(data.get("reference") or "").strip()
    metadata = _parse_metadata(data.get("metadata"))
    kind = metadata.get("type")
    raw_user_id = metadata.get("user_id") or metadata.get("userId")
    amount_kobo = data.get("amount")

    if not reference or not raw_user_id or amount_kobo is None:
        logger.warning("Paystack charge missing reference, user or amount: reference=%s", reference or "-")
        return "ignored"
    if kind not in {WALLET_FUNDING, SIGNUP_FEE}:
        logger.info("Ignoring Paystack charge %s with type %s", reference, kind)
        return "ignored"
    if has_transaction_reference(db, reference):
        logger.info("Paystack charge %s already applied", reference)
        return "duplicate"

    try:
        user_id = int(raw_user_id)
        amount_ngn = to_money(Decimal(str(amount_kobo)) / 100)
    except (TypeError, ValueError, InvalidOperation):
        logger.warning("Paystack charge %s has malformed user or amount", reference)
        return "ignored"
    if not amount_ngn.is_finite() or amount_ngn <= 0:
        logger.warning("Paystack charge %s has non-positive amount %s", reference, amount_kobo)
        return "ignored"

    rate = Decimal(str(get_settings().ngn_per_usd))
    amount_usd = ngn_to_usd(amount_ngn)

    if kind == WALLET_FUNDING:
        add_funds(
            db,
            user_id,
            amount_usd,
            source_currency="NGN",
            source_amount=amount_ngn,
            exchange_rate=rate,
            reference=reference,
            description="Wallet funding via Paystack",
        )
        return "credited"

    record_signup_fee(db, user_id, amount_ngn, "NGN", amount_usd, reference, exchange_rate=rate)
    return "signup_fee"
