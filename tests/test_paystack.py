import hashlib
import hmac
import json
from decimal import Decimal

import httpx
import pytest

from autobridge.core.config import get_settings
from autobridge.models import User, WalletTransactionType
from autobridge.services import paystack
from autobridge.services.paystack import (
    apply_charge_success,
    charge_user_id,
    ngn_to_usd,
    verify_paystack_signature,
    verify_paystack_transaction,
)
from autobridge.services.wallet import get_balance, get_transactions


def _sign(body: bytes) -> str:
    settings = get_settings()
    return hmac.new(settings.paystack_webhook_secret.encode(), body, hashlib.sha512).hexdigest()


def test_paystack_signature():
    body = json.dumps({"event": "charge.success", "data": {"reference": "ABC"}}).encode()
    assert verify_paystack_signature(body, _sign(body))


def test_paystack_signature_rejects_tampered_body():
    body = json.dumps({"event": "charge.success", "data": {"reference": "ABC"}}).encode()
    signature = _sign(body)
    assert not verify_paystack_signature(body.replace(b"ABC", b"XYZ"), signature)


def test_ngn_to_usd_uses_configured_rate():
    assert ngn_to_usd(Decimal("1550000")) == Decimal("1000.00")
    assert ngn_to_usd(Decimal("1000")) == Decimal("0.65")


def test_charge_success_funds_wallet_once(db, make_user):
    user = make_user()
    data = {
        "reference": "WALLET_1_abc",
        "amount": 155000000,
        "metadata": {"user_id": user.id, "type": "wallet_funding"},
    }

    assert apply_charge_success(db, data) == "credited"
    assert apply_charge_success(db, data) == "duplicate"

    balance = get_balance(db, user.id)
    assert balance.total == Decimal("1000.00")
    assert balance.available == Decimal("1000.00")
    [entry] = get_transactions(db, user.id)
    assert entry.tx_type == WalletTransactionType.DEPOSIT
    assert entry.currency == "NGN"
    assert entry.amount == Decimal("1550000.00")
    assert entry.exchange_rate == Decimal("1550")


def test_charge_success_accepts_metadata_as_json_string(db, make_user):
    user = make_user()
    data = {
        "reference": "WALLET_1_def",
        "amount": 31000000,
        "metadata": json.dumps({"userId": str(user.id), "type": "wallet_funding"}),
    }
    assert apply_charge_success(db, data) == "credited"
    assert get_balance(db, user.id).available == Decimal("200.00")


def test_charge_success_records_signup_fee_without_touching_balance(db, make_user):
    user = make_user(signup_fee_paid=False)
    data = {
        "reference": "SIGNUP_1_abc",
        "amount": 10000000,
        "metadata": {"user_id": user.id, "type": "signup_fee"},
    }

    assert apply_charge_success(db, data) == "signup_fee"

    refreshed = db.query(User).filter(User.id == user.id).first()
    assert refreshed.signup_fee_paid is True
    assert refreshed.signup_fee_paid_at is not None
    balance = get_balance(db, user.id)
    assert balance.total == Decimal("0")
    [entry] = get_transactions(db, user.id)
    assert entry.tx_type == WalletTransactionType.SIGNUP_FEE
    assert entry.balance_before == entry.balance_after == Decimal("0")
    assert entry.usd_amount == Decimal("64.52")


def test_charge_success_ignores_unknown_payloads(db, make_user):
    user = make_user()
    assert apply_charge_success(db, {"reference": "X", "amount": 100}) == "ignored"
    assert (
        apply_charge_success(db, {"reference": "Y", "amount": 100, "metadata": {"user_id": user.id, "type": "other"}})
        == "ignored"
    )
    assert get_transactions(db, user.id) == []


def _mock_client(monkeypatch, handler):
    settings = get_settings()

    def _client():
        return httpx.Client(
            base_url=settings.paystack_base_url,
            headers={"Authorization": f"Bearer {settings.paystack_secret_key}"},
            transport=httpx.MockTransport(handler),
        )

    monkeypatch.setattr(paystack, "_client", _client)


def test_verify_transaction_calls_paystack(monkeypatch):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": True, "data": {"status": "success", "reference": "WALLET_1_abc"}})

    _mock_client(monkeypatch, handler)

    response = verify_paystack_transaction("WALLET_1_abc")

    assert response["data"]["status"] == "success"
    [request] = seen
    assert request.method == "GET"
    assert request.url.path == "/transaction/verify/WALLET_1_abc"
    assert request.headers["Authorization"] == f"Bearer {get_settings().paystack_secret_key}"


def test_verify_transaction_raises_on_http_error(monkeypatch):
    _mock_client(monkeypatch, lambda request: httpx.Response(500, json={"status": False}))
    with pytest.raises(httpx.HTTPStatusError):
        verify_paystack_transaction("WALLET_1_abc")


def test_charge_user_id_reads_metadata():
    assert charge_user_id({"metadata": {"user_id": "7"}}) == 7
    assert charge_user_id({"metadata": json.dumps({"userId": 8})}) == 8
    assert charge_user_id({"metadata": {"user_id": "seven"}}) is None
    assert charge_user_id({}) is None


@pytest.mark.parametrize("amount", ["NaN", "Infinity", 0, -500])
def test_charge_success_ignores_non_positive_amounts(db, make_user, amount):
    user = make_user()
    data = {
        "reference": f"WALLET_{user.id}_bad",
        "amount": amount,
        "metadata": {"user_id": user.id, "type": "wallet_funding"},
    }
    assert apply_charge_success(db, data) == "ignored"
    assert get_transactions(db, user.id) == []
