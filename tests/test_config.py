from decimal import Decimal

from autobridge.core.config import Settings, parse_cors_origins


def test_parse_cors_origins_csv():
    value = "http://localhost:3000, https://autobridge.example.com"
    assert parse_cors_origins(value) == [
        "http://localhost:3000",
        "https://autobridge.example.com",
    ]


def test_parse_cors_origins_json_list():
    value = '["http://localhost:3000", "https://autobridge.example.com"]'
    assert parse_cors_origins(value) == [
        "http://localhost:3000",
        "https://autobridge.example.com",
    ]


def test_parse_cors_origins_deduplicates():
    value = "http://localhost:3000,http://localhost:3000"
    assert parse_cors_origins(value) == ["http://localhost:3000"]


def test_ledger_policy_reads_decimals_from_env(monkeypatch):
    monkeypatch.setenv("BID_DEPOSIT_RATE", "0.15")
    monkeypatch.setenv("NGN_PER_USD", "1600.50")
    settings = Settings()
    assert settings.bid_deposit_rate == Decimal("0.15")
    assert settings.ngn_per_usd == Decimal("1600.50")
    assert settings.ledger_currency == "USD"
