from decimal import Decimal
from functools import lru_cache
import json
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors_origins(value: str) -> list[str]:
    if not value:
        return []

    parsed: list[str]
    raw = value.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
            parsed = [str(item).strip() for item in items if str(item).strip()]
        except (TypeError, ValueError):
            parsed = []
    else:
        parsed = [origin.strip() for origin in raw.split(",") if origin.strip()]

    # Preserve order and remove duplicates.
    return list(dict.fromkeys(parsed))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "AutoBridge"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Security
    secret_key: str
    access_token_expire_minutes: int = 30

    # Database
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True

    # Paystack
    paystack_secret_key: str
    paystack_webhook_secret: Optional[str] = None
    paystack_base_url: str = "https://api.paystack.co"
    paystack_timeout_seconds: int = 15

    # Ledger policy
    ledger_currency: str = "USD"
    bid_deposit_rate: Decimal = Decimal("0.10")
    # Naira per US dollar applied to NGN wallet funding at intake.
    ngn_per_usd: Decimal = Decimal("1550")
    min_funding_ngn: Decimal = Decimal("1000")
    require_signup_fee: bool = True
    signup_fee_ngn: Decimal = Decimal("100000")

    # Frontend URLs (used for payment callbacks)
    frontend_base_url: str = "http://localhost:3000"

    # CORS
    cors_origins: str = "http://localhost:3000"
    auto_create_tables: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
