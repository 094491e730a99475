from functools import lru_cache
import json
from typing import Literal, Optional

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
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    app_name: str = "Credit Ledger"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Security
    secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Database
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True
    # Longest wait for a row lock (Postgres) or the write lock (SQLite).
    db_lock_timeout_ms: int = 5000

    # Pricing
    default_job_credits: int = 5
    # When disabled, an unpriced (profile, seniority, work mode) combination is
    # an administrator error instead of being charged default_job_credits.
    pricing_fallback_enabled: bool = True

    # Job postings
    job_edit_window_hours: int = 4  # 0 disables the window

    # Vendor discount codes and commissions
    commission_base: Literal["final_price", "original_price"] = "final_price"
    commission_payment_delay_months: int = 4
    vendor_default_discount_percent: int = 10
    vendor_default_commission_percent: int = 10

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    auto_create_tables: bool = False

    # Ops: bootstrap admin users (comma-separated emails).
    bootstrap_admin_emails: str = ""

    redis_url: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
