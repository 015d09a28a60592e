from decimal import Decimal
from functools import lru_cache
from typing import Any, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ["http://localhost:3000", "http://localhost:5173"]


def _parse_cors_origins(v: Any) -> List[str]:
    try:
        if v is None or v == "":
            return _DEFAULT_CORS.copy()
        if isinstance(v, list):
            return [x for x in v if isinstance(x, str) and x.strip()]
        s = str(v).strip()
        if not s:
            return _DEFAULT_CORS.copy()
        if s.startswith("["):
            import json
            out = json.loads(s)
            return [x for x in out if isinstance(x, str) and x.strip()] or _DEFAULT_CORS.copy()
        return [x.strip() for x in s.split(",") if x.strip()] or _DEFAULT_CORS.copy()
    except ValueError:
        return _DEFAULT_CORS.copy()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    env: str = Field(default="development", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")
    secret_key: str = Field(default="change-me-in-production-min-32-chars")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="northbank", alias="MONGODB_DB_NAME")

    # Redis (arq worker + rate limits)
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    # Fernet key (base64) for linked external account numbers
    token_encryption_key: str = Field(default="", alias="TOKEN_ENCRYPTION_KEY")

    # Access gates
    admin_pin: str = Field(default="", alias="ADMIN_PIN")
    external_link_pin: str = Field(default="0909", alias="EXTERNAL_LINK_PIN")
    session_max_age_seconds: int = Field(default=2 * 3600, alias="SESSION_MAX_AGE_SECONDS")
    admin_session_max_age_seconds: int = Field(default=3600, alias="ADMIN_SESSION_MAX_AGE_SECONDS")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    # CORS: env as string, exposed as list
    cors_origins_raw: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        alias="CORS_ORIGINS",
        description="Comma-separated or JSON list",
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors_origins(getattr(self, "cors_origins_raw", None))

    # Ledger
    routing_number: str = Field(default="836284645", alias="ROUTING_NUMBER")
    ledger_conflict_retries: int = Field(default=3, alias="LEDGER_CONFLICT_RETRIES")
    account_number_attempts: int = Field(default=10, alias="ACCOUNT_NUMBER_ATTEMPTS")
    notification_cap: int = Field(default=50, alias="NOTIFICATION_CAP")
    bitcoin_price_usd: Decimal = Field(default=Decimal("45000"), alias="BITCOIN_PRICE_USD")

    # Transfer throttling
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    transfer_rate_limit: int = Field(default=20, alias="TRANSFER_RATE_LIMIT")
    transfer_rate_window_seconds: int = Field(default=15 * 60, alias="TRANSFER_RATE_WINDOW_SECONDS")


@lru_cache
def get_settings() -> Settings:
    return Settings()
