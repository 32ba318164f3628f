"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here. No scattered magic strings.
"""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CURRENCIES = ["BTC", "ETH", "USDT", "BNB", "XRP", "ADA", "SOL", "DOT"]


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        host: Interface the API server binds to.
        port: Port the API server listens on.
        database_url: SQLAlchemy URL of the ledger database.
        reference_currency: Quote symbol used to triangulate missing rates.
        supported_currencies: Catalog of tradable symbols.
        fee_rate: Fraction of the source amount retained as fee.
        spread: Fractional discount applied to every resolved rate.
        storage_retry_attempts: Attempts per storage step before giving up.
        balance_cas_attempts: Compare-and-swap attempts per balance update.
        publish_cross_rates: Also publish every cross pair on rate refresh.
        price_jitter: Max relative variation of the mock price feed.
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_heavy: Rate limit for state-changing endpoints.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHANGEIT_",
    )

    project_name: str = "Changeit"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)

    database_url: str = "sqlite:///./changeit.db"

    reference_currency: str = "USDT"
    supported_currencies: list[str] = Field(default_factory=lambda: list(DEFAULT_CURRENCIES))
    fee_rate: Decimal = Field(default=Decimal("0"), ge=0, lt=1)
    spread: Decimal = Field(default=Decimal("0"), ge=0, lt=1)

    storage_retry_attempts: int = Field(default=2, ge=1)
    balance_cas_attempts: int = Field(default=10, ge=1)

    publish_cross_rates: bool = True
    price_jitter: Decimal = Decimal("0.01")

    rate_limit_default: str = "60/minute"
    rate_limit_heavy: str = "10/minute"


settings = Settings()
