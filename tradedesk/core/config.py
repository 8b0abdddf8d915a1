"""
Application configuration.

Loads settings from environment variables and .env file.
Every tunable of the service lives on the one Settings object below.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_heavy: Rate limit for endpoints that fan out to the exchange.
        database_url: Explicit SQLAlchemy DSN. Wins over the postgres_* parts.
        auto_create_schema: Create missing tables on startup.
        credential_encryption_secret: Secret the credential cipher key is
            derived from. Required to store or read API credentials.
        exchange_timeout_seconds: Deadline for a single outbound exchange call.
        exchange_recv_window_ms: recvWindow sent with signed requests.
        sync_lookback_days: Window of order/trade history fetched per sync.
        sync_page_limit: Page size requested per symbol and endpoint.
        sync_batch_size: Rows inserted per database transaction.
        sync_deadline_seconds: Overall deadline of one trade-history sync.
        portfolio_min_value: Holdings valued below this are not listed.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "TradeDesk"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_heavy: str = "10/minute"

    database_url: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "tradedesk"
    auto_create_schema: bool = True

    credential_encryption_secret: Optional[str] = None

    binance_base_url: str = "https://api.binance.com"
    binance_futures_base_url: str = "https://fapi.binance.com"
    binance_us_base_url: str = "https://api.binance.us"
    binance_us_futures_base_url: str = "https://fapi.binance.us"
    exchange_timeout_seconds: float = 10.0
    exchange_recv_window_ms: int = 5000

    sync_lookback_days: int = 7
    sync_page_limit: int = 500
    sync_batch_size: int = 100
    sync_deadline_seconds: float = 60.0

    portfolio_min_value: float = 1.0

    def get_database_dsn(self) -> str:
        """Return the effective database DSN.

        Priority:
        1. Explicit `DATABASE_URL`
        2. Build a PostgreSQL DSN from postgres_* values (Docker Compose or local setups)
        """
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
