"""Application configuration using pydantic-settings.

Asset scales, the price feed and the ledger database are all driven from
environment variables (or a local .env file).
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Fixed-point scale every normalized oracle price is expressed in
PRICE_DECIMALS = 8


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/smartledger.db",
        description="Database connection URL",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    admin_token: str = Field(
        default="", description="Token for operator endpoints (empty = open, dev only)"
    )

    # ======================
    # Assets
    # ======================
    native_symbol: str = Field(default="ETH", description="Native asset symbol")
    native_decimals: int = Field(default=18, ge=0, le=36, description="Native asset decimals")
    token_symbol: str = Field(default="USDC", description="Pegged token symbol")
    token_decimals: int = Field(default=6, ge=0, le=36, description="Pegged token decimals")

    # ======================
    # Swap Pool
    # ======================
    pool_address: str = Field(
        default="0x" + "5" * 40, description="Ledger address of the swap pool"
    )

    # ======================
    # Price Feed
    # ======================
    price_feed: str = Field(default="mock", description="Price feed: mock or coingecko")
    mock_price_answer: int = Field(
        default=3000 * 10**8, description="Initial answer of the mock feed (raw units)"
    )
    mock_price_decimals: int = Field(default=8, ge=0, le=36, description="Mock feed decimals")
    coingecko_api_url: str = Field(
        default="https://api.coingecko.com/api/v3", description="CoinGecko API URL"
    )
    coingecko_asset_id: str = Field(default="ethereum", description="CoinGecko id of the native asset")
    coingecko_decimals: int = Field(default=8, ge=0, le=36, description="Decimals of CoinGecko answers")
    max_price_age_seconds: int = Field(
        default=3600, ge=0, description="Reject prices older than this (0 = disabled)"
    )

    # ======================
    # Concurrency
    # ======================
    lock_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Max wait for the ledger write lock"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "admin_token": "***" if self.admin_token else "(not set)",
            "api_host": self.api_host,
            "api_port": self.api_port,
            "database_url": self._redact_url(self.database_url),
            "assets": {
                "native": {"symbol": self.native_symbol, "decimals": self.native_decimals},
                "token": {"symbol": self.token_symbol, "decimals": self.token_decimals},
            },
            "oracle": {
                "feed": self.price_feed,
                "price_decimals": PRICE_DECIMALS,
                "max_price_age_seconds": self.max_price_age_seconds,
            },
            "pool_address": self.pool_address,
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
