from __future__ import annotations

from typing import cast

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="", case_sensitive=False)

    POE_TRADE_API_BASE: AnyHttpUrl = Field(
        default=cast(AnyHttpUrl, "https://www.pathofexile.com/api/trade")
    )
    POE_TRADE_SITE_URL: AnyHttpUrl = Field(
        default=cast(AnyHttpUrl, "https://www.pathofexile.com/trade")
    )

    USER_AGENT: str = Field(default="PoE-Price-Backend/1.0")
    HTTP_TIMEOUT: float = Field(default=12.0, gt=0.0)

    # Search stage
    RESULT_LIMIT: int = Field(default=20, ge=1, le=100)
    SEARCH_MAX_ATTEMPTS: int = Field(default=5, ge=1)
    SEARCH_RATE_LIMIT_WAIT: float = Field(default=60.0, ge=0.0)
    SEARCH_RATE_LIMIT_WAIT_MAX: float = Field(default=120.0, ge=0.0)
    SEARCH_RELAX_WAIT: float = Field(default=0.5, ge=0.0)

    # Fetch stage
    FETCH_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    FETCH_BACKOFF: float = Field(default=1.0, ge=0.0)
    FETCH_FALLBACK_WAIT: float = Field(default=0.3, ge=0.0)
    FETCH_CHUNK_SIZE: int = Field(default=10, ge=1)  # upstream accepts at most 10 ids per fetch

    # Pricing
    SUPPORTED_CURRENCIES: str = Field(default="chaos,divine")
    PRIMARY_CURRENCY: str = Field(default="chaos")
    STAT_VALUE_BOUNDS: bool = Field(default=False)

    LOG_LEVEL: str = Field(default="INFO")

    # Service layer
    PORT: int = Field(default=10000, ge=1, le=65535)
    CORS_ORIGINS: str = Field(default="*")
    MAX_BODY_BYTES: int = Field(default=2 * 1024 * 1024, ge=1)

    def supported_currencies(self) -> set[str]:
        return {c.strip() for c in self.SUPPORTED_CURRENCIES.split(",") if c.strip()}

    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()] or ["*"]

    def trade_api_base(self) -> str:
        return str(self.POE_TRADE_API_BASE).rstrip("/")

    def trade_site_url(self) -> str:
        return str(self.POE_TRADE_SITE_URL).rstrip("/")


settings = Settings()
