"""
Application configuration using pydantic-settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "eventmate"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    secret_key: str
    public_url: str = "http://localhost:3000"

    # API Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Postgres
    database_url: str

    # Redis
    redis_url: str = ""
    webhook_dedupe_ttl_seconds: int = 86400

    # Cashfree
    cashfree_client_id: str = ""
    cashfree_client_secret: str = ""
    cashfree_environment: Literal["sandbox", "production"] = "sandbox"
    cashfree_api_version: str = "2023-08-01"
    cashfree_webhook_secret: str = ""

    # Outbound notifications (push / email gateway)
    notification_webhook_url: str = ""

    # Swipes
    free_swipe_allotment: int = 3
    swipe_price_inr: int = 10

    # Fees
    platform_fee_percentage: float = 10.0

    # CORS
    cors_origins: list[str] = []

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cashfree_base_url(self) -> str:
        if self.cashfree_environment == "production":
            return "https://api.cashfree.com/pg"
        return "https://sandbox.cashfree.com/pg"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
