"""
Configuration settings for SOS Mecânicos.
Uses Pydantic for type-safe configuration management.
"""
from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "SOS Mecânicos"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./sos_mecanicos.db"

    # Security
    secret_key: str = "your-secret-key-change-this-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours
    reset_token_expire_minutes: int = 60
    login_max_attempts: int = 5
    login_attempt_window_seconds: int = 300  # 5 minutes

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # API
    api_v1_prefix: str = "/api/v1"
    frontend_url: str = "http://localhost:3000"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Payments
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_api_base: str = "https://api.stripe.com"
    stripe_timeout_seconds: float = 10.0
    payment_currency: str = "brl"
    platform_fee_percentage: Decimal = Decimal("0.10")

    # Maps
    maps_api_key: str = ""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
