"""
Application Settings for NDAVault

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Stripe keys are optional so the API can boot without billing; without
    a secret key no payment provider is built and billing writes fail.
    """

    # Supabase Configuration
    supabase_url: str
    supabase_service_role_key: str
    supabase_jwt_secret: Optional[str] = None

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    site_url: str = "https://ndavault.vercel.app"

    # CORS Configuration
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Stripe Configuration
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_price_id_pro: str = "price_pro_plan_monthly"
    stripe_timeout_seconds: int = 20

    # Admin / batch jobs
    admin_api_key: Optional[str] = None
    alert_horizon_days: int = 30
    alerts_require_entitlement: bool = True

    # Plan limits
    free_upload_limit: int = 10

    # Database Configuration (SQLModel/SQLAlchemy)
    supabase_password: Optional[str] = None
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject limits that would make the plan catalog inconsistent."""
        if self.free_upload_limit < 1:
            raise ValueError("FREE_UPLOAD_LIMIT must be at least 1")

        if self.alert_horizon_days < 0:
            raise ValueError("ALERT_HORIZON_DAYS cannot be negative")

        if self.is_production and self.stripe_secret_key and not self.stripe_webhook_secret:
            raise ValueError(
                "STRIPE_WEBHOOK_SECRET required when STRIPE_SECRET_KEY is set in production"
            )

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
