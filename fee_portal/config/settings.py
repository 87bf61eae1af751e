"""Environment-driven settings for the payment confirmation service."""
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
STRIPE_SECRET_KEY_PREFIXES = ("sk_test_", "sk_live_")


class Settings(BaseSettings):
    """
    Service settings, read from the environment or a ``.env`` file.

    Only ``STRIPE_SECRET_KEY`` is required.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Stripe
    stripe_secret_key: str = Field(..., description="Secret key used to read PaymentIntents")
    stripe_publishable_key: str = Field(default="", description="Publishable key handed to the browser")
    stripe_api_version: str = Field(default="2023-10-16", description="Pinned Stripe API version")

    # Institute backend
    backend_api_base_url: str = Field(
        default="https://student-server-ten.vercel.app/api",
        description="Base URL of the institute REST API",
    )
    backend_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for reconciliation writes (seconds)"
    )

    # Confirmation flow
    processing_poll_attempts: int = Field(
        default=0,
        ge=0,
        description="Extra gateway queries while an intent is still processing (0 disables)",
    )
    processing_poll_interval_seconds: float = Field(
        default=2.0, ge=0, description="Delay between processing re-polls (seconds)"
    )
    dashboard_path: str = Field(default="/fees", description="Route of the fee dashboard")
    display_locale: str = Field(default="en-IN", description="Locale used to format amounts")

    # Service
    app_name: str = Field(default="fee-portal")
    app_env: str = Field(default="development", description="development, staging or production")
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=2, ge=1)
    allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated CORS origins of the portal frontend",
    )

    @field_validator("stripe_secret_key")
    @classmethod
    def check_secret_key_prefix(cls, v: str) -> str:
        if not v.startswith(STRIPE_SECRET_KEY_PREFIXES):
            raise ValueError(
                f"Stripe secret key must start with one of {', '.join(STRIPE_SECRET_KEY_PREFIXES)}"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}")
        return level

    @field_validator("backend_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def get_allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def is_test_mode(self) -> bool:
        """True when Stripe calls go to test mode."""
        return self.stripe_secret_key.startswith("sk_test_")


@lru_cache()
def get_settings() -> Settings:
    """Settings loaded once per process."""
    return Settings()
