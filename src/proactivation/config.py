"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Key-value store
    store_backend: Literal["redis", "memory"] = Field(
        default="redis", description="Key-value store backend (memory for dev/tests)"
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL for tokens, entitlements and the task queue",
    )

    # Stripe
    stripe_secret_key: str = Field(default="", description="Stripe secret API key")
    stripe_webhook_secret: str = Field(default="", description="Stripe webhook signing secret")
    stripe_max_network_retries: int = Field(
        default=0, ge=0, description="Network retries performed by the Stripe SDK"
    )

    # Tokens
    token_ttl_seconds: int = Field(
        default=604800, gt=0, description="Activation token lifetime (7 days)"
    )
    webhook_event_ttl_seconds: int = Field(
        default=86400, gt=0, description="How long processed webhook event ids are remembered"
    )
    default_plan_name: str = Field(
        default="Pro Plan", description="Plan name used when the price has no nickname"
    )
    clear_entitlement_on_downgrade: bool = Field(
        default=True,
        description="Clear a device's cached entitlement when Stripe confirms it is inactive",
    )

    # Rate limiting (per client IP)
    rate_limit_enabled: bool = Field(default=True, description="Enforce per-IP request limits")
    rate_limit_window_seconds: int = Field(default=60, gt=0, description="Sliding window length")
    rate_limit_activation_requests: int = Field(
        default=5, gt=0, description="Activation requests allowed per window"
    )
    rate_limit_redeem_requests: int = Field(
        default=30, gt=0, description="Token redemptions allowed per window"
    )

    # App
    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    debug: bool | None = Field(default=None, description="Debug mode (defaults based on environment)")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # Email
    email_backend: Literal["console", "smtp", "resend", "zeptomail"] = Field(
        default="console", description="Email backend (console for dev)"
    )
    email_from: str = Field(
        default="support@truckerexpensetracker.com", description="From address for emails"
    )
    email_from_name: str = Field(
        default="Trucker Expense Tracker", description="Display name for the from address"
    )
    app_url: str = Field(
        default="https://www.truckerexpensetracker.com",
        description="Client app URL used to build activation links",
    )

    # SMTP settings (when email_backend=smtp)
    smtp_host: str = Field(default="", description="SMTP server host")
    smtp_port: int = Field(default=587, description="SMTP server port")
    smtp_username: str = Field(default="", description="SMTP username")
    smtp_password: str = Field(default="", description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Use TLS for SMTP")

    # Resend settings (when email_backend=resend)
    resend_api_key: str = Field(default="", description="Resend API key")

    # ZeptoMail settings (when email_backend=zeptomail)
    zeptomail_token: str = Field(default="", description="ZeptoMail send-mail token")

    # Sentry
    sentry_dsn: str = Field(default="", description="Sentry DSN for error tracking")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.environment == "test"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def debug_enabled(self) -> bool:
        """Get debug mode, defaulting based on environment if not explicitly set."""
        if self.debug is not None:
            return self.debug
        return self.is_development


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience alias
settings = get_settings()
