# backend/trim_booking/core/config.py
import logging
import os
from pathlib import Path
from typing import FrozenSet

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


def _split_csv(value: str) -> FrozenSet[str]:
    return frozenset(token.strip().lower() for token in value.split(",") if token.strip())


class Settings(BaseSettings):
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "SITE_MODE", "environment"),
    )
    is_testing: bool = Field(default=False, validation_alias=AliasChoices("IS_TESTING", "is_testing"))

    # Database
    database_url: str = Field(
        default="sqlite:///./trim_booking.db",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
        description="SQLAlchemy URL for the primary store",
    )
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Auth (token verification only; issuance lives outside this service)
    secret_key: SecretStr = Field(
        default=SecretStr("dev-secret-key-change-me"),
        description="Secret key for JWT tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720

    # Cache / broker
    redis_url: str = "redis://localhost:6379"

    # Stripe Configuration
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key for backend API calls",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Signing secret for the payment webhook endpoint",
    )
    stripe_currency: str = Field(default="eur", description="Default currency for payments")
    stripe_minimum_charge_cents: int = Field(
        default=50,
        ge=1,
        description="Smallest amount the processor accepts, in minor units",
    )

    # Booking policy
    booking_hold_minutes: int = Field(
        default=10, ge=1, description="How long an unpaid online booking holds its slot"
    )
    slot_interval_minutes: int = Field(default=15, ge=5, le=120)
    expiry_sweep_interval_seconds: int = Field(default=300, ge=10)
    default_business_timezone: str = "Europe/Dublin"

    # Tenant resolution
    tenant_header: str = "X-Business-Slug"
    tenant_query_param: str = "business"
    tenant_ignored_subdomains_raw: str = Field(
        default="localhost,www,api,admin,app",
        validation_alias=AliasChoices("TENANT_IGNORED_SUBDOMAINS", "tenant_ignored_subdomains_raw"),
    )
    tenant_agnostic_paths_raw: str = Field(
        default="/health,/metrics,/api/v1/payments/webhook,/docs,/redoc,/openapi.json",
        validation_alias=AliasChoices("TENANT_AGNOSTIC_PATHS", "tenant_agnostic_paths_raw"),
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("stripe_currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        value = (value or "").strip().lower()
        if len(value) != 3:
            raise ValueError("stripe_currency must be a three-letter ISO code")
        return value

    @property
    def tenant_ignored_subdomains(self) -> FrozenSet[str]:
        return _split_csv(self.tenant_ignored_subdomains_raw)

    @property
    def tenant_agnostic_paths(self) -> FrozenSet[str]:
        return frozenset(
            token.strip() for token in self.tenant_agnostic_paths_raw.split(",") if token.strip()
        )

    def get_database_url(self) -> str:
        return self.database_url

    def stripe_webhook_secret_value(self) -> str:
        return self.stripe_webhook_secret.get_secret_value() if self.stripe_webhook_secret else ""


settings = Settings()
