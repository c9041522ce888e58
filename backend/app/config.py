"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
    - deposit_percentage and referral_percentage lie in [0, 100]

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Percentages live here but are handed to the Fee Calculator as arguments by
      the route layer; core/fees.py never reads settings
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://booking:booking@db:5432/booking"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Fees
    deposit_percentage: Decimal = Field(Decimal("30"), ge=0, le=100)
    referral_percentage: Decimal = Field(Decimal("10"), ge=0, le=100)

    # Identity provider (Supabase-style HS256 access tokens)
    auth_jwt_secret: str = "change-me-jwt-secret"
    auth_jwt_algorithm: str = "HS256"
    auth_jwt_audience: str | None = "authenticated"

    # Messaging gateway (Twilio WhatsApp / SMS)
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_whatsapp_from: str | None = None
    twilio_api_base: str = "https://api.twilio.com/2010-04-01"
    messaging_timeout_seconds: float = 10.0

    @property
    def messaging_enabled(self) -> bool:
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_whatsapp_from
        )

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
