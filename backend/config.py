"""
Configuration and settings for the travel-planning backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    cors_origins: list[str] = Field(default=["http://localhost:5173"])

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible storage for generated proposals
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_bucket: Optional[str] = Field(default=None)
    # "path" for MinIO and other self-hosted gateways
    s3_addressing_style: str = Field(default="virtual")
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_model: str = Field(default="gemini-3-flash-preview")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Queue (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="remvana:itinerary-jobs")

    # Bearer tokens
    jwt_secret: str = Field(default="dev-secret-change-me-0123456789abcdef")
    jwt_algorithm: str = Field(default="HS256")

    # Flights (Duffel)
    duffel_api_key: Optional[str] = Field(default=None)
    duffel_base_url: str = Field(default="https://api.duffel.com")

    # Corporate cards (Stripe Issuing)
    stripe_api_key: Optional[str] = Field(default=None)
    stripe_issuing_webhook_secret: Optional[str] = Field(default=None)
    issuing_billing_address: dict = Field(
        default={
            "line1": "1 Market St",
            "city": "San Francisco",
            "state": "CA",
            "postal_code": "94105",
            "country": "US",
        }
    )

    # Maps
    nominatim_user_agent: Optional[str] = Field(default=None)
    overpass_url: Optional[str] = Field(default=None)

    # Marketplace and expenses
    platform_fee_rate: float = Field(default=0.30)
    expense_auto_approve_limit: float = Field(default=10000.0)

    # Default branding
    brand_name: str = Field(default="Remvana")
    brand_primary_color: str = Field(default="#6D5DFB")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
