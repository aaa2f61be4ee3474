"""
Module: settings.py
Description: Client configuration using pydantic-settings.

Loads delivery options from AMPLITUDE_* environment variables with
validation and defaults. Supports .env files for local development.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DRIVER_ALIASES = {
    'realtime': 'realtime',
    'http': 'realtime',
    'batch': 'batch',
    'backfill': 'batch',
}


class AmplitudeSettings(BaseSettings):
    """Delivery settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AMPLITUDE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    api_key: str = Field(..., min_length=1, description="Amplitude project API key")
    default_driver: str = Field(default="realtime", description="Driver used when none is named")
    log_level: str = Field(default="INFO", description="Logging level")

    # Endpoints
    realtime_endpoint: str = Field(
        default="https://api2.amplitude.com/2/httpapi",
        description="HTTP V2 API endpoint for realtime sends"
    )
    batch_endpoint: str = Field(
        default="https://api2.amplitude.com/batch",
        description="Batch API endpoint for bulk and backfill sends"
    )
    identify_endpoint: str = Field(
        default="https://api2.amplitude.com/identify",
        description="Identify API endpoint"
    )

    # Timeouts
    realtime_timeout: float = Field(default=5, gt=0, description="Realtime HTTP timeout in seconds")
    identify_timeout: float = Field(default=5, gt=0, description="Identify HTTP timeout in seconds")
    batch_timeout: float = Field(default=60, gt=0, description="Bulk HTTP timeout in seconds")

    # Bulk delivery
    batch_size: int = Field(default=1000, ge=1, le=2000, description="Events per bulk request")
    batch_max_workers: int = Field(
        default=1,
        ge=1,
        le=16,
        description="Chunks sent concurrently by the bulk driver"
    )

    # Retry behaviour
    retry_count: int = Field(default=3, ge=0, le=10, description="Retries after the first attempt")
    retry_delay: int = Field(default=2000, ge=0, description="Linear backoff base in milliseconds")
    throttle_cooldown: float = Field(
        default=30,
        ge=30,
        description="Seconds to wait after a 429 before retrying"
    )
    retry_jitter: int = Field(default=0, ge=0, description="Maximum random jitter in milliseconds")

    # Remote options
    min_id_length: Optional[int] = Field(
        default=5,
        ge=1,
        description="Minimum user/device id length forwarded to the HTTP V2 API"
    )

    # Security settings
    verify_ssl: bool = Field(default=True, description="Validate TLS certificates")

    @field_validator('default_driver')
    @classmethod
    def validate_default_driver(cls, v: str) -> str:
        """Normalize driver name, accepting legacy aliases."""
        name = v.strip().lower()
        if name not in DRIVER_ALIASES:
            raise ValueError(f"default_driver must be one of: {', '.join(DRIVER_ALIASES)}")
        return DRIVER_ALIASES[name]

    @field_validator('realtime_endpoint', 'batch_endpoint', 'identify_endpoint')
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Validate endpoints are HTTP(S) URLs."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError("endpoint must be a valid HTTP/HTTPS URL")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()


@lru_cache(maxsize=1)
def get_settings() -> AmplitudeSettings:
    """Return the process-wide settings, loaded on first use."""
    return AmplitudeSettings()
