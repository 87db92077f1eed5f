from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from a .env file if present (local dev only)
load_dotenv()


class Settings(BaseSettings):
    """Image delivery configuration loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Primary provider (transform-capable CDN)
    primary_base_url: str = Field(..., description="Base URL of the primary image CDN, e.g. https://ik.imagekit.io/acme")
    primary_host: str = Field("ik.imagekit.io", description="Hostname identifying URLs that already point at the primary CDN.")
    primary_health_path: str = Field("/health-check")

    # Health tracking
    health_check_interval_ms: int = Field(300_000, gt=0, description="Minimum time between two availability probes.")
    health_check_timeout_ms: int = Field(1_500, gt=0, description="Upper bound for a single probe request.")
    health_max_backoff_ms: Optional[int] = Field(
        default=None,
        gt=0,
        description="If set, the probe interval doubles per consecutive failure up to this value.",
    )

    # Backup provider (object storage)
    backup_bucket: str = Field("newsroom-media")
    backup_endpoint: Optional[str] = Field(default=None, description="Signing endpoint override for S3/GCS compatible stores.")
    backup_credentials_json: Optional[str] = Field(
        default=None,
        description="Path to service-account JSON file or JSON string itself.",
    )
    backup_url_expiry_s: int = Field(3600, gt=0)
    backup_verify_exists: bool = Field(False, description="Check the object exists before signing (costs a request).")

    # Resolved URL cache
    url_cache_ttl_ms: int = Field(300_000, ge=0, description="0 disables the cache.")
    url_cache_max_size: int = Field(100, ge=1)

    # Background monitor
    monitor_enabled: bool = False
    monitor_interval_ms: int = Field(60_000, gt=0)
    monitor_max_backoff_ms: int = Field(3_600_000, gt=0)

    # Health endpoint security
    cdn_monitor_api_key: Optional[str] = None

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:  # pragma: no cover
    """Return a cached Settings instance so it is only parsed once."""

    return Settings()
