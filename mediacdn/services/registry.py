from __future__ import annotations

from functools import lru_cache

from mediacdn.config import get_settings

from .health import HealthTracker, HttpHealthProber
from .monitor import HealthMonitor
from .resolver import ImageUrlResolver
from .signer import GcsBackupSigner


@lru_cache()
def get_prober() -> HttpHealthProber:
    settings = get_settings()
    return HttpHealthProber(
        base_url=settings.primary_base_url,
        health_path=settings.primary_health_path,
        timeout_ms=settings.health_check_timeout_ms,
    )


@lru_cache()
def get_health_tracker() -> HealthTracker:
    settings = get_settings()
    return HealthTracker(
        get_prober(),
        check_interval_ms=settings.health_check_interval_ms,
        max_backoff_ms=settings.health_max_backoff_ms,
    )


@lru_cache()
def get_resolver() -> ImageUrlResolver:
    settings = get_settings()
    signer = GcsBackupSigner(
        settings.backup_bucket,
        credentials_json=settings.backup_credentials_json,
        endpoint=settings.backup_endpoint,
        verify_exists=settings.backup_verify_exists,
    )
    return ImageUrlResolver(
        get_health_tracker(),
        signer,
        primary_base_url=settings.primary_base_url,
        primary_host=settings.primary_host,
        signed_url_expiry_s=settings.backup_url_expiry_s,
        cache_ttl_ms=settings.url_cache_ttl_ms,
        cache_max_size=settings.url_cache_max_size,
    )


@lru_cache()
def get_monitor() -> HealthMonitor:
    settings = get_settings()
    return HealthMonitor(
        get_health_tracker(),
        interval_ms=settings.monitor_interval_ms,
        max_backoff_ms=settings.monitor_max_backoff_ms,
    )
