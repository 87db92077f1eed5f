"""Image URL resolution with automatic primary/backup failover.

``resolve`` picks the primary CDN (with transform tokens) while it is
reachable and a signed backup-storage URL otherwise. If signing fails too, the
original path is returned, so image rendering never sees an exception.

Primary URLs use the CDN's compact token syntax under one ``tr`` key::

    https://ik.imagekit.io/acme/images/a.jpg?tr=w-400,q-80,f-webp
"""
from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Callable, Iterable, NamedTuple
from urllib.parse import parse_qsl, urlsplit

from mediacdn.models import FailoverMetrics, SignedUrlResult, TransformOptions
from mediacdn.services.health import HealthTracker, monotonic_ms
from mediacdn.services.signer import BackupSigner

logger = logging.getLogger(__name__)

_PRESIGNED_QUERY_KEYS = {"x-goog-signature", "x-amz-signature"}


class _CacheEntry(NamedTuple):
    url: str
    expires: float
    source: str


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


def transform_tokens(options: TransformOptions | None) -> list[str]:
    """Return the CDN tokens for *options*; unset or zero values emit nothing."""

    if options is None:
        return []
    pairs = (
        ("w", options.width),
        ("h", options.height),
        ("q", options.quality),
        ("f", options.format),
        ("bl", options.blur),
        ("ar", options.aspect_ratio),
        ("c", options.crop),
        ("fo", options.focus),
    )
    return [f"{prefix}-{value}" for prefix, value in pairs if value]


def is_primary_url(path: str, host: str) -> bool:
    return urlsplit(path).hostname == host


def is_absolute_url(path: str) -> bool:
    # Protocol-relative URLs (//host/a.jpg) count as absolute
    return bool(urlsplit(path).netloc)


def is_presigned(path: str) -> bool:
    query = urlsplit(path).query
    if not query:
        return False
    return any(key.lower() in _PRESIGNED_QUERY_KEYS for key, _ in parse_qsl(query, keep_blank_values=True))


def build_primary_url(path: str, options: TransformOptions | None, *, base_url: str, host: str) -> str:
    """Primary-CDN URL for *path* with transform tokens appended.

    Paths that are neither root-relative nor already on the CDN host are
    returned untouched.
    """

    root_relative = path.startswith("/") and not path.startswith("//")
    if not root_relative and not is_primary_url(path, host):
        return path

    url = f"{base_url.rstrip('/')}{path}" if root_relative else path
    tokens = transform_tokens(options)
    if not tokens:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}tr={','.join(tokens)}"


def to_object_key(path: str, *, base_url: str, host: str) -> str:
    """Backup storage key for a root-relative path or a primary-CDN URL."""

    if is_primary_url(path, host):
        key_path = urlsplit(path).path
        base_path = urlsplit(base_url).path.rstrip("/")
        if base_path and key_path.startswith(base_path + "/"):
            key_path = key_path[len(base_path):]
        return key_path.lstrip("/")
    return path.split("?", 1)[0].lstrip("/")


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class ImageUrlResolver:
    """Resolve logical image paths to deliverable URLs."""

    _EVICT_FRACTION = 0.2

    def __init__(
        self,
        tracker: HealthTracker,
        signer: BackupSigner,
        *,
        primary_base_url: str,
        primary_host: str = "ik.imagekit.io",
        signed_url_expiry_s: int = 3600,
        cache_ttl_ms: int = 300_000,
        cache_max_size: int = 100,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self._tracker = tracker
        self._signer = signer
        self._base_url = primary_base_url
        self._host = primary_host
        self._expiry_s = signed_url_expiry_s
        self._cache_ttl_ms = cache_ttl_ms
        self._cache_max_size = cache_max_size
        self._clock = clock
        self._cache: dict[str, _CacheEntry] = {}
        self._metrics = FailoverMetrics()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self, path: str, options: TransformOptions | None = None) -> str:
        if not path or is_presigned(path):
            logger.debug("Passing through image path %r unchanged", path)
            return path

        cache_key = f"{path}:{options.cache_key() if options else ''}"
        started = self._clock()
        source = "primary" if await self._tracker.is_available() else "backup"

        cached = self._cache_get(cache_key, source)
        if cached is not None:
            return cached

        if source == "primary":
            url = build_primary_url(path, options, base_url=self._base_url, host=self._host)
            self._metrics.primary_requests += 1
            self._cache_put(cache_key, url, source)
            self._record(started, success=True)
            return url

        result = await self._resolve_backup(path)
        if result.ok:
            self._metrics.backup_requests += 1
            self._cache_put(cache_key, result.url, source)
            self._record(started, success=True)
            return result.url

        logger.error("Backup URL unavailable for %s, serving original path: %s", path, result.error)
        self._record(started, success=False)
        return path

    async def get_lqip(self, path: str, width: int = 20) -> str:
        """Low-quality blurred placeholder URL; the unmodified asset on backup."""

        return await self.resolve(path, TransformOptions(width=width, quality=20, blur=10))

    async def build_srcset(
        self,
        path: str,
        widths: Iterable[int],
        options: TransformOptions | None = None,
    ) -> str:
        widths = list(widths)
        base = options.model_dump(exclude={"width"}) if options else {}
        urls = await asyncio.gather(
            *(self.resolve(path, TransformOptions(**base, width=width)) for width in widths)
        )
        return ", ".join(f"{url} {width}w" for url, width in zip(urls, widths))

    def metrics(self) -> FailoverMetrics:
        return self._metrics.model_copy()

    def get_metrics(self) -> dict:
        """Metrics for the health endpoint (expired cache entries purged first)."""

        self.purge_expired()
        snapshot = self._tracker.snapshot()
        return {
            "primary_available": snapshot.available,
            "last_checked": snapshot.last_checked_at.isoformat() if snapshot.last_checked_at else None,
            "consecutive_failures": snapshot.consecutive_failures,
            "check_interval_ms": snapshot.effective_interval_ms,
            "cache_size": len(self._cache),
            "cache_ttl_ms": self._cache_ttl_ms,
            "metrics": self._metrics.model_dump(mode="json"),
        }

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._cache.items() if entry.expires <= now]
        for key in expired:
            del self._cache[key]
        if expired:
            logger.debug("Purged %d expired entries from image URL cache", len(expired))
        return len(expired)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _resolve_backup(self, path: str) -> SignedUrlResult:
        self._metrics.total_failovers += 1
        self._metrics.last_failover_at = datetime.now(timezone.utc)

        if is_absolute_url(path) and not is_primary_url(path, self._host):
            return SignedUrlResult.failure("Foreign URL has no backup copy")

        key = to_object_key(path, base_url=self._base_url, host=self._host)
        try:
            return await self._signer.presign(key, expires_in=self._expiry_s)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Backup signer raised for %s: %s", key, exc)
            return SignedUrlResult.failure(str(exc) or exc.__class__.__name__)

    def _cache_get(self, key: str, source: str) -> str | None:
        if self._cache_ttl_ms <= 0:
            return None
        entry = self._cache.get(key)
        if entry is None or entry.expires <= self._clock() or entry.source != source:
            if entry is not None:
                del self._cache[key]
            self._metrics.cache_misses += 1
            return None
        self._metrics.cache_hits += 1
        if entry.source == "primary":
            self._metrics.primary_requests += 1
        else:
            self._metrics.backup_requests += 1
        return entry.url

    def _cache_put(self, key: str, url: str, source: str) -> None:
        if self._cache_ttl_ms <= 0:
            return
        self._cache[key] = _CacheEntry(url, self._clock() + self._cache_ttl_ms, source)
        if len(self._cache) > self._cache_max_size:
            oldest = sorted(self._cache, key=lambda k: self._cache[k].expires)
            for stale in oldest[: math.ceil(self._cache_max_size * self._EVICT_FRACTION)]:
                del self._cache[stale]

    def _record(self, started: float, *, success: bool) -> None:
        m = self._metrics
        m.total_requests += 1
        if not success:
            m.failures += 1
        m.total_response_ms += self._clock() - started
        m.average_response_ms = m.total_response_ms / m.total_requests
        m.success_rate = (m.total_requests - m.failures) / m.total_requests
