"""Object-storage helper for the backup image tier.

The backup bucket mirrors the primary CDN's originals under the same keys,
so ``/images/a.jpg`` on the CDN is object ``images/a.jpg`` here. Callers get
a time-limited V4 signed GET URL; transforms are not available on this tier.

Signing never raises: every failure is returned as
``SignedUrlResult(ok=False, error=...)`` for the resolver to degrade on.
"""
from __future__ import annotations

import asyncio
import json
import logging
from datetime import timedelta
from typing import Protocol

from google.cloud import storage

from mediacdn.models import SignedUrlResult

logger = logging.getLogger(__name__)


class BackupSigner(Protocol):
    async def presign(self, key: str, *, expires_in: int) -> SignedUrlResult: ...


class GcsBackupSigner:  # pylint: disable=too-few-public-methods
    """Signed URLs for objects in the backup bucket."""

    def __init__(
        self,
        bucket_name: str,
        *,
        credentials_json: str | None = None,
        endpoint: str | None = None,
        verify_exists: bool = False,
        client: storage.Client | None = None,
    ) -> None:
        self._bucket_name = bucket_name
        self._credentials_json = credentials_json
        self._endpoint = endpoint
        self._verify_exists = verify_exists
        self._client = client
        self._bucket: storage.Bucket | None = None

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    async def presign(self, key: str, *, expires_in: int = 3600) -> SignedUrlResult:
        """Return a signed GET URL for *key*, valid for *expires_in* seconds.

        The storage client is blocking (``blob.exists`` is a network call), so
        the work runs in a worker thread.
        """

        if not key:
            return SignedUrlResult.failure("Empty object key")
        return await asyncio.to_thread(self._sign, key, expires_in)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _sign(self, key: str, expires_in: int) -> SignedUrlResult:
        try:
            blob = self._get_bucket().blob(key)
            if self._verify_exists and not blob.exists():
                return SignedUrlResult.failure(f"Object not found: {self._bucket_name}/{key}")

            kwargs = {
                "version": "v4",
                "expiration": timedelta(seconds=expires_in),
                "method": "GET",
            }
            if self._endpoint:
                kwargs["api_access_endpoint"] = self._endpoint
            url = blob.generate_signed_url(**kwargs)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Failed to sign backup URL for %s: %s", key, exc)
            return SignedUrlResult.failure(str(exc) or exc.__class__.__name__)

        logger.debug("Signed backup URL for gs://%s/%s (%ss)", self._bucket_name, key, expires_in)
        return SignedUrlResult.success(url)

    def _get_bucket(self) -> storage.Bucket:
        if self._bucket is None:
            if self._client is None:
                self._client = _build_client(self._credentials_json)
            self._bucket = self._client.bucket(self._bucket_name)
        return self._bucket


def _build_client(credentials_json: str | None) -> storage.Client:
    if not credentials_json:
        # Application default credentials (workload identity, gcloud auth)
        return storage.Client()
    # Accept path or JSON string
    if credentials_json.endswith(".json"):
        return storage.Client.from_service_account_json(credentials_json)
    return storage.Client.from_service_account_info(json.loads(credentials_json))
