"""Tests for GcsBackupSigner."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from mediacdn.services.signer import GcsBackupSigner


@pytest.fixture
def blob() -> MagicMock:
    blob = MagicMock()
    blob.exists.return_value = True
    blob.generate_signed_url.return_value = "https://storage.googleapis.com/newsroom-media/images/a.jpg?X-Goog-Signature=1"
    return blob


@pytest.fixture
def client(blob: MagicMock) -> MagicMock:
    client = MagicMock()
    client.bucket.return_value.blob.return_value = blob
    return client


class TestGcsBackupSigner:
    @pytest.mark.asyncio
    async def test_signs_v4_get_url(self, client: MagicMock, blob: MagicMock) -> None:
        signer = GcsBackupSigner("newsroom-media", client=client)

        result = await signer.presign("images/a.jpg", expires_in=3600)

        assert result.ok is True
        assert result.url.endswith("X-Goog-Signature=1")
        client.bucket.assert_called_once_with("newsroom-media")
        client.bucket.return_value.blob.assert_called_once_with("images/a.jpg")
        blob.generate_signed_url.assert_called_once_with(
            version="v4", expiration=timedelta(seconds=3600), method="GET"
        )
        blob.exists.assert_not_called()

    @pytest.mark.asyncio
    async def test_custom_endpoint(self, client: MagicMock, blob: MagicMock) -> None:
        signer = GcsBackupSigner("newsroom-media", endpoint="https://s3.tebi.io", client=client)

        await signer.presign("images/a.jpg", expires_in=60)

        assert blob.generate_signed_url.call_args.kwargs["api_access_endpoint"] == "https://s3.tebi.io"

    @pytest.mark.asyncio
    async def test_missing_object_with_verification(self, client: MagicMock, blob: MagicMock) -> None:
        blob.exists.return_value = False
        signer = GcsBackupSigner("newsroom-media", verify_exists=True, client=client)

        result = await signer.presign("images/gone.jpg", expires_in=3600)

        assert result.ok is False
        assert "not found" in result.error
        blob.generate_signed_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_signing_error_is_captured(self, client: MagicMock, blob: MagicMock) -> None:
        blob.generate_signed_url.side_effect = AttributeError("you need a private key to sign credentials")
        signer = GcsBackupSigner("newsroom-media", client=client)

        result = await signer.presign("images/a.jpg", expires_in=3600)

        assert result.ok is False
        assert "private key" in result.error

    @pytest.mark.asyncio
    async def test_client_construction_error_is_captured(self) -> None:
        signer = GcsBackupSigner("newsroom-media", credentials_json="/nonexistent/creds.json")

        with patch(
            "mediacdn.services.signer.storage.Client.from_service_account_json",
            side_effect=FileNotFoundError("/nonexistent/creds.json"),
        ):
            result = await signer.presign("images/a.jpg", expires_in=3600)

        assert result.ok is False

    @pytest.mark.asyncio
    async def test_credentials_json_text(self, client: MagicMock) -> None:
        signer = GcsBackupSigner("newsroom-media", credentials_json='{"type": "service_account"}')

        with patch(
            "mediacdn.services.signer.storage.Client.from_service_account_info", return_value=client
        ) as from_info:
            result = await signer.presign("images/a.jpg", expires_in=3600)

        from_info.assert_called_once_with({"type": "service_account"})
        assert result.ok is True

    @pytest.mark.asyncio
    async def test_empty_key(self, client: MagicMock) -> None:
        result = await GcsBackupSigner("newsroom-media", client=client).presign("", expires_in=3600)

        assert result.ok is False
        client.bucket.assert_not_called()

    @pytest.mark.asyncio
    async def test_signing_runs_off_the_event_loop(self, client: MagicMock, blob: MagicMock) -> None:
        threads = []
        blob.exists.side_effect = lambda: threads.append(threading.get_ident()) or True
        signer = GcsBackupSigner("newsroom-media", verify_exists=True, client=client)

        result = await signer.presign("images/a.jpg", expires_in=3600)

        assert result.ok is True
        assert threads and threads[0] != threading.get_ident()
