"""Tests for the MinIO client wrapper.

Focuses on:
- MinIOConfig parsing and validation
- MinIOClient delegating to the SDK with the right arguments
- Streaming responses being closed and released
- Factories sharing one SDK client across buckets

The SDK client is replaced with a MagicMock; no server is needed.

Run with: uv run pytest bundler/services/tests/unit/test_minio_client.py -v
"""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from bundler.lib.config_manager import ConfigManager
from bundler.services.errors import ConfigError
from bundler.services.minio import (
    MinIOClient,
    MinIOConfig,
    create_bucket_pair,
    create_minio_client,
)
from bundler.services.minio.client import create_http_client


@pytest.fixture
def sdk():
    return MagicMock()


@pytest.fixture
def client(sdk):
    return MinIOClient(MinIOConfig(), "images", client=sdk)


# =============================================================================
# Config
# =============================================================================


class TestMinIOConfig:
    """Tests for MinIOConfig."""

    @pytest.mark.unit
    def test_endpoint_strips_scheme(self):
        """Test the SDK endpoint has no scheme or trailing slash."""
        assert MinIOConfig(url="http://minio:9000/").endpoint == "minio:9000"
        assert MinIOConfig(url="https://s3.example.com").endpoint == "s3.example.com"
        assert MinIOConfig(url="localhost:9000").endpoint == "localhost:9000"

    @pytest.mark.unit
    def test_https_url_implies_tls(self):
        assert MinIOConfig(url="https://s3.example.com").use_tls is True
        assert MinIOConfig(url="http://minio:9000").use_tls is False
        assert MinIOConfig(url="minio:9000", secure=True).use_tls is True

    @pytest.mark.unit
    def test_validation(self):
        """Test empty URL and non-positive timeout are rejected."""
        with pytest.raises(ConfigError):
            MinIOConfig(url="")
        with pytest.raises(ConfigError):
            MinIOConfig(timeout_seconds=0)

    @pytest.mark.unit
    def test_from_config(self, monkeypatch):
        """Test values come from the environment with type coercion."""
        monkeypatch.setenv("MINIO_URL", "https://s3.example.com")
        monkeypatch.setenv("MINIO_ACCESS_KEY", "access")
        monkeypatch.setenv("MINIO_SECRET_KEY", "secret")
        monkeypatch.setenv("FETCH_TIMEOUT_SECONDS", "12.5")

        config = MinIOConfig.from_config(ConfigManager(load_env=False))

        assert config.url == "https://s3.example.com"
        assert config.access_key == "access"
        assert config.secret_key == "secret"
        assert config.timeout_seconds == 12.5

    @pytest.mark.unit
    def test_http_client_never_retries(self):
        pool = create_http_client(MinIOConfig(timeout_seconds=7))

        assert pool.connection_pool_kw["retries"] is False
        assert pool.connection_pool_kw["timeout"].read_timeout == 7


# =============================================================================
# Client
# =============================================================================


class TestMinIOClient:
    """Tests for MinIOClient."""

    @pytest.mark.unit
    def test_iter_object_streams_and_releases(self, client, sdk):
        """Test chunks are yielded and the response is released afterwards."""
        response = MagicMock()
        response.stream.return_value = iter([b"ab", b"cd"])
        sdk.get_object.return_value = response

        assert list(client.iter_object("a.png", chunk_size=2)) == [b"ab", b"cd"]

        sdk.get_object.assert_called_once_with("images", "a.png")
        response.stream.assert_called_once_with(2)
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    @pytest.mark.unit
    def test_iter_object_released_when_closed_early(self, client, sdk):
        """Test closing the generator mid-stream still releases the connection."""
        response = MagicMock()
        response.stream.return_value = iter([b"ab", b"cd", b"ef"])
        sdk.get_object.return_value = response

        chunks = client.iter_object("a.png")
        assert next(chunks) == b"ab"
        chunks.close()

        response.release_conn.assert_called_once()

    @pytest.mark.unit
    def test_iter_object_is_lazy(self, client, sdk):
        """Test no request is made until the first chunk is read."""
        client.iter_object("a.png")
        sdk.get_object.assert_not_called()

    @pytest.mark.unit
    def test_stream_error_propagates(self, client, sdk):
        response = MagicMock()

        def broken_stream(chunk_size):
            yield b"ab"
            raise ConnectionResetError("reset")

        response.stream.side_effect = broken_stream
        sdk.get_object.return_value = response

        chunks = client.iter_object("a.png")
        assert next(chunks) == b"ab"
        with pytest.raises(ConnectionResetError):
            next(chunks)
        response.release_conn.assert_called_once()

    @pytest.mark.unit
    def test_put_file(self, client, sdk, temp_dir):
        path = temp_dir / "out.zip"
        path.write_bytes(b"zip")

        assert client.put_file("out.zip", path, content_type="application/zip") == "out.zip"
        sdk.fput_object.assert_called_once_with(
            "images", "out.zip", str(path), content_type="application/zip"
        )

    @pytest.mark.unit
    def test_presign_get(self, client, sdk):
        sdk.presigned_get_object.return_value = "https://signed"

        assert client.presign_get("out.zip", expires=timedelta(minutes=5)) == "https://signed"
        sdk.presigned_get_object.assert_called_once_with(
            "images", "out.zip", expires=timedelta(minutes=5)
        )

    @pytest.mark.unit
    def test_exists(self, client, sdk):
        assert client.exists("out.zip") is True
        sdk.stat_object.assert_called_once_with("images", "out.zip")

    @pytest.mark.unit
    def test_list_keys_skips_directories(self, client, sdk):
        """Test directory placeholders are left out of listings."""
        sdk.list_objects.return_value = [
            SimpleNamespace(object_name="2024/", is_dir=True),
            SimpleNamespace(object_name="2024/a.png", is_dir=False),
            SimpleNamespace(object_name="b.png", is_dir=False),
        ]

        assert client.list_keys("2024") == ["2024/a.png", "b.png"]
        sdk.list_objects.assert_called_once_with("images", prefix="2024", recursive=True)

    @pytest.mark.unit
    def test_ensure_bucket_creates_missing(self, client, sdk):
        sdk.bucket_exists.return_value = False
        client.ensure_bucket()
        sdk.make_bucket.assert_called_once_with("images")

    @pytest.mark.unit
    def test_ensure_bucket_leaves_existing(self, client, sdk):
        sdk.bucket_exists.return_value = True
        client.ensure_bucket()
        sdk.make_bucket.assert_not_called()


# =============================================================================
# Factories
# =============================================================================


class TestFactories:
    """Tests for create_minio_client and create_bucket_pair."""

    @pytest.mark.unit
    @patch("bundler.services.minio.factory.Minio")
    def test_bucket_pair_shares_sdk_client(self, mock_minio):
        """Test both buckets use one SDK client and connection pool."""
        source, destination = create_bucket_pair(MinIOConfig(url="http://minio:9000"), "images", "uploads")

        mock_minio.assert_called_once()
        assert mock_minio.call_args.args[0] == "minio:9000"
        assert source.client is destination.client
        assert (source.bucket, destination.bucket) == ("images", "uploads")
        mock_minio.return_value.bucket_exists.assert_not_called()

    @pytest.mark.unit
    @patch("bundler.services.minio.factory.Minio")
    def test_bucket_pair_ensures_destination(self, mock_minio):
        mock_minio.return_value.bucket_exists.return_value = False

        create_bucket_pair(MinIOConfig(), "images", "uploads", ensure_destination=True)

        mock_minio.return_value.make_bucket.assert_called_once_with("uploads")

    @pytest.mark.unit
    @patch("bundler.services.minio.client.Minio")
    def test_create_minio_client(self, mock_minio):
        client = create_minio_client("images", MinIOConfig(url="https://s3.example.com"))

        assert client.bucket == "images"
        assert mock_minio.call_args.kwargs["secure"] is True
