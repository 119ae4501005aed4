"""
Tests for storage key generation and the R2 client.
"""
import re
import pytest
from unittest.mock import MagicMock, patch
from botocore.exceptions import ClientError, EndpointConnectionError

from upload_proxy.config import settings
from upload_proxy.storage.keys import (
    ALLOWED_TYPES,
    allowed_types_description,
    build_public_url,
    generate_object_key,
    get_extension,
)
from upload_proxy.storage.r2_client import R2Client, StorageError


class TestKeys:
    """Tests for key and URL helpers."""

    def test_allowed_types_map_to_five_extensions(self):
        assert ALLOWED_TYPES == {
            "image/jpeg": "jpg",
            "image/png": "png",
            "image/gif": "gif",
            "image/webp": "webp",
            "image/svg+xml": "svg",
        }

    def test_get_extension_exact_match_only(self):
        assert get_extension("image/svg+xml") == "svg"
        assert get_extension("image/jpg") is None
        assert get_extension("Image/PNG") is None
        assert get_extension("") is None

    def test_allowed_types_description_order(self):
        assert allowed_types_description() == (
            "image/jpeg, image/png, image/gif, image/webp, image/svg+xml"
        )

    def test_generate_object_key_format(self):
        key = generate_object_key("webp", now_ms=1700000000000)

        assert re.fullmatch(
            r"uploads/1700000000000-[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}\.webp",
            key,
        )

    def test_generate_object_key_uses_current_time(self):
        with patch("upload_proxy.storage.keys.time.time", return_value=1234.5678):
            key = generate_object_key("png")

        assert key.startswith("uploads/1234567-")

    def test_generate_object_key_unique(self):
        keys = {generate_object_key("png", now_ms=1) for _ in range(100)}
        assert len(keys) == 100

    @pytest.mark.parametrize(
        "base",
        ["https://pub-abc123.r2.dev", "https://pub-abc123.r2.dev/"],
    )
    def test_build_public_url(self, base):
        assert build_public_url(base, "uploads/1-x.png") == "https://pub-abc123.r2.dev/uploads/1-x.png"

    def test_build_public_url_strips_one_slash(self):
        assert build_public_url("https://cdn.example//", "k") == "https://cdn.example//k"


@pytest.fixture
def r2_settings(monkeypatch):
    monkeypatch.setattr(settings, "r2_endpoint", "https://account.r2.cloudflarestorage.com")
    monkeypatch.setattr(settings, "r2_access_key", "access")
    monkeypatch.setattr(settings, "r2_secret_key", "secret")
    monkeypatch.setattr(settings, "r2_bucket", "images")


class TestR2Client:
    """Tests for R2Client writes and deletes."""

    def test_unconfigured_client_raises(self, monkeypatch):
        """Test put fails with StorageError when credentials are missing."""
        monkeypatch.setattr(settings, "r2_endpoint", None)

        client = R2Client()

        assert client.is_configured is False
        with pytest.raises(StorageError):
            client.put_object("uploads/k.png", b"data", "image/png")

    def test_put_object_passes_key_body_and_type(self, r2_settings):
        """Test put writes to the configured bucket with Content-Type metadata."""
        with patch("upload_proxy.storage.r2_client.boto3.client") as mock_factory:
            s3 = MagicMock()
            mock_factory.return_value = s3

            client = R2Client()
            client.put_object("uploads/k.png", b"data", "image/png")

        assert client.is_configured is True
        s3.put_object.assert_called_once_with(
            Bucket="images",
            Key="uploads/k.png",
            Body=b"data",
            ContentType="image/png",
        )

    def test_client_disables_retries(self, r2_settings):
        """Test botocore is configured for a single attempt."""
        with patch("upload_proxy.storage.r2_client.boto3.client") as mock_factory:
            R2Client()

        config = mock_factory.call_args.kwargs["config"]
        assert config.retries == {"total_max_attempts": 1}
        assert config.connect_timeout == settings.storage_timeout_seconds

    def test_client_error_wrapped(self, r2_settings):
        """Test S3 API errors surface as StorageError."""
        with patch("upload_proxy.storage.r2_client.boto3.client") as mock_factory:
            s3 = MagicMock()
            s3.put_object.side_effect = ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject"
            )
            mock_factory.return_value = s3

            client = R2Client()
            with pytest.raises(StorageError) as exc_info:
                client.put_object("uploads/k.png", b"data", "image/png")

        assert "AccessDenied" in str(exc_info.value)

    def test_connection_error_wrapped(self, r2_settings):
        """Test transport errors surface as StorageError."""
        with patch("upload_proxy.storage.r2_client.boto3.client") as mock_factory:
            s3 = MagicMock()
            s3.put_object.side_effect = EndpointConnectionError(endpoint_url="https://r2")
            mock_factory.return_value = s3

            client = R2Client()
            with pytest.raises(StorageError):
                client.put_object("uploads/k.png", b"data", "image/png")

    def test_delete_object_removes_key(self, r2_settings):
        """Test delete targets the configured bucket and reports success."""
        with patch("upload_proxy.storage.r2_client.boto3.client") as mock_factory:
            s3 = MagicMock()
            mock_factory.return_value = s3

            client = R2Client()
            assert client.delete_object("uploads/k.png") is True

        s3.delete_object.assert_called_once_with(Bucket="images", Key="uploads/k.png")

    def test_delete_missing_object_is_success(self, r2_settings):
        """Test deleting a key that was never written counts as done."""
        with patch("upload_proxy.storage.r2_client.boto3.client") as mock_factory:
            s3 = MagicMock()
            s3.delete_object.side_effect = ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "Not Found"}}, "DeleteObject"
            )
            mock_factory.return_value = s3

            client = R2Client()
            assert client.delete_object("uploads/k.png") is True

    def test_delete_failure_returns_false(self, r2_settings):
        """Test a failed delete is reported instead of raised."""
        with patch("upload_proxy.storage.r2_client.boto3.client") as mock_factory:
            s3 = MagicMock()
            s3.delete_object.side_effect = EndpointConnectionError(endpoint_url="https://r2")
            mock_factory.return_value = s3

            client = R2Client()
            assert client.delete_object("uploads/k.png") is False

    def test_delete_unconfigured_returns_false(self, monkeypatch):
        monkeypatch.setattr(settings, "r2_endpoint", None)

        assert R2Client().delete_object("uploads/k.png") is False
