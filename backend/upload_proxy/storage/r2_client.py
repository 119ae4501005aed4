"""
Cloudflare R2 / S3-compatible storage client.

Uses boto3 with S3-compatible API to interact with Cloudflare R2.
This is storage-provider agnostic - works with any S3-compatible storage.

Unlike a presigned flow, the proxy receives the file bytes and writes
them itself, so the upload key never leaves the server.
"""
import logging
from typing import Optional
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from upload_proxy.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an object could not be written to the bucket."""


class R2Client:
    """
    S3-compatible client for Cloudflare R2.

    Only the write path is needed by the proxy: objects are served
    from the bucket's public URL, never through this service.
    """

    def __init__(self):
        """
        Initialize R2 client with boto3.

        Uses environment variables for configuration.
        Fails gracefully if not configured: every put raises StorageError.
        """
        self._client = None
        self._configured = False

        # Check if R2 is configured
        if not all([
            settings.r2_endpoint,
            settings.r2_access_key,
            settings.r2_secret_key
        ]):
            logger.warning(
                "R2 storage not configured. "
                "Set R2_ENDPOINT, R2_ACCESS_KEY, and R2_SECRET_KEY."
            )
            return

        try:
            # Use signature_version='s3v4' for R2 compatibility.
            # No botocore retries: a failed put is reported to the caller as-is.
            self._client = boto3.client(
                's3',
                endpoint_url=settings.r2_endpoint,
                aws_access_key_id=settings.r2_access_key,
                aws_secret_access_key=settings.r2_secret_key,
                region_name=settings.r2_region,
                config=Config(
                    signature_version='s3v4',
                    s3={'addressing_style': 'path'},  # R2 uses path-style
                    connect_timeout=settings.storage_timeout_seconds,
                    read_timeout=settings.storage_timeout_seconds,
                    retries={'total_max_attempts': 1},
                )
            )
            self._configured = True
            logger.info(f"R2 client initialized for bucket: {settings.r2_bucket}")

        except NoCredentialsError:
            logger.error("R2 credentials not found or invalid")
        except Exception as e:
            logger.error(f"Failed to initialize R2 client: {e}")

    @property
    def is_configured(self) -> bool:
        """Check if R2 client is properly configured."""
        return self._configured and self._client is not None

    @property
    def bucket(self) -> str:
        """Get configured bucket name."""
        return settings.r2_bucket

    def put_object(self, object_key: str, body: bytes, content_type: str) -> None:
        """
        Write an object to the bucket.

        Args:
            object_key: The S3 object key (path in bucket)
            body: Full object payload
            content_type: MIME type stored as the object's Content-Type

        Raises:
            StorageError: If R2 is not configured or the write fails
        """
        if not self.is_configured:
            raise StorageError("R2 not configured")

        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=object_key,
                Body=body,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to put {object_key}: {e}") from e

        logger.debug(f"Stored {object_key} ({len(body)} bytes) in R2")

    def delete_object(self, object_key: str) -> bool:
        """
        Remove an object written by a put whose caller already gave up.

        Returns:
            True if the object is gone (deleted now or never there), False otherwise
        """
        if not self.is_configured:
            logger.warning(f"Cannot delete {object_key}: R2 not configured")
            return False

        try:
            self._client.delete_object(Bucket=self.bucket, Key=object_key)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('404', 'NoSuchKey'):
                return True
            logger.error(f"Failed to delete {object_key} from R2: {e}")
            return False
        except BotoCoreError as e:
            logger.error(f"Failed to delete {object_key} from R2: {e}")
            return False

        logger.debug(f"Deleted {object_key} from R2")
        return True


# Singleton instance
_r2_client: Optional[R2Client] = None


def get_r2_client() -> R2Client:
    """
    Get the singleton R2 client instance.

    Returns:
        R2Client instance (may or may not be configured)
    """
    global _r2_client
    if _r2_client is None:
        _r2_client = R2Client()
    return _r2_client
