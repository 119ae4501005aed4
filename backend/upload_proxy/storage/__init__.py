"""
Storage module for S3-compatible object storage (Cloudflare R2).

The proxy writes uploaded images to R2 and hands back their public URL.
"""
from upload_proxy.storage.r2_client import get_r2_client, R2Client, StorageError
from upload_proxy.storage.keys import (
    ALLOWED_TYPES,
    build_public_url,
    generate_object_key,
    get_extension,
)

__all__ = [
    "get_r2_client",
    "R2Client",
    "StorageError",
    "ALLOWED_TYPES",
    "build_public_url",
    "generate_object_key",
    "get_extension",
]
