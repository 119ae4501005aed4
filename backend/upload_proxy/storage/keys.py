"""
Storage key generation and public URL construction.

Keys follow the pattern uploads/{epoch_ms}-{uuid}.{ext}; the timestamp
keeps listings roughly chronological and the UUID prevents collisions.
"""
import re
import time
import uuid
from typing import Optional

# Allowed image MIME types -> file extensions
ALLOWED_TYPES = {
    'image/jpeg': 'jpg',
    'image/png': 'png',
    'image/gif': 'gif',
    'image/webp': 'webp',
    'image/svg+xml': 'svg',
}

KEY_PREFIX = "uploads"


def get_extension(content_type: str) -> Optional[str]:
    """
    Get file extension for a content type.

    Matching is exact: the declared type must be one of ALLOWED_TYPES.

    Returns:
        Extension (without dot), or None if the type is not allowed
    """
    return ALLOWED_TYPES.get(content_type)


def allowed_types_description() -> str:
    """Comma-separated list of allowed MIME types, in declaration order."""
    return ", ".join(ALLOWED_TYPES)


def generate_object_key(extension: str, now_ms: Optional[int] = None) -> str:
    """
    Generate a unique object key for an upload.

    Args:
        extension: File extension from ALLOWED_TYPES
        now_ms: Epoch milliseconds (defaults to the current time)

    Returns:
        Object key string
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{KEY_PREFIX}/{now_ms}-{uuid.uuid4()}.{extension}"


def build_public_url(public_base_url: str, object_key: str) -> str:
    """Join the bucket's public base URL (one trailing slash stripped) and a key."""
    base = re.sub(r"/$", "", public_base_url)
    return f"{base}/{object_key}"
