"""
Pydantic schemas for API request/response validation.
"""
from upload_proxy.schemas.upload import (
    UploadResponse,
    ErrorResponse,
)
from upload_proxy.schemas.image_block import (
    ImageBlock,
    ImageProps,
)

__all__ = [
    "UploadResponse",
    "ErrorResponse",
    "ImageBlock",
    "ImageProps",
]
