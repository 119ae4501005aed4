"""
Pydantic schemas for the upload endpoint.
"""
from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Response schema for a stored upload."""
    url: str = Field(..., description="Public URL of the stored image")

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://pub-abc123.r2.dev/uploads/1700000000000-550e8400-e29b-41d4-a716-446655440000.png"
            }
        }


class ErrorResponse(BaseModel):
    """Body of every failed request."""
    error: str = Field(..., description="Human-readable error message")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Unauthorized"
            }
        }
