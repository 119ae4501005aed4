"""
Pydantic schemas for the email builder's image block.

Mirrors the data the editor's image sidebar edits; the upload panel
writes the uploaded URL into props.url.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional


class ImageProps(BaseModel):
    """Editable properties of an image block."""
    url: Optional[str] = Field(None, description="Source URL of the image")
    alt: Optional[str] = Field(None, description="Alt text")
    link_href: Optional[str] = Field(None, description="Click-through URL")
    width: Optional[int] = Field(None, ge=0, description="Width in pixels")
    height: Optional[int] = Field(None, ge=0, description="Height in pixels")
    content_alignment: Literal["top", "middle", "bottom"] = Field(
        "middle", description="Vertical alignment inside the block"
    )


class ImageBlock(BaseModel):
    """Image block data as stored in the template document."""
    style: Optional[Dict[str, Any]] = None
    props: ImageProps = Field(default_factory=ImageProps)
