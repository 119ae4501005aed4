"""
Client side of the upload proxy: the editor's image sidebar panel.

The panel lets the user either upload a file (through the proxy) or type
a source URL. On a successful upload the returned URL is written into the
image block's props.url, exactly as if the user had pasted it.

Upload is only offered when both UPLOAD_WORKER_URL and UPLOAD_API_KEY are
configured; otherwise only the manual URL field is usable.

Usage:
    upload-image photo.png
    UPLOAD_WORKER_URL=https://upload.example.workers.dev UPLOAD_API_KEY=... upload-image photo.png
"""
import argparse
import enum
import logging
import mimetypes
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import httpx
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from upload_proxy.schemas.image_block import ImageBlock
from upload_proxy.storage.keys import ALLOWED_TYPES

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Upload-Api-Key"
GENERIC_UPLOAD_ERROR = "Upload failed. Please try again."

# Value for a file picker's accept attribute
ACCEPTED_TYPES = ",".join(ALLOWED_TYPES)


class UploadConfig(BaseSettings):
    """Where the panel sends uploads, loaded from environment variables."""

    upload_worker_url: Optional[str] = None
    upload_api_key: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def enabled(self) -> bool:
        return bool(self.upload_worker_url and self.upload_api_key)


class UploadStatus(str, enum.Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    ERROR = "error"


@dataclass(frozen=True)
class UploadState:
    status: UploadStatus = UploadStatus.IDLE
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "UploadState":
        return cls(UploadStatus.IDLE)

    @classmethod
    def uploading(cls) -> "UploadState":
        return cls(UploadStatus.UPLOADING)

    @classmethod
    def error(cls, message: str) -> "UploadState":
        return cls(UploadStatus.ERROR, message)


class UploadFailed(Exception):
    """The proxy answered, but not with a URL."""


def _blank_to_none(value: str) -> Optional[str]:
    value = value.strip()
    return value or None


class ImageSidebarPanel:
    """
    State holder for the image block's inspector panel.

    Changes are validated against ImageBlock before they are applied;
    invalid edits are kept out of the data and exposed on `errors`.
    `on_change` is called with the new block after every accepted edit.
    """

    def __init__(
        self,
        data: ImageBlock,
        config: Optional[UploadConfig] = None,
        http_client: Optional[httpx.Client] = None,
        on_change: Optional[Callable[[ImageBlock], None]] = None
    ):
        self.data = data
        self.config = config or UploadConfig()
        self.state = UploadState.idle()
        self.errors: Optional[ValidationError] = None
        self._http_client = http_client
        self._on_change = on_change

    @property
    def upload_enabled(self) -> bool:
        return self.config.enabled

    @property
    def is_uploading(self) -> bool:
        return self.state.status == UploadStatus.UPLOADING

    def update_data(self, **props) -> bool:
        """
        Apply prop changes if the resulting block is valid.

        Returns:
            True if the change was applied
        """
        candidate = self.data.model_dump()
        candidate["props"].update(props)
        try:
            block = ImageBlock.model_validate(candidate)
        except ValidationError as e:
            self.errors = e
            return False

        self.data = block
        self.errors = None
        if self._on_change is not None:
            self._on_change(block)
        return True

    def set_source_url(self, value: str) -> bool:
        return self.update_data(url=_blank_to_none(value))

    def set_alt(self, value: str) -> bool:
        return self.update_data(alt=value)

    def set_link_href(self, value: str) -> bool:
        return self.update_data(link_href=_blank_to_none(value))

    def set_width(self, value: Optional[int]) -> bool:
        return self.update_data(width=value)

    def set_height(self, value: Optional[int]) -> bool:
        return self.update_data(height=value)

    def set_alignment(self, alignment: str) -> bool:
        return self.update_data(content_alignment=alignment)

    def dismiss_error(self) -> None:
        self.state = UploadState.idle()

    def upload(self, filename: str, content: bytes, content_type: str) -> Optional[str]:
        """
        Send one file to the proxy and use the returned URL as the image source.

        Returns:
            The public URL, or None if upload is disabled or failed
            (the failure message is left in `state`)
        """
        if not self.upload_enabled:
            return None

        self.state = UploadState.uploading()

        try:
            url = self._post_file(filename, content, content_type)
        except UploadFailed as e:
            self.state = UploadState.error(str(e))
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Upload request failed: {e}")
            self.state = UploadState.error(GENERIC_UPLOAD_ERROR)
            return None

        self.update_data(url=url)
        self.state = UploadState.idle()
        return url

    def upload_path(self, path: Path) -> Optional[str]:
        """Upload a local file, guessing its type from the extension."""
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return self.upload(path.name, path.read_bytes(), content_type)

    def _post_file(self, filename: str, content: bytes, content_type: str) -> str:
        client = self._http_client or httpx.Client(timeout=30.0)
        try:
            response = client.post(
                self.config.upload_worker_url,
                headers={API_KEY_HEADER: self.config.upload_api_key},
                files={"file": (filename, content, content_type)},
            )
        finally:
            if self._http_client is None:
                client.close()

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        url = result.get("url")
        if not response.is_success or not url:
            raise UploadFailed(result.get("error") or f"Upload failed ({response.status_code})")
        return url


def main(argv: Optional[list] = None) -> int:
    """Upload a file through the proxy and print its public URL."""
    parser = argparse.ArgumentParser(description="Upload an image through the upload proxy")
    parser.add_argument("file", type=Path, help="Image file to upload")
    parser.add_argument("--url", help="Proxy URL (default: $UPLOAD_WORKER_URL)")
    parser.add_argument("--api-key", help="Shared secret (default: $UPLOAD_API_KEY)")
    args = parser.parse_args(argv)

    config = UploadConfig()
    if args.url:
        config.upload_worker_url = args.url
    if args.api_key:
        config.upload_api_key = args.api_key

    if not config.enabled:
        print("ERROR: Missing upload configuration!", file=sys.stderr)
        print("Set UPLOAD_WORKER_URL and UPLOAD_API_KEY, or pass --url and --api-key.", file=sys.stderr)
        return 2

    if not args.file.is_file():
        print(f"ERROR: {args.file} is not a file", file=sys.stderr)
        return 2

    panel = ImageSidebarPanel(ImageBlock(), config=config)
    url = panel.upload_path(args.file)
    if url is None:
        print(f"ERROR: {panel.state.message}", file=sys.stderr)
        return 1

    print(url)
    return 0


if __name__ == "__main__":
    sys.exit(main())
