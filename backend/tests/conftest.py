"""
Test configuration and fixtures.
Storage is replaced by an in-memory fake; the rate limiter gets a fake clock.
"""
import os

# Set test environment before any imports
os.environ["UPLOAD_API_KEY"] = "test-upload-key"
os.environ["ALLOWED_ORIGIN"] = ""
os.environ["R2_PUBLIC_URL"] = "https://pub-abc123.r2.dev/"
os.environ["ENVIRONMENT"] = "test"

import time
import pytest
from typing import AsyncGenerator, Dict, List, Optional, Tuple

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from upload_proxy.config import settings
from upload_proxy.services.rate_limiter import RateLimiter
from upload_proxy.storage.r2_client import StorageError


API_KEY = "test-upload-key"
PUBLIC_BASE_URL = "https://pub-abc123.r2.dev"


class FakeStorage:
    """In-memory stand-in for R2Client."""

    def __init__(self, error: Optional[Exception] = None, delay: float = 0.0):
        self.objects: Dict[str, Tuple[bytes, str]] = {}
        self.calls: List[str] = []
        self.deleted: List[str] = []
        self.error = error
        self.delay = delay

    def put_object(self, object_key: str, body: bytes, content_type: str) -> None:
        self.calls.append(object_key)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.objects[object_key] = (body, content_type)

    def delete_object(self, object_key: str) -> bool:
        self.deleted.append(object_key)
        self.objects.pop(object_key, None)
        return True


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(max_requests=20, window_ms=60_000, clock=clock)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def failing_storage() -> FakeStorage:
    return FakeStorage(error=StorageError("SlowDown: bucket quota exceeded for account 1234"))


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Reset settings that individual tests override."""
    monkeypatch.setattr(settings, "upload_api_key", API_KEY)
    monkeypatch.setattr(settings, "allowed_origin", "")
    monkeypatch.setattr(settings, "r2_public_url", PUBLIC_BASE_URL + "/")
    monkeypatch.setattr(settings, "storage_timeout_seconds", 5.0)
    monkeypatch.setattr(settings, "client_ip_header", "CF-Connecting-IP")


def get_test_app(storage: FakeStorage, rate_limiter: RateLimiter) -> FastAPI:
    """Return the app with storage and rate limiter dependencies overridden."""
    from upload_proxy.main import app
    from upload_proxy.api.uploads import get_storage
    from upload_proxy.services.rate_limiter import get_rate_limiter

    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter

    return app


@pytest.fixture
async def client(storage: FakeStorage, rate_limiter: RateLimiter) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = get_test_app(storage, rate_limiter)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture
async def client_failing_storage(
    failing_storage: FakeStorage,
    rate_limiter: RateLimiter
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client whose storage backend always fails."""
    app = get_test_app(failing_storage, rate_limiter)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def png_file():
    return {"file": ("photo.png", b"\x89PNG\r\n\x1a\nfake-image-bytes", "image/png")}


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"X-Upload-Api-Key": API_KEY}
