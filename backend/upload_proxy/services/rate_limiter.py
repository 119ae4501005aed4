"""
Simple in-memory rate limiter.

State lives in process memory and resets whenever the instance is
recycled; it is a deterrent, not an accounting system. Put a shared
store behind check_and_increment() if limits must hold across instances.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from upload_proxy.config import settings

logger = logging.getLogger(__name__)

# Expired entries are swept once the map grows past this size
PRUNE_THRESHOLD = 10_000


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RateLimitEntry:
    """Request count for one client within the current window."""
    count: int
    window_start: int  # epoch milliseconds


class RateLimiter:
    """
    Fixed-window counter keyed by client identifier.

    A window opens on the first request from an identifier and lasts
    window_ms. Requests past max_requests inside the window are refused
    and do not bump the counter.
    """

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_ms: Optional[int] = None,
        clock: Optional[Callable[[], int]] = None
    ):
        self.max_requests = max_requests if max_requests is not None else settings.rate_limit_max
        self.window_ms = window_ms if window_ms is not None else settings.rate_limit_window_ms
        self._clock = clock or _now_ms
        self._entries: Dict[str, RateLimitEntry] = {}
        # uvicorn may run handlers on a thread pool; the read-check-write must be atomic
        self._lock = threading.Lock()

    def check_and_increment(self, identifier: str) -> bool:
        """
        Record a request from identifier.

        Returns:
            True if the request is allowed, False if the client is over limit
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(identifier)

            if entry is None or now - entry.window_start > self.window_ms:
                if entry is None and len(self._entries) >= PRUNE_THRESHOLD:
                    self._prune(now)
                self._entries[identifier] = RateLimitEntry(count=1, window_start=now)
                return True

            if entry.count >= self.max_requests:
                return False

            entry.count += 1
            return True

    def get_entry(self, identifier: str) -> Optional[RateLimitEntry]:
        return self._entries.get(identifier)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def _prune(self, now: int) -> None:
        expired = [
            key for key, entry in self._entries.items()
            if now - entry.window_start > self.window_ms
        ]
        for key in expired:
            del self._entries[key]
        logger.debug(f"Pruned {len(expired)} expired rate limit entries")


# Process-wide instance shared by all requests
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get the singleton rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter
