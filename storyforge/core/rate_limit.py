"""Per-client fixed-window rate limiting.

Each client key owns one window. When a request arrives after the window has
run its course, the window restarts at that request. Every request, allowed
or not, counts against the current window.
"""

import hashlib
import time
from collections.abc import Callable
from dataclasses import dataclass

ANONYMOUS_CLIENT_KEY = "anonymous"


@dataclass
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed under the current limit.
        remaining: Number of requests remaining in the current window.
        reset_at: Clock reading at which the current window expires.
        wait_seconds: Seconds to wait before retrying (if not allowed).
    """

    allowed: bool
    remaining: int
    reset_at: float
    wait_seconds: float | None = None


@dataclass
class RateLimit:
    """Rate limit configuration.

    Attributes:
        max_requests: Maximum number of requests allowed in a window.
        window_seconds: Length of a window in seconds.
    """

    max_requests: int = 5
    window_seconds: int = 60


@dataclass
class WindowState:
    """Counter for one client's current window."""

    window_start: float
    count: int = 0


def resolve_client_key(api_key: str | None, client_host: str | None) -> str:
    """Pick the identifier that buckets a caller's requests.

    An explicit credential wins over the network address; callers with
    neither share the anonymous bucket. Credentials are hashed so the key
    can be logged.
    """
    if api_key:
        return f"key:{hashlib.sha256(api_key.encode()).hexdigest()[:16]}"
    if client_host:
        return f"ip:{client_host}"
    return ANONYMOUS_CLIENT_KEY


class FixedWindowRateLimiter:
    """In-memory fixed window rate limiter.

    State lives only in process memory and is lost on restart. It is mutated
    from the event loop only, so no locking is needed.
    """

    def __init__(
        self,
        limit: RateLimit | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            limit: Window size and request cap. Defaults to 5 per 60 seconds.
            clock: Monotonic clock returning seconds; injectable for tests.
        """
        self._limit = limit or RateLimit()
        self._clock = clock
        self._windows: dict[str, WindowState] = {}

    @property
    def limit(self) -> RateLimit:
        return self._limit

    def __len__(self) -> int:
        return len(self._windows)

    def check(self, client_key: str) -> RateLimitResult:
        """Count a request and decide whether it is allowed.

        Args:
            client_key: Identifier of the caller, see resolve_client_key().

        Returns:
            RateLimitResult indicating whether the request is allowed.
        """
        now = self._clock()
        window = self._windows.get(client_key)

        if window is None or now - window.window_start > self._limit.window_seconds:
            window = WindowState(window_start=now)
            self._windows[client_key] = window

        window.count += 1

        reset_at = window.window_start + self._limit.window_seconds
        allowed = window.count <= self._limit.max_requests
        remaining = max(0, self._limit.max_requests - window.count)

        wait_seconds = None
        if not allowed:
            wait_seconds = max(0.0, reset_at - now)

        return RateLimitResult(
            allowed=allowed,
            remaining=remaining,
            reset_at=reset_at,
            wait_seconds=wait_seconds,
        )

    def clear(self) -> None:
        """Forget all client windows."""
        self._windows.clear()

    def cleanup_stale_windows(self) -> int:
        """Drop windows that have expired.

        A dropped client starts a fresh window on its next request, exactly
        as it would have if its entry had been kept.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        stale = [
            key
            for key, window in self._windows.items()
            if now - window.window_start > self._limit.window_seconds
        ]
        for key in stale:
            del self._windows[key]
        return len(stale)
