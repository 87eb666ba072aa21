"""
Fixed-window rate limiting for public XENTRO endpoints.

Counters live in process memory and reset lazily: the first check after a
window has elapsed starts a new one.
"""
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import ErrorResponse
from app.core.exceptions import RateLimitError
from app.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_MS = 60_000
RETRY_AFTER_SECONDS = 60
# Expired windows are swept at most this often
SWEEP_INTERVAL_MS = 60_000


@dataclass
class _Window:
    count: int
    reset_at: float  # epoch milliseconds


class FixedWindowRateLimiter:
    """
    In-memory fixed window counter.

    With max_requests=3 the outcomes inside one window are
    [False, False, False, True, True, ...].
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sweep_interval_ms: int = SWEEP_INTERVAL_MS,
    ):
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self.sweep_interval_ms = sweep_interval_ms
        self._next_sweep = self._now_ms() + sweep_interval_ms

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def is_rate_limited(
        self,
        key: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> bool:
        """
        Count a request against `key`.

        Args:
            key: Client identity, usually ip:endpoint
            max_requests: Requests allowed per window
            window_ms: Window length in milliseconds

        Returns:
            True when the request should be rejected
        """
        now = self._now_ms()
        if now >= self._next_sweep:
            self.sweep(now)

        window = self._windows.get(key)

        if window is None or now > window.reset_at:
            self._windows[key] = _Window(count=1, reset_at=now + window_ms)
            return False

        if window.count >= max_requests:
            return True

        window.count += 1
        return False

    def retry_after(self, key: str) -> int:
        """Seconds until the window for `key` resets."""
        window = self._windows.get(key)
        if window is None:
            return 0
        return max(int((window.reset_at - self._now_ms()) // 1000) + 1, 1)

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop windows that have already reset; returns how many were removed."""
        now = self._now_ms() if now is None else now
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.sweep_interval_ms
        if expired:
            logger.debug("rate_limit_windows_swept", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)

    def reset(self, key: str) -> None:
        self._windows.pop(key, None)

    def clear(self) -> None:
        self._windows.clear()


# Process-wide limiter shared by all routes
rate_limiter = FixedWindowRateLimiter()


def is_rate_limited(
    key: str,
    max_requests: int = DEFAULT_MAX_REQUESTS,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> bool:
    return rate_limiter.is_rate_limited(key, max_requests, window_ms)


def rate_limit_response(retry_after: int = RETRY_AFTER_SECONDS) -> JSONResponse:
    """429 response with the standard error body and Retry-After header."""
    body = ErrorResponse.rate_limit_error(retry_after).to_dict()
    return JSONResponse(
        status_code=429,
        content=body,
        headers={"Retry-After": str(retry_after)},
    )


def get_client_ip(request: Request) -> str:
    """Client address, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimit:
    """
    Route dependency guarding an endpoint.

    Usage:
        @router.post("/login", dependencies=[Depends(RateLimit("admin:login"))])
    """

    def __init__(
        self,
        endpoint: str,
        max_requests: Optional[int] = None,
        window_ms: Optional[int] = None,
        limiter: Optional[FixedWindowRateLimiter] = None,
    ):
        configured = settings.get_rate_limits().get(endpoint, {})
        self.endpoint = endpoint
        self.max_requests = max_requests or configured.get("max_requests", DEFAULT_MAX_REQUESTS)
        self.window_ms = window_ms or configured.get("window_ms", DEFAULT_WINDOW_MS)
        self.limiter = limiter

    async def __call__(self, request: Request) -> None:
        limiter = self.limiter or rate_limiter
        key = f"{get_client_ip(request)}:{self.endpoint}"
        if limiter.is_rate_limited(key, self.max_requests, self.window_ms):
            logger.warning("rate_limit_exceeded", key=key, limit=self.max_requests)
            raise RateLimitError(retry_after=limiter.retry_after(key))
