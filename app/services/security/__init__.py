"""
Security services: rate limiting and response hardening.
"""

from .middleware import SecurityHeaders, SecurityHeadersMiddleware
from .rate_limiter import (
    FixedWindowRateLimiter,
    RateLimit,
    is_rate_limited,
    rate_limit_response,
    rate_limiter,
)

__all__ = [
    "SecurityHeaders",
    "SecurityHeadersMiddleware",
    "FixedWindowRateLimiter",
    "RateLimit",
    "is_rate_limited",
    "rate_limit_response",
    "rate_limiter",
]
