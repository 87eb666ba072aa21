"""
Response hardening middleware.
"""
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from app.core.config import settings


class SecurityHeaders:
    """Security headers configuration."""

    # Strict Transport Security
    HSTS = "max-age=31536000; includeSubDomains"

    X_CONTENT_TYPE_OPTIONS = "nosniff"
    X_FRAME_OPTIONS = "DENY"
    REFERRER_POLICY = "strict-origin-when-cross-origin"
    PERMISSIONS_POLICY = "camera=(), geolocation=(), microphone=(), payment=()"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers to every API response."""

    def __init__(self, app: ASGIApp, enable_hsts: bool = False):
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", SecurityHeaders.X_CONTENT_TYPE_OPTIONS)
        response.headers.setdefault("X-Frame-Options", SecurityHeaders.X_FRAME_OPTIONS)
        response.headers.setdefault("Referrer-Policy", SecurityHeaders.REFERRER_POLICY)
        response.headers.setdefault("Permissions-Policy", SecurityHeaders.PERMISSIONS_POLICY)
        if self.enable_hsts and settings.is_production:
            response.headers.setdefault("Strict-Transport-Security", SecurityHeaders.HSTS)
        return response
