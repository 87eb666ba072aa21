"""
Platform admin authentication.

The admin is a single configured credential, not a database user.
"""
from typing import Optional

import structlog

from app.core.config import get_settings
from app.core.exceptions import InvalidCredentialsError
from app.core.security import constant_time_equals, verify_password
from app.domain.schemas.auth import AdminLogin, TokenResponse
from app.services.auth.token_service import TokenService

logger = structlog.get_logger(__name__)
settings = get_settings()

ADMIN_SUBJECT = "platform-admin"


class AdminAuthService:
    """Exchanges the admin credential for an admin-scoped token."""

    def __init__(
        self,
        token_service: TokenService,
        admin_email: Optional[str] = None,
        admin_password_hash: Optional[str] = None,
    ):
        self.token_service = token_service
        self.admin_email = (admin_email or settings.ADMIN_EMAIL).lower()
        self.admin_password_hash = admin_password_hash or settings.ADMIN_PASSWORD_HASH

    async def login(
        self,
        credentials: AdminLogin,
        request_ip: Optional[str] = None,
    ) -> TokenResponse:
        """
        Authenticate the platform admin.

        Raises:
            InvalidCredentialsError: Unknown email, wrong password or no admin configured
        """
        normalized_email = credentials.email.lower().strip()

        if not self.admin_password_hash:
            logger.error("admin_login_not_configured")
            raise InvalidCredentialsError("Invalid email or password")

        email_ok = constant_time_equals(normalized_email, self.admin_email)
        password_ok = verify_password(credentials.password, self.admin_password_hash)
        if not (email_ok and password_ok):
            logger.warning("admin_login_failed", email=normalized_email, ip=request_ip)
            raise InvalidCredentialsError("Invalid email or password")

        token = self.token_service.create_admin_token(normalized_email, ADMIN_SUBJECT)
        logger.info("admin_login", email=normalized_email, ip=request_ip)
        return TokenResponse(
            access_token=token,
            expires_in=settings.ADMIN_TOKEN_EXPIRE_MINUTES * 60,
        )
