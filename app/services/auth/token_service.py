"""
JWT Token Management Service

Issues and verifies the context-scoped tokens used by institution users and
platform admins.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from app.core.config import get_settings
from app.core.exceptions import InvalidTokenError, TokenExpiredError
from app.domain.schemas.auth import SubjectKind, TokenPayload, TokenType

logger = structlog.get_logger(__name__)
settings = get_settings()


class TokenService:
    """Service for JWT token operations."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.secret_key = secret_key or settings.SECRET_KEY
        self.issuer = issuer or settings.JWT_ISSUER
        self.institution_token_expire = timedelta(days=settings.INSTITUTION_TOKEN_EXPIRE_DAYS)
        self.admin_token_expire = timedelta(minutes=settings.ADMIN_TOKEN_EXPIRE_MINUTES)

    def create_institution_token(
        self,
        email: str,
        entity_id: UUID,
        kind: SubjectKind,
        user_id: Optional[UUID] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a token scoped to the institution context.

        Args:
            email: Applicant or member email
            entity_id: Application or institution id, as named by `kind`
            kind: What `entity_id` refers to
            user_id: Global user id, when one exists
            expires_delta: Override of the default lifetime

        Returns:
            Encoded JWT
        """
        data: Dict[str, Any] = {
            "type": TokenType.INSTITUTION.value,
            "email": email.lower(),
            "institution_id": str(entity_id),
            "kind": SubjectKind(kind).value,
        }
        if user_id is not None:
            data["sub"] = str(user_id)

        token = self._create_token(data, expires_delta or self.institution_token_expire)
        logger.info("institution_token_created", kind=data["kind"], entity_id=data["institution_id"])
        return token

    def create_admin_token(
        self,
        email: str,
        subject: str,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Create a token scoped to the platform admin context."""
        data = {
            "type": TokenType.ADMIN.value,
            "email": email.lower(),
            "sub": subject,
        }
        token = self._create_token(data, expires_delta or self.admin_token_expire)
        logger.info("admin_token_created", subject=subject)
        return token

    def _create_token(self, data: Dict[str, Any], expires_delta: timedelta) -> str:
        """Create a JWT token with given data and expiration."""
        now = datetime.now(timezone.utc)
        expire = now + expires_delta

        to_encode = data.copy()
        to_encode.update({
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
            "iss": self.issuer,
            "jti": self._generate_jti(),
        })

        return jwt.encode(
            to_encode,
            self.secret_key,
            algorithm=self.algorithm,
        )

    def verify_token(self, token: str) -> TokenPayload:
        """
        Decode and validate a JWT.

        Raises:
            TokenExpiredError: Signature valid but `exp` has passed
            InvalidTokenError: Bad signature, issuer or payload shape
        """
        if not token:
            raise InvalidTokenError()

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
            )
        except ExpiredSignatureError:
            logger.info("token_expired")
            raise TokenExpiredError()
        except JWTError as e:
            logger.warning("token_decode_error", error=str(e))
            raise InvalidTokenError()

        try:
            return TokenPayload(**payload)
        except PydanticValidationError:
            logger.warning("token_payload_malformed")
            raise InvalidTokenError("Invalid token payload")

    def verify_institution_token(self, token: str) -> TokenPayload:
        """Verify a token and require the institution context."""
        payload = self.verify_token(token)
        if payload.type != TokenType.INSTITUTION:
            logger.warning("token_type_mismatch", expected="institution", actual=payload.type.value)
            raise InvalidTokenError("Invalid token type")
        if not payload.email or not payload.institution_id:
            raise InvalidTokenError("Invalid token payload")
        try:
            UUID(payload.institution_id)
            if payload.sub:
                UUID(payload.sub)
        except ValueError:
            raise InvalidTokenError("Invalid token payload")
        return payload

    def verify_admin_token(self, token: str) -> TokenPayload:
        """Verify a token and require the admin context."""
        payload = self.verify_token(token)
        if payload.type != TokenType.ADMIN:
            logger.warning("token_type_mismatch", expected="admin", actual=payload.type.value)
            raise InvalidTokenError("Invalid token type")
        return payload

    def _generate_jti(self) -> str:
        """Generate unique JWT ID."""
        return secrets.token_urlsafe(16)
