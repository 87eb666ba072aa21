"""
One-time code login for institution applicants.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import InvalidCredentialsError, NotFoundError, ValidationError
from app.core.security import constant_time_equals, generate_otp
from app.domain.schemas.auth import SubjectKind
from app.infrastructure.database.models import InstitutionApplication, InstitutionSession
from app.repositories.institution_application import InstitutionApplicationRepository
from app.repositories.institution_session import InstitutionSessionRepository
from app.services.activity import ActivityService
from app.services.auth.email_service import EmailService
from app.services.auth.token_service import TokenService

logger = structlog.get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InstitutionOTPService:
    """Issues and redeems emailed login codes."""

    def __init__(
        self,
        db: AsyncSession,
        token_service: TokenService,
        email_service: Optional[EmailService] = None,
    ):
        self.db = db
        self.token_service = token_service
        self.email_service = email_service or EmailService()
        self.application_repo = InstitutionApplicationRepository(db)
        self.session_repo = InstitutionSessionRepository(db)
        self.activity = ActivityService(db)
        self.expire_minutes = settings.OTP_EXPIRE_MINUTES

    async def request_otp(self, email: str) -> InstitutionSession:
        """
        Create a login session and email its code.

        Raises:
            NotFoundError: No application for this email
            ValidationError: Application email not verified yet
        """
        email = email.strip().lower()
        application = await self.application_repo.get_by_email(email)
        if application is None:
            raise NotFoundError("No application found for this email")
        if not application.verified:
            raise ValidationError("Please verify your email before logging in")

        session = await self.session_repo.create({
            "email": email,
            "otp": generate_otp(),
            "institution_id": application.institution_id,
            "expires_at": datetime.now(timezone.utc) + timedelta(minutes=self.expire_minutes),
            "verified": False,
        })
        logger.info("institution_otp_issued", session_id=str(session.id), email=email)

        sent = await self.email_service.send_institution_otp(email, session.otp, self.expire_minutes)
        if not sent:
            logger.warning("institution_otp_not_delivered", session_id=str(session.id))
        return session

    async def verify_otp(
        self,
        session_id: Optional[UUID],
        otp: Optional[str],
    ) -> Tuple[str, InstitutionApplication, SubjectKind]:
        """
        Redeem a code for an institution token.

        Returns:
            The token, the application it belongs to and the token's subject kind

        Raises:
            ValidationError: Missing fields or code already used
            InvalidCredentialsError: Unknown session, wrong or expired code
        """
        if session_id is None or not otp:
            raise ValidationError("Session ID and OTP are required")

        session = await self.session_repo.get(session_id)
        now = datetime.now(timezone.utc)
        if (
            session is None
            or not constant_time_equals(session.otp, otp.strip())
            or _as_utc(session.expires_at) <= now
        ):
            logger.info("institution_otp_rejected", session_id=str(session_id))
            raise InvalidCredentialsError("Invalid or expired OTP")

        if session.verified:
            raise ValidationError("OTP already used")

        await self.session_repo.mark_verified(session)

        application = await self.application_repo.get_by_email(session.email)
        if application is None:
            raise NotFoundError("Application not found")

        if application.institution_id is not None:
            kind = SubjectKind.INSTITUTION
            entity_id = application.institution_id
        else:
            kind = SubjectKind.APPLICATION
            entity_id = application.id

        token = self.token_service.create_institution_token(
            email=session.email,
            entity_id=entity_id,
            kind=kind,
            user_id=application.applicant_user_id,
        )
        logger.info("institution_login", application_id=str(application.id), kind=kind.value)
        await self.activity.log_activity(
            "institution_login",
            "institution_application",
            application.id,
            user_id=application.applicant_user_id,
            actor_email=session.email,
        )
        return token, application, kind
