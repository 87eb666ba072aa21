"""
Institution application workflow.

pending (unverified) -> pending (verified) -> approved | rejected
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import InvalidStateTransitionError, NotFoundError, ValidationError
from app.core.security import generate_verification_token
from app.domain.schemas.auth import InstitutionRole
from app.domain.schemas.institution import (
    REQUIRED_FOR_APPROVAL,
    ApplicationStatus,
    InstitutionApplicationCreate,
)
from app.infrastructure.database.models import InstitutionApplication
from app.repositories.institution import InstitutionRepository
from app.repositories.institution_application import InstitutionApplicationRepository
from app.repositories.institution_member import InstitutionMemberRepository
from app.repositories.user import UserRepository
from app.services.activity import ActivityService
from app.services.auth.email_service import EmailService
from app.services.institution import generate_unique_slug, institution_from_application

logger = structlog.get_logger(__name__)

DUPLICATE_EMAIL_MESSAGE = (
    "An account with this email already exists. "
    "Please use a different email or log in with your existing account."
)

# Fields an applicant may edit during onboarding
EDITABLE_FIELDS = (
    "name",
    "type",
    "tagline",
    "description",
    "logo",
    "city",
    "country",
    "country_code",
    "operating_mode",
    "phone",
    "website",
    "linkedin",
    "sdg_focus",
    "sector_focus",
    "legal_documents",
    "startups_supported",
    "students_mentored",
    "funding_facilitated",
    "funding_currency",
)


def build_magic_link(token: str, next_path: Optional[str] = None) -> str:
    """Verification URL embedded in the email."""
    query = urlencode(
        {"token": token, "next": next_path or settings.INSTITUTION_DASHBOARD_PATH},
        quote_via=quote,
    )
    return f"{settings.APP_BASE_URL}{settings.API_PREFIX}/institution-applications/verify?{query}"


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class InstitutionApplicationService:
    """Submission, verification and admin decision of institution applications."""

    def __init__(
        self,
        db: AsyncSession,
        email_service: Optional[EmailService] = None,
        session_cache=None,
    ):
        self.db = db
        self.application_repo = InstitutionApplicationRepository(db)
        self.institution_repo = InstitutionRepository(db)
        self.member_repo = InstitutionMemberRepository(db)
        self.user_repo = UserRepository(db)
        self.email_service = email_service or EmailService()
        self.activity = ActivityService(db)
        self.session_cache = session_cache

    async def submit(self, payload: InstitutionApplicationCreate) -> Tuple[InstitutionApplication, str]:
        """
        Create a pending, unverified application and email its magic link.

        Returns:
            The stored application and the magic link
        """
        if _blank(payload.name) or _blank(payload.email):
            raise ValidationError("Name and email are required")

        email = payload.email.strip().lower()
        if "@" not in email:
            raise ValidationError("A valid email is required", field="email")

        if await self.application_repo.get_by_email(email) or await self.institution_repo.get_by_email(email):
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE, field="email")

        data = payload.model_dump(exclude={"email"})
        data.update(
            name=payload.name.strip(),
            email=email,
            type=payload.type or "incubator",
            status=ApplicationStatus.PENDING.value,
            verified=False,
            verification_token=generate_verification_token(),
        )
        application = await self.application_repo.create(data)
        magic_link = build_magic_link(application.verification_token)

        logger.info("application_submitted", application_id=str(application.id), email=email)

        sent = await self.email_service.send_institution_magic_link(email, application.name, magic_link)
        if not sent:
            logger.warning("magic_link_not_delivered", application_id=str(application.id))

        await self.activity.log_activity(
            "application_submitted",
            "institution_application",
            application.id,
            actor_email=email,
            details={"name": application.name, "type": application.type},
        )
        return application, magic_link

    async def verify(self, token: Optional[str]) -> Tuple[InstitutionApplication, UUID]:
        """
        Confirm the applicant's email. Repeated clicks succeed without side effects.

        Returns:
            The application and the applicant's user id
        """
        if _blank(token):
            raise ValidationError("Token is required", field="token")

        application = await self.application_repo.get_by_token(token)
        if application is None:
            raise NotFoundError("Invalid or expired link")

        already_verified = application.verified
        application.verified = True

        user = await self.user_repo.ensure_institution_user(
            application.email,
            application.name,
            email_verified=True,
            commit=False,
        )
        application.applicant_user_id = user.id
        await self.db.commit()
        await self.db.refresh(application)

        if already_verified:
            logger.info("application_reverified", application_id=str(application.id))
        else:
            logger.info("application_verified", application_id=str(application.id), user_id=str(user.id))
            await self.activity.log_activity(
                "application_verified",
                "institution_application",
                application.id,
                user_id=user.id,
                actor_email=application.email,
            )
        return application, user.id

    async def list_all(self) -> List[InstitutionApplication]:
        return await self.application_repo.list_all()

    async def get(self, application_id: UUID) -> InstitutionApplication:
        application = await self.application_repo.get(application_id)
        if application is None:
            raise NotFoundError("Application not found")
        return application

    async def update_details(self, application_id: UUID, fields: Dict[str, Any]) -> InstitutionApplication:
        """Save onboarding edits; status and verification are not editable here."""
        await self.get(application_id)
        data = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        if "name" in data and _blank(data["name"]):
            raise ValidationError("Institution name is required", field="name")

        application = await self.application_repo.update(application_id, data)
        logger.info("application_details_updated", application_id=str(application_id), fields=sorted(data))
        return application

    async def submit_for_approval(self, application_id: UUID, fields: Dict[str, Any]) -> InstitutionApplication:
        """Final onboarding step: every required field filled, email verified."""
        application = await self.get(application_id)
        if not application.verified:
            raise ValidationError("Email must be verified before submission")

        merged = {field: getattr(application, field) for field in REQUIRED_FOR_APPROVAL}
        merged.update({k: v for k, v in fields.items() if k in REQUIRED_FOR_APPROVAL})
        missing = [field for field in REQUIRED_FOR_APPROVAL if _blank(merged.get(field))]
        if missing:
            raise ValidationError(
                f"Please complete all required fields: {', '.join(missing)}",
                field=",".join(missing),
            )

        data = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        application = await self.application_repo.update(application_id, data)
        logger.info("application_submitted_for_approval", application_id=str(application_id))
        await self.activity.log_activity(
            "application_submitted_for_approval",
            "institution_application",
            application.id,
            user_id=application.applicant_user_id,
            actor_email=application.email,
        )
        return application

    async def update_status(
        self,
        application_id: UUID,
        status: str,
        remark: Optional[str] = None,
        admin_email: Optional[str] = None,
    ) -> Tuple[InstitutionApplication, Optional[UUID]]:
        """
        Approve or reject a pending application.

        On approval an institution is created in the same transaction as the
        status change; if another decision won the race both are rolled back.

        Returns:
            The decided application and its institution id
        """
        try:
            decision = ApplicationStatus(status)
        except ValueError:
            decision = ApplicationStatus.PENDING
        if decision == ApplicationStatus.PENDING:
            raise ValidationError("Decision must be approved or rejected", field="status")

        application = await self.get(application_id)
        if application.status != ApplicationStatus.PENDING.value:
            raise InvalidStateTransitionError(
                f"Application already {application.status}",
                current_status=application.status,
            )
        if decision == ApplicationStatus.APPROVED and not application.verified:
            raise ValidationError("Applicant must verify email before approval")

        institution_id = application.institution_id
        created = False
        if decision == ApplicationStatus.APPROVED and institution_id is None:
            if await self.institution_repo.get_by_email(application.email):
                raise ValidationError(
                    "An institution with this email already exists. Cannot approve duplicate email."
                )
            slug = await generate_unique_slug(self.institution_repo, application.name)
            institution = await self.institution_repo.create(
                institution_from_application(application, slug),
                commit=False,
            )
            institution_id = institution.id
            created = True
            if application.applicant_user_id is not None:
                await self.member_repo.create(
                    {
                        "institution_id": institution_id,
                        "user_id": application.applicant_user_id,
                        "role": InstitutionRole.OWNER.value,
                        "admin_approved": True,
                        "accepted_at": datetime.now(timezone.utc),
                    },
                    commit=False,
                )

        won = await self.application_repo.decide(
            application_id,
            decision.value,
            remark=remark,
            institution_id=institution_id,
        )
        if not won:
            await self.db.rollback()
            current = await self.get(application_id)
            await self.db.refresh(current)
            logger.warning(
                "application_decision_conflict",
                application_id=str(application_id),
                current_status=current.status,
            )
            raise InvalidStateTransitionError(
                f"Application already {current.status}",
                current_status=current.status,
            )

        await self.db.commit()
        await self.db.refresh(application)

        logger.info(
            "application_decided",
            application_id=str(application_id),
            status=decision.value,
            institution_id=str(institution_id) if institution_id else None,
            institution_created=created,
        )

        if self.session_cache is not None:
            await self.session_cache.invalidate_application(application_id)

        await self._notify_decision(application, decision, remark)
        await self.activity.log_activity(
            f"application_{decision.value}",
            "institution_application",
            application.id,
            actor_email=admin_email,
            details={"remark": remark, "institution_id": str(institution_id) if institution_id else None},
        )
        return application, institution_id

    async def _notify_decision(
        self,
        application: InstitutionApplication,
        decision: ApplicationStatus,
        remark: Optional[str],
    ) -> None:
        if decision == ApplicationStatus.APPROVED:
            await self.activity.send_notification(
                application.applicant_user_id,
                "form_approved",
                "Institution application approved",
                f"{application.name} has been approved. Complete your profile to publish it.",
                link=settings.INSTITUTION_DASHBOARD_PATH,
            )
        else:
            message = f"{application.name} was not approved."
            if remark:
                message = f"{message} Reason: {remark}"
            await self.activity.send_notification(
                application.applicant_user_id,
                "form_rejected",
                "Institution application rejected",
                message,
            )
