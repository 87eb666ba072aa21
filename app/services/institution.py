"""
Institution profile service.
"""
import re
import secrets
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.domain.schemas.auth import InstitutionContext
from app.domain.schemas.institution import InstitutionCreate, InstitutionStatus, InstitutionUpdate
from app.infrastructure.database.models import Institution, InstitutionApplication
from app.repositories.institution import InstitutionRepository
from app.services.activity import ActivityService

logger = structlog.get_logger(__name__)

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")

# Descriptive fields copied from an application when it is approved
COPIED_FIELDS = (
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
)


def slugify(value: str) -> str:
    candidate = _SLUG_PATTERN.sub("-", value.lower()).strip("-")
    return re.sub(r"-{2,}", "-", candidate)[:80]


async def generate_unique_slug(repo: InstitutionRepository, name: str) -> str:
    """Slug from the name, suffixed until no institution uses it."""
    base = slugify(name) or "institution"
    slug = base
    while await repo.slug_exists(slug):
        slug = f"{base}-{secrets.token_hex(3)}"
    return slug


def institution_from_application(application: InstitutionApplication, slug: str) -> Dict[str, Any]:
    """Column values for a new draft institution born from an approved application."""
    data = {field: getattr(application, field) for field in COPIED_FIELDS}
    data.update(
        email=application.email.lower(),
        slug=slug,
        status=InstitutionStatus.DRAFT.value,
        verified=False,
        startups_supported=0,
        students_mentored=0,
        funding_facilitated=Decimal("0"),
        funding_currency="USD",
        profile_views=0,
    )
    return data


class InstitutionService:
    """Reads and edits institution profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.institution_repo = InstitutionRepository(db)
        self.activity = ActivityService(db)

    async def get_for_context(self, context: InstitutionContext) -> Optional[Institution]:
        """The caller's institution, or None before approval."""
        if context.institution_id is None:
            return None
        return await self.institution_repo.get(context.institution_id)

    async def get_own(self, context: InstitutionContext) -> Institution:
        institution = await self.get_for_context(context)
        if institution is None:
            raise NotFoundError("Institution not found")
        return institution

    async def update_own(self, context: InstitutionContext, update: InstitutionUpdate) -> Institution:
        """Apply profile edits; archived institutions stay read-only."""
        institution = await self.get_own(context)
        if institution.status == InstitutionStatus.ARCHIVED.value:
            raise ValidationError("Archived institutions cannot be edited")

        data = update.model_dump(exclude_unset=True)
        if "name" in data and not (data["name"] or "").strip():
            raise ValidationError("Institution name is required", field="name")

        updated = await self.institution_repo.update(institution.id, data)
        logger.info("institution_updated", institution_id=str(institution.id), fields=sorted(data))
        await self.activity.log_activity(
            "institution_updated",
            "institution",
            institution.id,
            user_id=context.user_id,
            actor_email=context.email,
            details={"fields": sorted(data)},
        )
        return updated

    async def archive_own(self, context: InstitutionContext) -> Institution:
        institution = await self.get_own(context)
        updated = await self.institution_repo.update(
            institution.id, {"status": InstitutionStatus.ARCHIVED.value}
        )
        logger.info("institution_archived", institution_id=str(institution.id))
        await self.activity.log_activity(
            "institution_archived",
            "institution",
            institution.id,
            user_id=context.user_id,
            actor_email=context.email,
        )
        return updated

    async def get_public(self, institution_id: UUID) -> Institution:
        """Published institution by id; counts a profile view."""
        institution = await self.institution_repo.get(institution_id)
        if institution is None or institution.status != InstitutionStatus.PUBLISHED.value:
            raise NotFoundError("Institution not found")
        return await self.institution_repo.increment_views(institution)

    async def create(self, data: InstitutionCreate, admin_email: str) -> Institution:
        """Direct creation by a platform admin, bypassing the application flow."""
        if await self.institution_repo.get_by_email(data.email):
            raise ValidationError("An institution with this email already exists", field="email")

        values = data.model_dump(exclude_unset=True, exclude_none=True)
        values["email"] = data.email
        values["status"] = data.status.value

        slug = values.pop("slug", None)
        if slug:
            slug = slugify(slug)
            if not slug or await self.institution_repo.slug_exists(slug):
                raise ValidationError("Slug is invalid or already taken", field="slug")
        else:
            slug = await generate_unique_slug(self.institution_repo, data.name)
        values["slug"] = slug

        institution = await self.institution_repo.create(values)
        logger.info("institution_created_by_admin", institution_id=str(institution.id), admin=admin_email)
        await self.activity.log_activity(
            "institution_created",
            "institution",
            institution.id,
            actor_email=admin_email,
            details={"source": "admin"},
        )
        return institution
