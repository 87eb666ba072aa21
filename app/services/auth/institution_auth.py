"""
Resolution of institution tokens into request contexts.
"""
from typing import Optional, Union
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthRequiredError, ForbiddenError, InvalidSessionError
from app.domain.schemas.auth import InstitutionContext, InstitutionRole, SubjectKind, TokenPayload
from app.repositories.institution import InstitutionRepository
from app.repositories.institution_application import InstitutionApplicationRepository
from app.repositories.institution_member import InstitutionMemberRepository
from app.repositories.user import UserRepository
from app.services.auth.session_cache import RedisSessionCache, SessionCache
from app.services.auth.token_service import TokenService

logger = structlog.get_logger(__name__)

AnySessionCache = Union[SessionCache, RedisSessionCache]


class InstitutionAuthService:
    """
    Turns a raw institution token into an InstitutionContext.

    The canonical institution id is always re-derived from the persisted
    application, never trusted from the token alone.
    """

    def __init__(
        self,
        db: AsyncSession,
        token_service: TokenService,
        session_cache: AnySessionCache,
    ):
        self.db = db
        self.token_service = token_service
        self.session_cache = session_cache
        self.application_repo = InstitutionApplicationRepository(db)
        self.institution_repo = InstitutionRepository(db)
        self.member_repo = InstitutionMemberRepository(db)
        self.user_repo = UserRepository(db)

    async def resolve(self, token: Optional[str]) -> InstitutionContext:
        """
        Resolve a token into the caller's institution context.

        Raises:
            AuthRequiredError: No token
            InvalidTokenError / TokenExpiredError: Token rejected
            InvalidSessionError: No application backs the token's email
            ForbiddenError: Token names a tenant the email does not own
        """
        if not token:
            raise AuthRequiredError()

        payload = self.token_service.verify_institution_token(token)

        cached = await self.session_cache.get(token)
        if cached is not None:
            return cached

        context = await self._reconcile(payload)
        await self.session_cache.set(token, context, token_expires_at=payload.exp)
        return context

    async def _reconcile(self, payload: TokenPayload) -> InstitutionContext:
        application = await self.application_repo.get_by_email(payload.email)
        if application is None:
            logger.warning("institution_session_without_application", email=payload.email)
            raise InvalidSessionError()

        claimed_id = UUID(payload.institution_id)
        kind = payload.kind
        if kind is None:
            kind = await self._probe_kind(claimed_id)

        if kind == SubjectKind.INSTITUTION:
            institution = await self.institution_repo.get(claimed_id)
            if institution is None or application.institution_id != institution.id:
                logger.warning(
                    "institution_token_tenant_mismatch",
                    email=payload.email,
                    claimed_institution_id=str(claimed_id),
                )
                raise ForbiddenError("Access denied to this institution")
        elif application.id != claimed_id:
            logger.warning(
                "application_token_mismatch",
                email=payload.email,
                claimed_application_id=str(claimed_id),
            )
            raise ForbiddenError("Access denied to this application")

        institution_id = application.institution_id
        role = InstitutionRole.OWNER.value
        user_id = UUID(payload.sub) if payload.sub else application.applicant_user_id

        if institution_id is not None:
            user = await self.user_repo.get_by_email(payload.email)
            if user is not None:
                user_id = user.id
                member = await self.member_repo.get_active_membership(institution_id, user.id)
                if member is not None:
                    # Unapproved members get read-only access until someone signs off
                    role = member.role if member.is_approved else InstitutionRole.VIEWER.value

        return InstitutionContext(
            institution_id=institution_id,
            application_id=application.id,
            email=payload.email,
            role=role,
            user_id=user_id,
        )

    async def _probe_kind(self, entity_id: UUID) -> SubjectKind:
        """Legacy tokens carry no kind; infer it from which table the id lives in."""
        institution = await self.institution_repo.get(entity_id)
        return SubjectKind.INSTITUTION if institution is not None else SubjectKind.APPLICATION
