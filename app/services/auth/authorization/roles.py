"""
Role checks for the institution context.
"""
from typing import Iterable, Optional
from uuid import UUID

import structlog

from app.core.exceptions import AccessDeniedError, ForbiddenError
from app.domain.schemas.auth import InstitutionContext

logger = structlog.get_logger(__name__)


def require_role(context: InstitutionContext, allowed_roles: Iterable[str]) -> InstitutionContext:
    """
    Ensure the resolved role is one of `allowed_roles`.

    Raises:
        ForbiddenError: carrying the required roles and the caller's role
    """
    allowed = [str(getattr(role, "value", role)) for role in allowed_roles]
    if context.role not in allowed:
        logger.info(
            "role_check_failed",
            email=context.email,
            required_roles=allowed,
            current_role=context.role,
        )
        raise ForbiddenError(required_roles=allowed, current_role=context.role)
    return context


def verify_institution_access(context: InstitutionContext, institution_id: Optional[UUID]) -> None:
    """Reject access to a record owned by another institution."""
    if context.institution_id is None or institution_id != context.institution_id:
        logger.warning(
            "cross_institution_access_denied",
            email=context.email,
            institution_id=str(institution_id) if institution_id else None,
        )
        raise AccessDeniedError()
