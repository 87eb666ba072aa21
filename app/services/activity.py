"""
Activity log and in-app notifications.

Both are side channels: a failure here is logged and never surfaces to the
request that triggered it.
"""
from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import ActivityLog, Notification

logger = structlog.get_logger(__name__)


class ActivityService:
    """Fire-and-forget audit and notification writer."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_activity(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[UUID] = None,
        *,
        user_id: Optional[UUID] = None,
        actor_email: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Record an action in the activity log.

        Returns:
            Whether the entry was stored
        """
        entry = ActivityLog(
            user_id=user_id,
            actor_email=actor_email,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
        )
        return await self._store(entry, "activity_log_failed", action=action)

    async def send_notification(
        self,
        user_id: Optional[UUID],
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> bool:
        """
        Create an in-app notification for a user.

        Returns:
            Whether the notification was stored
        """
        if user_id is None:
            logger.info("notification_skipped_no_user", type=type)
            return False

        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            link=link,
        )
        return await self._store(notification, "notification_failed", type=type)

    async def _store(self, obj: Any, failure_event: str, **context: Any) -> bool:
        # A failed insert only unwinds its savepoint, so objects the caller
        # already committed in this session stay loaded
        try:
            async with self.db.begin_nested():
                self.db.add(obj)
            await self.db.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(failure_event, error=str(e), **context)
            return False
