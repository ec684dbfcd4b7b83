import logging
from dataclasses import dataclass
from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from digital_forms.models.activity_log import ActivityLog, ActivityAction
from digital_forms.core.logging_utils import get_request_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Client details recorded alongside activity entries."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: Optional[str] = None


class ActivityService:
    """Service for the append-only activity log."""

    @staticmethod
    def record(
        db: AsyncSession,
        action: ActivityAction,
        user_id: Optional[int] = None,
        details: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> ActivityLog:
        """
        Stage an activity entry in the caller's transaction.

        The entry is only added to the session; it is committed together with
        the state change it describes, so neither can persist without the other.

        Args:
            db: Database session
            action: Type of action
            user_id: Acting user (the link owner for public submissions)
            details: Human-readable description
            context: Client IP, user agent and request ID

        Returns:
            The pending ActivityLog record
        """
        context = context or RequestContext()
        entry = ActivityLog(
            user_id=user_id,
            action=action,
            details=details,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            request_id=context.request_id or get_request_id()
        )
        db.add(entry)

        logger.debug(
            f"Activity: {action.value}",
            extra={"action": action.value, "user_id": user_id}
        )
        return entry

    @staticmethod
    async def get_activity_logs(
        db: AsyncSession,
        user_id: Optional[int] = None,
        action: Optional[ActivityAction] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[ActivityLog], int]:
        """
        Query activity logs with filters, newest first.

        Args:
            db: Database session
            user_id: Filter by user ID
            action: Filter by action type
            limit: Maximum number of results
            offset: Offset for pagination

        Returns:
            Tuple of (page of ActivityLog records, total matching count)
        """
        conditions = []
        if user_id is not None:
            conditions.append(ActivityLog.user_id == user_id)
        if action is not None:
            conditions.append(ActivityLog.action == action)

        query = select(ActivityLog)
        count_query = select(func.count(ActivityLog.id))
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        total = (await db.execute(count_query)).scalar_one()

        query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all()), total
