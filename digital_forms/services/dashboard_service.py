import logging
from typing import Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case, and_
from digital_forms.core.access import Principal
from digital_forms.models.form_link import FormLink, LinkStatus
from digital_forms.models.submission import FormSubmission, SubmissionStatus
from digital_forms.models.user import User, UserRole
from digital_forms.schemas.dashboard import DashboardStats, SystemStats

logger = logging.getLogger(__name__)


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


class DashboardService:
    """Read-only statistics, recomputed from the tables on every call."""

    @staticmethod
    async def _link_counts(db: AsyncSession, owner_user_id: Optional[int], now: datetime) -> dict:
        not_deleted = FormLink.status != LinkStatus.DELETED
        query = select(
            func.count(FormLink.id).label("total"),
            _count_where(and_(not_deleted, FormLink.expires_at > now)).label("active"),
            _count_where(and_(not_deleted, FormLink.expires_at <= now)).label("expired"),
            _count_where(FormLink.status == LinkStatus.DELETED).label("deleted"),
        )
        if owner_user_id is not None:
            query = query.where(FormLink.owner_user_id == owner_user_id)
        row = (await db.execute(query)).one()
        return dict(row._mapping)

    @staticmethod
    async def _submission_counts(db: AsyncSession, owner_user_id: Optional[int]) -> dict:
        query = select(
            func.count(FormSubmission.id).label("total"),
            _count_where(FormSubmission.status == SubmissionStatus.PENDING).label("pending"),
            _count_where(FormSubmission.status == SubmissionStatus.APPROVED).label("approved"),
            _count_where(FormSubmission.status == SubmissionStatus.REJECTED).label("rejected"),
        )
        if owner_user_id is not None:
            query = query.where(FormSubmission.owner_user_id == owner_user_id)
        row = (await db.execute(query)).one()
        return dict(row._mapping)

    @staticmethod
    async def _system_stats(db: AsyncSession, now: datetime) -> SystemStats:
        users = (await db.execute(
            select(
                func.count(User.id).label("total"),
                _count_where(User.is_active.is_(True)).label("active"),
                _count_where(and_(User.is_active.is_(True), User.role == UserRole.AGENT)).label("agents"),
            )
        )).one()
        links = await DashboardService._link_counts(db, None, now)
        submissions = await DashboardService._submission_counts(db, None)
        return SystemStats(
            total_users=users.total,
            active_users=users.active,
            active_agents=users.agents,
            total_links=links["total"],
            total_submissions=submissions["total"],
            pending_submissions=submissions["pending"]
        )

    @staticmethod
    async def get_stats(db: AsyncSession, principal: Principal) -> DashboardStats:
        """
        Compute dashboard statistics for the caller.

        Link and submission counts always cover the caller's own resources.
        Admins additionally get system-wide totals under `system`.
        An active link is stored-active and unexpired; expired counts
        stored-active links past expires_at.
        """
        now = datetime.utcnow()
        links = await DashboardService._link_counts(db, principal.user_id, now)
        submissions = await DashboardService._submission_counts(db, principal.user_id)

        stats = DashboardStats(
            total_links=links["total"],
            active_links=links["active"],
            expired_links=links["expired"],
            deleted_links=links["deleted"],
            total_submissions=submissions["total"],
            pending_submissions=submissions["pending"],
            approved_submissions=submissions["approved"],
            rejected_submissions=submissions["rejected"]
        )
        if principal.is_admin:
            stats.system = await DashboardService._system_stats(db, now)

        logger.debug(f"Dashboard stats computed for user {principal.user_id}")
        return stats
