from typing import Optional
from pydantic import BaseModel


class SystemStats(BaseModel):
    """System-wide totals, admins only."""
    total_users: int
    active_users: int
    active_agents: int
    total_links: int
    total_submissions: int
    pending_submissions: int


class DashboardStats(BaseModel):
    """Counts scoped to the caller's own links and submissions."""
    total_links: int
    active_links: int
    expired_links: int
    deleted_links: int
    total_submissions: int
    pending_submissions: int
    approved_submissions: int
    rejected_submissions: int
    system: Optional[SystemStats] = None


class DashboardStatsResponse(BaseModel):
    stats: DashboardStats
