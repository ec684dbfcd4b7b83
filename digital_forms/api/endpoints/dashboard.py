from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from digital_forms.database import get_db
from digital_forms.api.deps import get_current_principal
from digital_forms.core.access import Principal
from digital_forms.schemas.dashboard import DashboardStatsResponse
from digital_forms.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_stats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Counts for the caller's own links and submissions.
    Admins also receive system-wide totals under `system`.
    """
    stats = await DashboardService.get_stats(db, principal)
    return DashboardStatsResponse(stats=stats)
