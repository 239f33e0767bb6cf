"""Dashboard and audit report routes."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database import get_db
from backoffice.dependencies import get_current_staff
from backoffice.models.staff import Staff
from backoffice.schemas.report import DashboardStatsResponse, ReferralAuditResponse
from backoffice.services.report_service import ReportService
from backoffice.utils.datetime_helpers import DATE_RANGES

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/dashboard", response_model=DashboardStatsResponse)
async def get_dashboard(
    date_range: str = Query(default="all", pattern=f"^({'|'.join(DATE_RANGES)})$"),
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService(db).dashboard_stats(date_range)


@router.get("/referral-audit", response_model=ReferralAuditResponse)
async def get_referral_audit(
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    """Referred players who were paid the referral bonus more than once."""
    return ReferralAuditResponse(duplicates=await ReportService(db).duplicate_referral_bonuses())
