"""Dashboard and yearly report endpoints."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.core.init_db import get_db
from chitfund.report import schemas
from chitfund.report.repository import ReportRepository
from chitfund.user.models import STAFF_ROLES, User
from restapi.endpoints.auth import branch_scope, require_roles

router = APIRouter(
    prefix="/reports",
    tags=["reports"],
    responses={404: {"description": "Not found"}},
)


@router.get("/dashboard", response_model=schemas.Dashboard)
async def get_dashboard(
    branch_id: Optional[int] = Query(None, description="Branch to report on (head office only)"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES))
):
    """
    Counters for the caller's dashboard:
    - Customers in total, active, and waiting for KYC
    - Active chit groups
    - Loans per status and the amount disbursed
    - Contributions collected
    """
    return await ReportRepository(db).get_dashboard(branch_scope(current_user, branch_id))


@router.get("/year-summary", response_model=schemas.YearSummary)
async def get_year_summary(
    year: int = Query(..., ge=2000, le=2100, description="Year to analyze"),
    branch_id: Optional[int] = Query(None, description="Branch to report on (head office only)"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES))
):
    """
    Get summarized monthly information for a given year.

    Returns monthly summaries with:
    - Month and year
    - Number and amount of loans disbursed in the month
    - Number and amount of contributions collected in the month
    - % of the year's disbursed amount made in the month
    - % of the year's collected amount made in the month
    """
    return await ReportRepository(db).get_year_summary(year, branch_scope(current_user, branch_id))
