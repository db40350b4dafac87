"""Risk assessment endpoints."""

from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.core.init_db import get_db
from chitfund.customer.repository import CustomerRepository
from chitfund.risk import schemas
from chitfund.risk.repository import RiskRepository
from chitfund.user.models import Role, STAFF_ROLES, User
from restapi.endpoints.auth import ensure_branch_access, require_roles

router = APIRouter(
    prefix="/risk",
    tags=["risk"],
    responses={404: {"description": "Not found"}},
)


async def check_customer(db: AsyncSession, customer_id: int, current_user: User) -> None:
    customer = await CustomerRepository(db).get_by_id(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    ensure_branch_access(current_user, customer.branch_id)


@router.post("/assessments", response_model=schemas.RiskAssessment, status_code=201)
async def create_assessment(
    assessment: schemas.RiskAssessmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(
        Role.SUPER_ADMIN, Role.DEPARTMENT_HEAD, Role.MANDAL_HEAD, Role.BRANCH_MANAGER
    ))
):
    """Record a credit score; the risk level is derived from it."""
    await check_customer(db, assessment.customer_id, current_user)
    return await RiskRepository(db).create(
        assessment.customer_id, assessment.score, current_user, assessment.notes
    )


@router.get("/customers/{customer_id}", response_model=List[schemas.RiskAssessment])
async def read_history(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES))
):
    await check_customer(db, customer_id, current_user)
    return await RiskRepository(db).history(customer_id)


@router.get("/customers/{customer_id}/latest", response_model=schemas.RiskAssessment)
async def read_latest(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES))
):
    await check_customer(db, customer_id, current_user)
    assessment = await RiskRepository(db).latest(customer_id)
    if assessment is None:
        raise HTTPException(status_code=404, detail="No risk assessment recorded for this customer")
    return assessment
