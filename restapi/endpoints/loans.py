"""Loan endpoints for the API."""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.chit.repository import ChitRepository
from chitfund.core.init_db import get_db
from chitfund.customer.repository import CustomerRepository
from chitfund.loan import calculator, schemas
from chitfund.loan.repository import LoanRepository
from chitfund.risk.scoring import check_loan_eligibility
from chitfund.user.models import Role, STAFF_ROLES, User
from restapi.endpoints.auth import branch_scope, ensure_branch_access, get_current_user, require_roles

router = APIRouter(
    prefix="/loans",
    tags=["loans"],
    responses={404: {"description": "Not found"}},
)

staff = require_roles(*STAFF_ROLES)
approvers = require_roles(Role.SUPER_ADMIN, Role.DEPARTMENT_HEAD, Role.MANDAL_HEAD, Role.BRANCH_MANAGER)
REPAYABLE_STATUSES = ("disbursed", "defaulted")


async def get_loan_or_404(db: AsyncSession, loan_id: int, current_user: User):
    loan = await LoanRepository(db).get_by_id(loan_id)
    if loan is None:
        raise HTTPException(status_code=404, detail="Loan not found")
    ensure_branch_access(current_user, loan.branch_id)
    return loan


@router.post("/emi", response_model=schemas.EmiResult)
async def calculate_emi(
    request: schemas.EmiRequest,
    current_user: User = Depends(get_current_user)
):
    """Monthly installment, total interest and total payable for a loan."""
    return calculator.calculate_emi(request.principal, request.annual_rate, request.months)


@router.post("/", response_model=schemas.Loan, status_code=201)
async def create_loan(
    loan: schemas.LoanCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    customer = await CustomerRepository(db).get_by_id(loan.customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    ensure_branch_access(current_user, customer.branch_id)
    if customer.status != "active":
        raise HTTPException(status_code=400, detail="Customer must be active to take a loan")

    return await LoanRepository(db).create(
        customer, loan.amount, loan.interest_rate, loan.duration, current_user, purpose=loan.purpose
    )


@router.get("/eligibility", response_model=schemas.LoanEligibility)
async def read_loan_eligibility(
    customer_id: int = Query(...),
    chit_group_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    """Credit score, savings history and group performance checks for a member."""
    customer = await CustomerRepository(db).get_by_id(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    ensure_branch_access(current_user, customer.branch_id)
    return await check_loan_eligibility(db, customer_id, chit_group_id)


@router.post("/request", response_model=schemas.Loan, status_code=201)
async def request_loan(
    request: schemas.LoanRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(Role.CUSTOMER))
):
    """
    Loan requested by a chit group member.

    The request is stored as a pending loan only when every eligibility
    check passes; otherwise 400 with the individual check results.
    """
    customer = await CustomerRepository(db).get_by_user_id(current_user.id)
    if customer is None:
        raise HTTPException(status_code=404, detail="No customer record is linked to this account")
    if await ChitRepository(db).get_member(request.chit_group_id, customer.id) is None:
        raise HTTPException(status_code=400, detail="You are not a member of this chit group")

    eligibility = await check_loan_eligibility(db, customer.id, request.chit_group_id)
    if not eligibility["is_eligible"]:
        raise HTTPException(
            status_code=400,
            detail={"message": "You are not eligible for a loan at this time", **eligibility},
        )

    return await LoanRepository(db).create(
        customer, request.amount, request.interest_rate, request.duration, current_user,
        purpose=request.purpose, details=eligibility["details"],
    )


@router.get("/", response_model=List[schemas.Loan])
async def read_loans(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Number of records to return"),
    branch_id: Optional[int] = Query(None, description="Filter by branch (head office only)"),
    customer_id: Optional[int] = Query(None),
    status: Optional[schemas.LoanStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    return await LoanRepository(db).get_all(
        skip=skip,
        limit=limit,
        branch_id=branch_scope(current_user, branch_id),
        customer_id=customer_id,
        status=status,
    )


@router.get("/{loan_id}", response_model=schemas.LoanDetail)
async def read_loan(
    loan_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    """Loan with repayments, outstanding balance and its amortisation schedule."""
    loan = await get_loan_or_404(db, loan_id, current_user)
    return await LoanRepository(db).detail(loan)


@router.patch("/{loan_id}/status", response_model=schemas.Loan)
async def update_loan_status(
    loan_id: int,
    update: schemas.LoanStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(approvers)
):
    """
    Move a loan through its lifecycle:
    pending -> approved | rejected, approved -> disbursed | rejected,
    disbursed -> completed | defaulted, defaulted -> completed.
    """
    loan = await get_loan_or_404(db, loan_id, current_user)
    previous = loan.status
    updated = await LoanRepository(db).change_status(loan, update.status, current_user, update.note)
    if updated is None:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot change loan status from {previous} to {update.status}"
        )
    return updated


@router.post("/{loan_id}/repayments", response_model=schemas.Repayment, status_code=201)
async def add_repayment(
    loan_id: int,
    repayment: schemas.RepaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    loan = await get_loan_or_404(db, loan_id, current_user)
    if loan.status not in REPAYABLE_STATUSES:
        raise HTTPException(status_code=400, detail=f"Repayments cannot be recorded on a {loan.status} loan")
    if repayment.payment_date and repayment.payment_date > date.today():
        raise HTTPException(status_code=400, detail="Payment date cannot be in the future")
    return await LoanRepository(db).add_repayment(loan, repayment, current_user)


@router.get("/{loan_id}/repayments", response_model=List[schemas.Repayment])
async def read_repayments(
    loan_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    await get_loan_or_404(db, loan_id, current_user)
    return await LoanRepository(db).get_repayments(loan_id)
