"""Customer endpoints for the API."""

import io
from typing import List, Optional
from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.branch.repository import BranchRepository
from chitfund.core.init_db import get_db
from chitfund.core.schemas import Message
from chitfund.customer import schemas
from chitfund.customer.repository import CustomerRepository
from chitfund.passbook.repository import PassbookRepository
from chitfund.passbook.schemas import Passbook, PassbookEntry
from chitfund.user.models import Role, STAFF_ROLES, User
from restapi.endpoints.auth import branch_scope, ensure_branch_access, get_current_user, require_roles

router = APIRouter(
    prefix="/customers",
    tags=["customers"],
    responses={404: {"description": "Not found"}},
)

staff = require_roles(*STAFF_ROLES)
kyc_reviewers = require_roles(Role.SUPER_ADMIN, Role.DEPARTMENT_HEAD, Role.MANDAL_HEAD, Role.BRANCH_MANAGER)


async def target_branch(db: AsyncSession, current_user: User, requested: Optional[int]) -> int:
    """Branch new customers go to: own branch for branch staff, chosen one for head office."""
    branch_id = requested if current_user.is_head_office else current_user.branch_id
    if branch_id is None:
        raise HTTPException(status_code=400, detail="A branch must be selected for the customer")
    if await BranchRepository(db).get_by_id(branch_id) is None:
        raise HTTPException(status_code=404, detail="Branch not found")
    return branch_id


async def get_customer_or_404(db: AsyncSession, customer_id: int, current_user: User):
    customer = await CustomerRepository(db).get_by_id(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    ensure_branch_access(current_user, customer.branch_id)
    return customer


@router.post("/", response_model=schemas.Customer, status_code=201)
async def create_customer(
    customer: schemas.CustomerCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    """Register a customer; a unique CUS- code is generated."""
    branch_id = await target_branch(db, current_user, customer.branch_id)
    return await CustomerRepository(db).create(customer, branch_id, current_user)


@router.get("/", response_model=List[schemas.Customer])
async def read_customers(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Number of records to return"),
    branch_id: Optional[int] = Query(None, description="Filter by branch (head office only)"),
    status: Optional[str] = Query(None, description="Filter by customer status"),
    kyc_status: Optional[str] = Query(None, description="Filter by KYC status"),
    search: Optional[str] = Query(None, description="Match name, mobile or code"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    return await CustomerRepository(db).get_all(
        skip=skip,
        limit=limit,
        branch_id=branch_scope(current_user, branch_id),
        status=status,
        kyc_status=kyc_status,
        search=search,
    )


@router.get("/export")
async def export_customers(
    branch_id: Optional[int] = Query(None, description="Branch to export (head office only)"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    """Download customers as a CSV file."""
    content = await CustomerRepository(db).export_csv(branch_scope(current_user, branch_id))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="customers.csv"'},
    )


@router.post("/import", response_model=schemas.CustomerUploadResponse)
async def import_customers(
    file: UploadFile = File(...),
    branch_id: Optional[int] = Query(None, description="Destination branch (head office only)"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    """
    Import customers from a CSV file.

    The CSV file must have the following columns:
    - name: Customer name
    - mobile: 10 to 13 digits, optionally prefixed with +

    Optional columns: email, age, monthly_income, id_proof_type.
    Nothing is imported when any row fails validation.
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        return schemas.CustomerUploadResponse(
            success=False,
            message="Invalid file format. Only CSV files (.csv) are supported."
        )

    destination = await target_branch(db, current_user, branch_id)
    file_content = await file.read()
    success, message, created, errors = await CustomerRepository(db).upload_from_csv(
        io.BytesIO(file_content), destination, current_user
    )

    return schemas.CustomerUploadResponse(
        success=success,
        message=message,
        created=created,
        errors=[schemas.CustomerUploadError(**error) for error in errors] or None,
    )


@router.get("/{customer_id}", response_model=schemas.Customer)
async def read_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    return await get_customer_or_404(db, customer_id, current_user)


@router.get("/{customer_id}/passbook", response_model=Passbook)
async def read_passbook(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Contributions paid, payouts and dividends received, with the running balance."""
    if current_user.role == Role.CUSTOMER.value:
        own = await CustomerRepository(db).get_by_user_id(current_user.id)
        if own is None or own.id != customer_id:
            raise HTTPException(status_code=404, detail="Customer not found")
    else:
        await get_customer_or_404(db, customer_id, current_user)
    statement = await PassbookRepository(db).statement(customer_id)
    statement["entries"] = [PassbookEntry.model_validate(e) for e in statement["entries"]]
    return Passbook(**statement)


@router.put("/{customer_id}", response_model=schemas.Customer)
async def update_customer(
    customer_id: int,
    customer: schemas.CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    db_customer = await get_customer_or_404(db, customer_id, current_user)
    return await CustomerRepository(db).update(db_customer, customer, current_user)


@router.post("/{customer_id}/kyc", response_model=schemas.Customer)
async def review_kyc(
    customer_id: int,
    decision: schemas.KycDecision,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(kyc_reviewers)
):
    """Verify or reject the customer's KYC documents."""
    db_customer = await get_customer_or_404(db, customer_id, current_user)
    return await CustomerRepository(db).set_kyc_status(db_customer, decision.status, current_user, decision.note)


@router.delete("/{customer_id}", response_model=Message)
async def delete_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(kyc_reviewers)
):
    db_customer = await get_customer_or_404(db, customer_id, current_user)
    await CustomerRepository(db).soft_delete(db_customer, current_user)
    return Message(message="Customer deleted successfully")
