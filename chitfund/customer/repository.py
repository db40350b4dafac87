"""Repository for customer operations."""

import io
from typing import BinaryIO, Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.audit.repository import log_audit
from chitfund.core.utils import random_code
from chitfund.customer.models import Customer
from chitfund.customer.schemas import CustomerCreate, CustomerUpdate
from chitfund.user.models import User

EXPORT_COLUMNS = [
    "code", "name", "email", "mobile", "status", "kyc_status",
    "id_proof_type", "age", "monthly_income", "branch_id", "created_at",
]
ID_PROOF_TYPES = {"AADHAR", "PAN", "PASSPORT", "DRIVING_LICENSE"}


class CustomerRepository:
    """Repository for customer operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def _unique_code(self) -> str:
        while True:
            code = random_code("CUS")
            result = await self.session.execute(select(Customer.id).where(Customer.code == code))
            if result.scalar_one_or_none() is None:
                return code

    async def create(self, customer: CustomerCreate, branch_id: int, actor: User) -> Customer:
        """Create a new customer in ``branch_id``."""
        data = customer.model_dump(exclude={"branch_id"})
        db_customer = Customer(
            **data,
            code=await self._unique_code(),
            branch_id=branch_id,
            created_by=actor.id,
        )
        self.session.add(db_customer)
        await self.session.flush()
        log_audit(self.session, "customer.create", {"code": db_customer.code, "name": db_customer.name},
                  actor=actor, entity_type="customer", entity_id=db_customer.id)
        await self.session.commit()
        await self.session.refresh(db_customer)
        return db_customer

    async def get_by_id(self, customer_id: int) -> Optional[Customer]:
        result = await self.session.execute(
            select(Customer).where(Customer.id == customer_id, Customer.is_deleted.is_(False))
        )
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: int) -> Optional[Customer]:
        result = await self.session.execute(
            select(Customer).where(Customer.user_id == user_id, Customer.is_deleted.is_(False))
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        branch_id: Optional[int] = None,
        status: Optional[str] = None,
        kyc_status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Customer]:
        """Get customers with optional filtering; deleted rows are hidden."""
        query = select(Customer).where(Customer.is_deleted.is_(False))

        if branch_id is not None:
            query = query.where(Customer.branch_id == branch_id)
        if status:
            query = query.where(Customer.status == status)
        if kyc_status:
            query = query.where(Customer.kyc_status == kyc_status)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                Customer.name.ilike(pattern),
                Customer.mobile.like(pattern),
                Customer.code.ilike(pattern),
            ))

        query = query.order_by(Customer.id).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update(self, db_customer: Customer, customer: CustomerUpdate, actor: User) -> Customer:
        changes = customer.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(db_customer, field, value)

        log_audit(self.session, "customer.update", changes, actor=actor,
                  entity_type="customer", entity_id=db_customer.id)
        await self.session.commit()
        await self.session.refresh(db_customer)
        return db_customer

    async def set_kyc_status(self, db_customer: Customer, status: str, actor: User,
                             note: Optional[str] = None) -> Customer:
        """Record the KYC decision; a verified pending customer becomes active."""
        db_customer.kyc_status = status
        if status == "verified" and db_customer.status == "pending":
            db_customer.status = "active"
        elif status == "rejected":
            db_customer.status = "rejected"
        log_audit(self.session, f"customer.kyc_{status}", {"note": note}, actor=actor,
                  entity_type="customer", entity_id=db_customer.id)
        await self.session.commit()
        await self.session.refresh(db_customer)
        return db_customer

    async def soft_delete(self, db_customer: Customer, actor: User) -> None:
        db_customer.is_deleted = True
        db_customer.status = "inactive"
        log_audit(self.session, "customer.delete", {"code": db_customer.code}, actor=actor,
                  entity_type="customer", entity_id=db_customer.id)
        await self.session.commit()

    async def export_csv(self, branch_id: Optional[int] = None) -> str:
        """Customers of a branch (or all branches) as CSV text."""
        customers = await self.get_all(limit=1_000_000, branch_id=branch_id)
        frame = pd.DataFrame(
            [{column: getattr(c, column) for column in EXPORT_COLUMNS} for c in customers],
            columns=EXPORT_COLUMNS,
        )
        return frame.to_csv(index=False)

    async def upload_from_csv(self, file_content: BinaryIO, branch_id: int,
                              actor: User) -> Tuple[bool, str, int, List[Dict]]:
        """
        Import customers from a CSV file into one branch.

        Required columns: name, mobile. Optional: email, age, monthly_income,
        id_proof_type. Every row is validated first; nothing is stored if
        any row fails.

        Returns:
            Tuple containing:
            - Success status (bool)
            - Message (str)
            - Number of customers created (int)
            - List of errors if any (List[Dict])
        """
        errors = []

        try:
            frame = pd.read_csv(io.BytesIO(file_content.read()), dtype=str, keep_default_na=False)
        except (ValueError, pd.errors.ParserError, UnicodeDecodeError) as e:
            return False, f"Error processing file: {e}", 0, []

        frame.columns = [str(c).strip().lower() for c in frame.columns]
        if not {"name", "mobile"}.issubset(frame.columns):
            return False, "CSV file must contain 'name' and 'mobile' columns", 0, []

        rows = []
        seen_mobiles = set()
        for row_num, row in enumerate(frame.to_dict(orient="records"), start=2):  # header is row 1
            name = row.get("name", "").strip()
            mobile = row.get("mobile", "").strip()
            if len(name) < 2:
                errors.append({"row": row_num, "message": "Name is required"})
                continue
            if not mobile.lstrip("+").isdigit() or not 10 <= len(mobile.lstrip("+")) <= 13:
                errors.append({"row": row_num, "message": f"Invalid mobile number: {mobile}"})
                continue
            if mobile in seen_mobiles:
                errors.append({"row": row_num, "message": f"Duplicate mobile number in file: {mobile}"})
                continue
            seen_mobiles.add(mobile)

            try:
                age = int(row["age"]) if row.get("age", "").strip() else None
                income = float(row["monthly_income"]) if row.get("monthly_income", "").strip() else None
            except ValueError:
                errors.append({"row": row_num, "message": "Age and monthly income must be numbers"})
                continue

            proof = row.get("id_proof_type", "").strip().upper() or None
            if proof and proof not in ID_PROOF_TYPES:
                errors.append({"row": row_num, "message": f"Unknown ID proof type: {proof}"})
                continue

            rows.append({
                "name": name,
                "mobile": mobile,
                "email": row.get("email", "").strip() or None,
                "age": age,
                "monthly_income": income,
                "id_proof_type": proof,
            })

        if errors:
            return False, "Validation errors occurred", 0, errors

        for data in rows:
            self.session.add(Customer(
                **data,
                code=await self._unique_code(),
                branch_id=branch_id,
                created_by=actor.id,
            ))
        log_audit(self.session, "customer.import", {"count": len(rows), "branch_id": branch_id},
                  actor=actor, entity_type="branch", entity_id=branch_id)
        await self.session.commit()
        return True, "Customers uploaded successfully", len(rows), []
