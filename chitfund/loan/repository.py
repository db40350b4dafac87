"""Repository for loan operations."""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.audit.repository import log_audit
from chitfund.core.utils import utcnow
from chitfund.customer.models import Customer
from chitfund.loan import calculator
from chitfund.loan.models import Loan, LoanRepayment
from chitfund.loan.schemas import RepaymentCreate
from chitfund.user.models import User

logger = logging.getLogger(__name__)


class LoanRepository:
    """Repository for loan operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, customer: Customer, amount: float, interest_rate: float, duration: int,
                     actor: User, purpose: Optional[str] = None, details: Optional[dict] = None) -> Loan:
        """Open a pending loan for ``customer`` in the customer's branch."""
        db_loan = Loan(
            customer_id=customer.id,
            branch_id=customer.branch_id,
            amount=amount,
            interest_rate=interest_rate,
            duration=duration,
            purpose=purpose,
            status="pending",
            created_by=actor.id,
        )
        self.session.add(db_loan)
        await self.session.flush()
        audit = {"customer_id": customer.id, "amount": amount}
        if details:
            audit["eligibility"] = details
        log_audit(self.session, "loan.create", audit, actor=actor, entity_type="loan", entity_id=db_loan.id)
        await self.session.commit()
        await self.session.refresh(db_loan)
        return db_loan

    async def get_by_id(self, loan_id: int) -> Optional[Loan]:
        result = await self.session.execute(select(Loan).where(Loan.id == loan_id))
        return result.scalar_one_or_none()

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        branch_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Loan]:
        query = select(Loan)

        if branch_id is not None:
            query = query.where(Loan.branch_id == branch_id)
        if customer_id is not None:
            query = query.where(Loan.customer_id == customer_id)
        if status:
            query = query.where(Loan.status == status)

        query = query.order_by(Loan.created_at.desc(), Loan.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def change_status(self, db_loan: Loan, new_status: str, actor: User,
                            note: Optional[str] = None) -> Optional[Loan]:
        """Move a loan along its lifecycle; returns None for a disallowed move."""
        if not calculator.can_transition(db_loan.status, new_status):
            return None

        previous = db_loan.status
        db_loan.status = new_status
        now = utcnow()
        if new_status == "approved":
            db_loan.approved_by = actor.id
            db_loan.approved_at = now
        elif new_status == "disbursed":
            db_loan.disbursed_at = now

        log_audit(self.session, f"loan.{new_status}", {"from": previous, "note": note},
                  actor=actor, entity_type="loan", entity_id=db_loan.id)
        await self.session.commit()
        await self.session.refresh(db_loan)
        logger.info("Loan %s moved %s -> %s by user %s", db_loan.id, previous, new_status, actor.id)
        return db_loan

    async def get_repayments(self, loan_id: int) -> List[LoanRepayment]:
        result = await self.session.execute(
            select(LoanRepayment)
            .where(LoanRepayment.loan_id == loan_id)
            .order_by(LoanRepayment.payment_date, LoanRepayment.id)
        )
        return list(result.scalars().all())

    async def total_repaid(self, loan_id: int) -> float:
        result = await self.session.execute(
            select(func.sum(LoanRepayment.amount)).where(
                LoanRepayment.loan_id == loan_id,
                LoanRepayment.status == "completed",
            )
        )
        return float(result.scalar() or 0)

    async def add_repayment(self, db_loan: Loan, repayment: RepaymentCreate, actor: User) -> LoanRepayment:
        """Record a repayment; a loan whose payable total is met is completed."""
        db_repayment = LoanRepayment(
            loan_id=db_loan.id,
            amount=repayment.amount,
            payment_date=repayment.payment_date or date.today(),
            payment_mode=repayment.payment_mode,
            collected_by=actor.id,
        )
        self.session.add(db_repayment)
        await self.session.flush()

        payable = calculator.calculate_emi(db_loan.amount, db_loan.interest_rate, db_loan.duration)["total_amount"]
        if await self.total_repaid(db_loan.id) >= float(payable):
            db_loan.status = "completed"

        log_audit(self.session, "loan.repayment", {"amount": repayment.amount, "mode": repayment.payment_mode},
                  actor=actor, entity_type="loan", entity_id=db_loan.id)
        await self.session.commit()
        await self.session.refresh(db_repayment)
        return db_repayment

    async def detail(self, db_loan: Loan) -> dict:
        """Loan with its repayments, outstanding balance and amortisation schedule."""
        repayments = await self.get_repayments(db_loan.id)
        total_repaid = await self.total_repaid(db_loan.id)
        figures = calculator.calculate_emi(db_loan.amount, db_loan.interest_rate, db_loan.duration)
        start = (db_loan.disbursed_at or db_loan.created_at).date()
        schedule = calculator.repayment_schedule(db_loan.amount, db_loan.interest_rate, db_loan.duration, start)
        return {
            "id": db_loan.id,
            "customer_id": db_loan.customer_id,
            "branch_id": db_loan.branch_id,
            "amount": float(db_loan.amount),
            "interest_rate": float(db_loan.interest_rate),
            "duration": db_loan.duration,
            "purpose": db_loan.purpose,
            "status": db_loan.status,
            "approved_by": db_loan.approved_by,
            "approved_at": db_loan.approved_at,
            "disbursed_at": db_loan.disbursed_at,
            "created_at": db_loan.created_at,
            "emi": float(figures["emi"]),
            "total_repaid": total_repaid,
            "outstanding": max(0.0, float(figures["total_amount"]) - total_repaid),
            "repayments": repayments,
            "schedule": schedule,
        }
