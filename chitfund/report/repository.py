"""Repository for dashboard and yearly reports."""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.chit.models import ChitGroup, Contribution
from chitfund.customer.models import Customer
from chitfund.loan.models import Loan
from chitfund.report import schemas


class ReportRepository:
    """Repository for report operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def _scalar(self, query) -> float:
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def get_dashboard(self, branch_id: Optional[int] = None) -> schemas.Dashboard:
        """
        Counters shown on the role dashboards.

        Head office roles see every branch; pass ``branch_id`` to scope the
        numbers to one branch.
        """
        customers = select(func.count(Customer.id)).where(Customer.is_deleted.is_(False))
        groups = select(func.count(ChitGroup.id)).where(ChitGroup.status == "active")
        loans = select(Loan.status, func.count(Loan.id)).group_by(Loan.status)
        disbursed = select(func.sum(Loan.amount)).where(Loan.disbursed_at.is_not(None))
        collected = select(func.sum(Contribution.amount)).where(Contribution.status == "completed")

        if branch_id is not None:
            customers = customers.where(Customer.branch_id == branch_id)
            groups = groups.where(ChitGroup.branch_id == branch_id)
            loans = loans.where(Loan.branch_id == branch_id)
            disbursed = disbursed.where(Loan.branch_id == branch_id)
            collected = collected.join(ChitGroup, Contribution.chit_group_id == ChitGroup.id).where(
                ChitGroup.branch_id == branch_id
            )

        result = await self.session.execute(loans)
        loans_by_status = {status: count for status, count in result.all()}

        return schemas.Dashboard(
            branch_id=branch_id,
            total_customers=await self._scalar(customers),
            active_customers=await self._scalar(customers.where(Customer.status == "active")),
            pending_kyc=await self._scalar(customers.where(Customer.kyc_status == "pending")),
            active_groups=await self._scalar(groups),
            loans_by_status=loans_by_status,
            disbursed_amount=float(await self._scalar(disbursed)),
            contributions_collected=float(await self._scalar(collected)),
        )

    async def get_year_summary(self, year: int, branch_id: Optional[int] = None) -> schemas.YearSummary:
        """
        Summarized information for a given year, grouped by month.

        Returns monthly summaries with:
        - Number and amount of loans disbursed in the month
        - Number and amount of contributions collected in the month
        - % of the year's disbursements made in the month
        - % of the year's collections made in the month
        """
        year_start = datetime(year, 1, 1)
        year_end = datetime(year + 1, 1, 1)

        loan_query = select(Loan).where(Loan.disbursed_at >= year_start, Loan.disbursed_at < year_end)
        contribution_query = select(Contribution).where(
            Contribution.status == "completed",
            Contribution.payment_date >= year_start.date(),
            Contribution.payment_date < year_end.date(),
        )
        if branch_id is not None:
            loan_query = loan_query.where(Loan.branch_id == branch_id)
            contribution_query = contribution_query.join(
                ChitGroup, Contribution.chit_group_id == ChitGroup.id
            ).where(ChitGroup.branch_id == branch_id)

        result = await self.session.execute(loan_query)
        yearly_loans = list(result.scalars().all())
        result = await self.session.execute(contribution_query)
        yearly_contributions = list(result.scalars().all())

        yearly_disbursed = sum(float(loan.amount) for loan in yearly_loans)
        yearly_collected = sum(float(c.amount) for c in yearly_contributions)

        monthly_summaries = []
        for month in range(1, 13):
            month_loans = [loan for loan in yearly_loans if loan.disbursed_at.month == month]
            month_contributions = [c for c in yearly_contributions if c.payment_date.month == month]
            month_disbursed = sum(float(loan.amount) for loan in month_loans)
            month_collected = sum(float(c.amount) for c in month_contributions)

            monthly_summaries.append(schemas.MonthSummary(
                month=month,
                year=year,
                num_loans_disbursed=len(month_loans),
                disbursed_amount=month_disbursed,
                num_contributions=len(month_contributions),
                collected_amount=month_collected,
                disbursed_percentage_of_year=(
                    (month_disbursed / yearly_disbursed * 100) if yearly_disbursed > 0 else 0
                ),
                collected_percentage_of_year=(
                    (month_collected / yearly_collected * 100) if yearly_collected > 0 else 0
                ),
            ))

        return schemas.YearSummary(
            year=year,
            branch_id=branch_id,
            total_loans_disbursed=len(yearly_loans),
            total_disbursed_amount=yearly_disbursed,
            total_contributions=len(yearly_contributions),
            total_collected_amount=yearly_collected,
            monthly_summaries=monthly_summaries,
        )
