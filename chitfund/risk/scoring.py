"""Risk levels and the loan eligibility checks."""

from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.chit.models import Auction, Contribution
from chitfund.risk.models import RiskAssessment

LOW_RISK_SCORE = 700
MIN_LOAN_SCORE = 650
MIN_SAVINGS_PAYMENTS = 3


def risk_level(score: int) -> str:
    if score >= LOW_RISK_SCORE:
        return "low"
    if score >= MIN_LOAN_SCORE:
        return "medium"
    return "high"


def credit_history(score: Optional[int]) -> str:
    if score is None:
        return "Unknown"
    return "Good" if score > LOW_RISK_SCORE else "Average"


async def latest_assessment(session: AsyncSession, customer_id: int) -> Optional[RiskAssessment]:
    result = await session.execute(
        select(RiskAssessment)
        .where(RiskAssessment.customer_id == customer_id)
        .order_by(RiskAssessment.created_at.desc(), RiskAssessment.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def check_loan_eligibility(session: AsyncSession, customer_id: int, group_id: int) -> Dict[str, Any]:
    """
    A member qualifies for a loan when:
    - the latest credit score is above 650,
    - at least three contributions have been paid,
    - the group has completed at least one auction.
    """
    details: Dict[str, Any] = {"checks": {}}

    assessment = await latest_assessment(session, customer_id)
    score = assessment.score if assessment else None
    details["credit_score"] = score
    details["credit_history"] = credit_history(score)
    details["checks"]["credit_score"] = score is not None and score > MIN_LOAN_SCORE

    result = await session.execute(
        select(func.count(Contribution.id)).where(
            Contribution.customer_id == customer_id,
            Contribution.status == "completed",
        )
    )
    details["payments_made"] = result.scalar() or 0
    details["checks"]["savings_history"] = details["payments_made"] >= MIN_SAVINGS_PAYMENTS

    result = await session.execute(
        select(func.count(Auction.id)).where(
            Auction.chit_group_id == group_id,
            Auction.status == "completed",
        )
    )
    details["checks"]["group_performance"] = (result.scalar() or 0) > 0

    return {
        "is_eligible": all(details["checks"].values()),
        "details": details,
    }
