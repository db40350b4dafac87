"""Repository for risk assessments."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.audit.repository import log_audit
from chitfund.risk import scoring
from chitfund.risk.models import RiskAssessment
from chitfund.user.models import User


class RiskRepository:
    """Repository for risk assessment operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, customer_id: int, score: int, actor: User, notes: Optional[str] = None) -> RiskAssessment:
        assessment = RiskAssessment(
            customer_id=customer_id,
            score=score,
            level=scoring.risk_level(score),
            notes=notes,
            assessed_by=actor.id,
        )
        self.session.add(assessment)
        await self.session.flush()
        log_audit(self.session, "risk.assess", {"customer_id": customer_id, "score": score, "level": assessment.level},
                  actor=actor, entity_type="risk_assessment", entity_id=assessment.id)
        await self.session.commit()
        await self.session.refresh(assessment)
        return assessment

    async def history(self, customer_id: int) -> List[RiskAssessment]:
        result = await self.session.execute(
            select(RiskAssessment)
            .where(RiskAssessment.customer_id == customer_id)
            .order_by(RiskAssessment.created_at.desc(), RiskAssessment.id.desc())
        )
        return list(result.scalars().all())

    async def latest(self, customer_id: int) -> Optional[RiskAssessment]:
        return await scoring.latest_assessment(self.session, customer_id)
