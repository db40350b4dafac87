"""Risk assessment model for the database."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from chitfund.core.database import Base
from chitfund.core.utils import utcnow


class RiskAssessment(Base):
    """Credit score recorded for a customer at a point in time."""
    __tablename__ = "risk_assessments"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    level = Column(String(10), nullable=False)
    notes = Column(Text, nullable=True)
    assessed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
