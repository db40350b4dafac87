"""Customer model for the database."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from chitfund.core.database import Base
from chitfund.core.utils import utcnow


class Customer(Base):
    """Customer record kept by branch staff; may be linked to a login."""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=True)
    mobile = Column(String(20), nullable=False, index=True)
    status = Column(String(10), nullable=False, default="pending")
    kyc_status = Column(String(10), nullable=False, default="pending")
    id_proof_type = Column(String(20), nullable=True)
    id_proof_number = Column(String(40), nullable=True)
    age = Column(Integer, nullable=True)
    monthly_income = Column(Numeric(12, 2), nullable=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    loans = relationship("Loan", back_populates="customer")
