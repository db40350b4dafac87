"""Loan and repayment models for the database."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from chitfund.core.database import Base
from chitfund.core.utils import utcnow


class Loan(Base):
    """Loan issued to a customer."""
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    interest_rate = Column(Numeric(5, 2), nullable=False)  # annual percent
    duration = Column(Integer, nullable=False)  # months
    purpose = Column(String(255), nullable=True)
    status = Column(String(12), nullable=False, default="pending")
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    disbursed_at = Column(DateTime, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    customer = relationship("Customer", back_populates="loans")
    repayments = relationship("LoanRepayment", back_populates="loan", order_by="LoanRepayment.payment_date")


class LoanRepayment(Base):
    """Repayment collected against a loan."""
    __tablename__ = "loan_repayments"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_mode = Column(String(20), nullable=False, default="cash")
    status = Column(String(12), nullable=False, default="completed")
    collected_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    loan = relationship("Loan", back_populates="repayments")
