"""Passbook entry model for the database."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String

from chitfund.core.database import Base
from chitfund.core.utils import utcnow


class PassbookEntry(Base):
    """One line of a customer's passbook with the balance after it."""
    __tablename__ = "passbook_entries"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    chit_group_id = Column(Integer, ForeignKey("chit_groups.id"), nullable=True)
    entry_type = Column(String(10), nullable=False)  # credit | debit
    category = Column(String(20), nullable=False)  # contribution | payout | dividend
    amount = Column(Numeric(12, 2), nullable=False)
    balance = Column(Numeric(12, 2), nullable=False)
    description = Column(String(255), nullable=False)
    reference = Column(String(40), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
