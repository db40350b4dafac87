"""Branch model for the database."""

from sqlalchemy import Column, DateTime, Integer, String

from chitfund.core.database import Base
from chitfund.core.utils import utcnow


class Branch(Base):
    """Branch office; staff, customers, groups and QR codes belong to one."""
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    code = Column(String(20), unique=True, nullable=False)
    address = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    status = Column(String(10), nullable=False, default="active")
    # users.branch_id already points here, so no FK back to users
    manager_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
