"""Collection QR code model for the database."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from chitfund.core.database import Base
from chitfund.core.utils import utcnow


class QRCode(Base):
    """Payment QR code issued to a branch and optionally handed to an agent."""
    __tablename__ = "qrcodes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(40), unique=True, nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(String(10), nullable=False, default="active")  # active | assigned | inactive
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
