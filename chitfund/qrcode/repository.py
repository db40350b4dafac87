"""Repository for branch QR codes."""

import secrets
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.audit.repository import log_audit
from chitfund.qrcode.models import QRCode
from chitfund.user.models import User


def status_for(assigned_to: Optional[int]) -> str:
    """A code handed to an agent is ``assigned``, otherwise ``active``."""
    return "assigned" if assigned_to else "active"


class QRCodeRepository:
    """Repository for QR code operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, branch_id: int, assigned_to: Optional[int], actor: User) -> QRCode:
        db_qr = QRCode(
            code=f"QR-{secrets.token_hex(8).upper()}",
            branch_id=branch_id,
            assigned_to=assigned_to,
            status=status_for(assigned_to),
            created_by=actor.id,
        )
        self.session.add(db_qr)
        await self.session.flush()
        log_audit(self.session, "qrcode.create", {"branch_id": branch_id, "assigned_to": assigned_to},
                  actor=actor, entity_type="qrcode", entity_id=db_qr.id)
        await self.session.commit()
        await self.session.refresh(db_qr)
        return db_qr

    async def get_by_id(self, qr_id: int) -> Optional[QRCode]:
        result = await self.session.execute(select(QRCode).where(QRCode.id == qr_id))
        return result.scalar_one_or_none()

    async def get_all(self, branch_id: Optional[int] = None, status: Optional[str] = None) -> List[QRCode]:
        query = select(QRCode)
        if branch_id is not None:
            query = query.where(QRCode.branch_id == branch_id)
        if status:
            query = query.where(QRCode.status == status)
        result = await self.session.execute(query.order_by(QRCode.created_at.desc(), QRCode.id.desc()))
        return list(result.scalars().all())

    async def assign(self, db_qr: QRCode, assigned_to: Optional[int], actor: User) -> QRCode:
        db_qr.assigned_to = assigned_to
        db_qr.status = status_for(assigned_to)
        log_audit(self.session, "qrcode.assign", {"assigned_to": assigned_to}, actor=actor,
                  entity_type="qrcode", entity_id=db_qr.id)
        await self.session.commit()
        await self.session.refresh(db_qr)
        return db_qr

    async def deactivate(self, db_qr: QRCode, actor: User) -> QRCode:
        db_qr.status = "inactive"
        log_audit(self.session, "qrcode.deactivate", {}, actor=actor, entity_type="qrcode", entity_id=db_qr.id)
        await self.session.commit()
        await self.session.refresh(db_qr)
        return db_qr
