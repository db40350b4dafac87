"""Repository for branch operations."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.audit.repository import log_audit
from chitfund.branch.models import Branch
from chitfund.branch.schemas import BranchCreate, BranchUpdate
from chitfund.user.models import Role, User


class BranchRepository:
    """Repository for branch operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, branch: BranchCreate, actor: User) -> Branch:
        db_branch = Branch(**branch.model_dump())
        db_branch.code = db_branch.code.upper()
        self.session.add(db_branch)
        await self.session.flush()
        log_audit(self.session, "branch.create", {"name": db_branch.name, "code": db_branch.code},
                  actor=actor, entity_type="branch", entity_id=db_branch.id)
        await self.session.commit()
        await self.session.refresh(db_branch)
        return db_branch

    async def get_by_id(self, branch_id: int) -> Optional[Branch]:
        result = await self.session.execute(select(Branch).where(Branch.id == branch_id))
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str) -> Optional[Branch]:
        result = await self.session.execute(select(Branch).where(Branch.code == code.strip().upper()))
        return result.scalar_one_or_none()

    async def code_exists(self, code: str) -> bool:
        return await self.get_by_code(code) is not None

    async def get_all(self, status: Optional[str] = None) -> List[Branch]:
        query = select(Branch)
        if status:
            query = query.where(Branch.status == status)
        result = await self.session.execute(query.order_by(Branch.name))
        return list(result.scalars().all())

    async def update(self, branch_id: int, branch: BranchUpdate, actor: User) -> Optional[Branch]:
        db_branch = await self.get_by_id(branch_id)
        if not db_branch:
            return None

        changes = branch.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(db_branch, field, value)

        log_audit(self.session, "branch.update", changes, actor=actor, entity_type="branch", entity_id=branch_id)
        await self.session.commit()
        await self.session.refresh(db_branch)
        return db_branch

    async def assign_manager(self, db_branch: Branch, manager: User, actor: User) -> Branch:
        """Make ``manager`` the branch manager and move them to the branch."""
        db_branch.manager_id = manager.id
        manager.branch_id = db_branch.id
        manager.role = Role.BRANCH_MANAGER.value
        log_audit(self.session, "branch.assign_manager", {"manager_id": manager.id},
                  actor=actor, entity_type="branch", entity_id=db_branch.id)
        await self.session.commit()
        await self.session.refresh(db_branch)
        return db_branch
