"""Repository for customer passbooks."""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.core.utils import to_money
from chitfund.customer.models import Customer
from chitfund.passbook.models import PassbookEntry
from chitfund.user.models import User

logger = logging.getLogger(__name__)

CREDIT = "credit"
DEBIT = "debit"


class PassbookRepository:
    """
    Running ledger of money paid in and paid out per customer.

    Entries are staged on the caller's session and committed with the
    change that caused them. The balance of a customer with a login is
    mirrored to the login's wallet balance.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def balance(self, customer_id: int) -> Decimal:
        result = await self.session.execute(
            select(PassbookEntry.balance)
            .where(PassbookEntry.customer_id == customer_id)
            .order_by(PassbookEntry.id.desc())
            .limit(1)
        )
        balance = result.scalar_one_or_none()
        return Decimal(str(balance)) if balance is not None else Decimal("0.00")

    async def record(
        self,
        customer_id: int,
        entry_type: str,
        amount,
        category: str,
        description: str,
        reference: Optional[str] = None,
        chit_group_id: Optional[int] = None,
    ) -> PassbookEntry:
        if entry_type not in (CREDIT, DEBIT):
            raise ValueError(f"Unknown passbook entry type: {entry_type}")
        amount = to_money(amount)
        current = await self.balance(customer_id)
        balance = current + amount if entry_type == CREDIT else current - amount

        entry = PassbookEntry(
            customer_id=customer_id,
            chit_group_id=chit_group_id,
            entry_type=entry_type,
            category=category,
            amount=amount,
            balance=balance,
            description=description,
            reference=reference,
        )
        self.session.add(entry)
        await self.session.flush()

        customer = await self.session.get(Customer, customer_id)
        if customer is not None and customer.user_id is not None:
            user = await self.session.get(User, customer.user_id)
            if user is not None:
                user.wallet_balance = balance
        logger.debug("Passbook %s for customer %s: %s %s, balance %s",
                     category, customer_id, entry_type, amount, balance)
        return entry

    async def get_entries(self, customer_id: int) -> List[PassbookEntry]:
        result = await self.session.execute(
            select(PassbookEntry)
            .where(PassbookEntry.customer_id == customer_id)
            .order_by(PassbookEntry.id)
        )
        return list(result.scalars().all())

    async def statement(self, customer_id: int) -> dict:
        entries = await self.get_entries(customer_id)
        credits = sum((Decimal(str(e.amount)) for e in entries if e.entry_type == CREDIT), Decimal(0))
        debits = sum((Decimal(str(e.amount)) for e in entries if e.entry_type == DEBIT), Decimal(0))
        return {
            "customer_id": customer_id,
            "balance": float(entries[-1].balance) if entries else 0.0,
            "total_credits": float(credits),
            "total_debits": float(debits),
            "entries": entries,
        }
