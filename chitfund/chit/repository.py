"""Repository for chit groups, members, contributions and auctions."""

import io
import logging
from datetime import date
from typing import List, Optional, Tuple

import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.audit.repository import log_audit
from chitfund.chit import rules
from chitfund.chit.models import Auction, Bid, ChitGroup, ChitGroupMember, Contribution
from chitfund.chit.schemas import (
    AuctionCreate,
    ChitGroupCreate,
    ChitGroupUpdate,
    ContributionCreate,
)
from chitfund.core.utils import random_code
from chitfund.passbook.repository import CREDIT, DEBIT, PassbookRepository
from chitfund.user.models import User

logger = logging.getLogger(__name__)

CONTRIBUTION_EXPORT_COLUMNS = [
    "receipt_number", "customer_id", "cycle_number", "amount",
    "payment_date", "payment_mode", "status", "collected_by",
]


class ChitRepository:
    """Repository for chit group operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    # groups

    async def create_group(self, group: ChitGroupCreate, branch_id: int, actor: User) -> ChitGroup:
        db_group = ChitGroup(
            **group.model_dump(exclude={"branch_id"}),
            branch_id=branch_id,
            status="pending",
            current_cycle=1,
            created_by=actor.id,
        )
        self.session.add(db_group)
        await self.session.flush()
        log_audit(self.session, "chit_group.create",
                  {"group_name": db_group.group_name, "chit_value": group.chit_value,
                   "max_members": group.max_members, "duration": group.duration},
                  actor=actor, entity_type="chit_group", entity_id=db_group.id)
        await self.session.commit()
        await self.session.refresh(db_group)
        return db_group

    async def get_group(self, group_id: int) -> Optional[ChitGroup]:
        result = await self.session.execute(select(ChitGroup).where(ChitGroup.id == group_id))
        return result.scalar_one_or_none()

    async def get_groups(
        self,
        skip: int = 0,
        limit: int = 100,
        branch_id: Optional[int] = None,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
    ) -> List[ChitGroup]:
        query = select(ChitGroup)

        if branch_id is not None:
            query = query.where(ChitGroup.branch_id == branch_id)
        if status:
            query = query.where(ChitGroup.status == status)
        if customer_id is not None:
            query = query.join(ChitGroupMember, ChitGroupMember.chit_group_id == ChitGroup.id).where(
                ChitGroupMember.customer_id == customer_id
            )

        query = query.order_by(ChitGroup.id).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_group(self, db_group: ChitGroup, group: ChitGroupUpdate, actor: User) -> ChitGroup:
        changes = group.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(db_group, field, value)
        log_audit(self.session, "chit_group.update", changes, actor=actor,
                  entity_type="chit_group", entity_id=db_group.id)
        await self.session.commit()
        await self.session.refresh(db_group)
        return db_group

    async def member_count(self, group_id: int) -> int:
        result = await self.session.execute(
            select(func.count(ChitGroupMember.id)).where(ChitGroupMember.chit_group_id == group_id)
        )
        return result.scalar() or 0

    # members

    async def get_members(self, group_id: int) -> List[ChitGroupMember]:
        result = await self.session.execute(
            select(ChitGroupMember)
            .where(ChitGroupMember.chit_group_id == group_id)
            .order_by(ChitGroupMember.joined_at, ChitGroupMember.id)
        )
        return list(result.scalars().all())

    async def get_member(self, group_id: int, customer_id: int) -> Optional[ChitGroupMember]:
        result = await self.session.execute(
            select(ChitGroupMember).where(
                ChitGroupMember.chit_group_id == group_id,
                ChitGroupMember.customer_id == customer_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_member(self, db_group: ChitGroup, customer_id: int,
                         actor: User) -> Tuple[Optional[ChitGroupMember], Optional[str]]:
        """Returns the new membership or an error message."""
        if db_group.status in ("completed", "cancelled"):
            return None, f"Cannot add members to a {db_group.status} group"
        if await self.get_member(db_group.id, customer_id):
            return None, "Customer is already a member of this group"
        if await self.member_count(db_group.id) >= db_group.max_members:
            return None, f"Group is full ({db_group.max_members} members)"

        member = ChitGroupMember(chit_group_id=db_group.id, customer_id=customer_id)
        self.session.add(member)
        await self.session.flush()
        log_audit(self.session, "chit_group.add_member", {"customer_id": customer_id},
                  actor=actor, entity_type="chit_group", entity_id=db_group.id)
        await self.session.commit()
        await self.session.refresh(member)
        return member, None

    # contributions

    async def record_contribution(self, db_group: ChitGroup, contribution: ContributionCreate,
                                  actor: User) -> Tuple[Optional[Contribution], Optional[str]]:
        if not await self.get_member(db_group.id, contribution.customer_id):
            return None, "Customer is not a member of this group"

        cycle = contribution.cycle_number or db_group.current_cycle
        if cycle > db_group.duration:
            return None, f"Cycle {cycle} is beyond the group duration of {db_group.duration} months"

        amount = contribution.amount
        if amount is None:
            amount = float(rules.calculate_installment(db_group.chit_value, db_group.max_members).installment)

        db_contribution = Contribution(
            chit_group_id=db_group.id,
            customer_id=contribution.customer_id,
            amount=amount,
            cycle_number=cycle,
            payment_date=contribution.payment_date or date.today(),
            payment_mode=contribution.payment_mode,
            receipt_number=random_code("RCP", 8),
            collected_by=actor.id,
        )
        self.session.add(db_contribution)
        await self.session.flush()
        await PassbookRepository(self.session).record(
            contribution.customer_id, DEBIT, amount, "contribution",
            f"{db_group.group_name} installment, cycle {cycle}",
            reference=db_contribution.receipt_number, chit_group_id=db_group.id,
        )
        log_audit(self.session, "contribution.create",
                  {"chit_group_id": db_group.id, "customer_id": contribution.customer_id,
                   "amount": amount, "cycle": cycle},
                  actor=actor, entity_type="contribution", entity_id=db_contribution.id)
        await self.session.commit()
        await self.session.refresh(db_contribution)
        return db_contribution, None

    async def get_contributions(self, group_id: int, cycle_number: Optional[int] = None) -> List[Contribution]:
        query = select(Contribution).where(Contribution.chit_group_id == group_id)
        if cycle_number is not None:
            query = query.where(Contribution.cycle_number == cycle_number)
        result = await self.session.execute(query.order_by(Contribution.cycle_number, Contribution.id))
        return list(result.scalars().all())

    async def export_contributions(self, group_id: int, fmt: str = "csv") -> str:
        """Contributions of a group as CSV or JSON text."""
        contributions = await self.get_contributions(group_id)
        frame = pd.DataFrame(
            [{column: getattr(c, column) for column in CONTRIBUTION_EXPORT_COLUMNS} for c in contributions],
            columns=CONTRIBUTION_EXPORT_COLUMNS,
        )
        if not frame.empty:
            frame["amount"] = frame["amount"].astype(float)
            frame["payment_date"] = frame["payment_date"].astype(str)
        if fmt == "json":
            return frame.to_json(orient="records", date_format="iso")
        buffer = io.StringIO()
        frame.to_csv(buffer, index=False)
        return buffer.getvalue()

    # auctions

    async def create_auction(self, db_group: ChitGroup, auction: AuctionCreate,
                             actor: User) -> Tuple[Optional[Auction], Optional[str]]:
        if db_group.status != "active":
            return None, "Auctions can only be scheduled for active groups"

        cycle = auction.cycle_number or db_group.current_cycle
        if cycle > db_group.duration:
            return None, f"Cycle {cycle} is beyond the group duration of {db_group.duration} months"
        if cycle < db_group.current_cycle:
            return None, f"Cycle {cycle} has already been auctioned"

        existing = await self.session.execute(
            select(Auction).where(Auction.chit_group_id == db_group.id, Auction.cycle_number == cycle)
        )
        db_auction = existing.scalar_one_or_none()
        if db_auction is not None:
            if db_auction.status != "cancelled":
                return None, f"An auction already exists for cycle {cycle}"
            return await self._reopen_auction(db_auction, auction, actor), None

        db_auction = Auction(
            chit_group_id=db_group.id,
            cycle_number=cycle,
            start_time=auction.start_time.replace(tzinfo=None),
            status="scheduled",
        )
        self.session.add(db_auction)
        await self.session.flush()
        log_audit(self.session, "auction.create", {"chit_group_id": db_group.id, "cycle": cycle},
                  actor=actor, entity_type="auction", entity_id=db_auction.id)
        await self.session.commit()
        await self.session.refresh(db_auction)
        return db_auction, None

    async def _reopen_auction(self, db_auction: Auction, auction: AuctionCreate, actor: User) -> Auction:
        """A cycle whose auction was cancelled gets the same auction back, rescheduled."""
        db_auction.status = "scheduled"
        db_auction.start_time = auction.start_time.replace(tzinfo=None)
        db_auction.winner_id = None
        db_auction.winning_bid_id = None
        log_audit(self.session, "auction.reopen",
                  {"chit_group_id": db_auction.chit_group_id, "cycle": db_auction.cycle_number},
                  actor=actor, entity_type="auction", entity_id=db_auction.id)
        await self.session.commit()
        await self.session.refresh(db_auction)
        return db_auction

    async def _credit_auction(self, db_group: ChitGroup, db_auction: Auction, winning: Bid, dividend) -> None:
        passbook = PassbookRepository(self.session)
        reference = f"AUC-{db_auction.id}"
        await passbook.record(
            winning.customer_id, CREDIT, winning.amount, "payout",
            f"{db_group.group_name} auction payout, cycle {db_auction.cycle_number}",
            reference=reference, chit_group_id=db_group.id,
        )
        if dividend <= 0:
            return
        for member in await self.get_members(db_group.id):
            await passbook.record(
                member.customer_id, CREDIT, dividend, "dividend",
                f"{db_group.group_name} dividend, cycle {db_auction.cycle_number}",
                reference=reference, chit_group_id=db_group.id,
            )

    async def get_auction(self, auction_id: int) -> Optional[Auction]:
        result = await self.session.execute(select(Auction).where(Auction.id == auction_id))
        return result.scalar_one_or_none()

    async def get_group_auctions(self, group_id: int) -> List[Auction]:
        result = await self.session.execute(
            select(Auction).where(Auction.chit_group_id == group_id).order_by(Auction.cycle_number.desc())
        )
        return list(result.scalars().all())

    async def get_bids(self, auction_id: int) -> List[Bid]:
        """Bids of an auction, lowest first."""
        result = await self.session.execute(
            select(Bid).where(Bid.auction_id == auction_id).order_by(Bid.amount, Bid.created_at, Bid.id)
        )
        return list(result.scalars().all())

    async def place_bid(self, db_auction: Auction, customer_id: int, amount: float,
                        actor: User) -> Tuple[Optional[Bid], str]:
        """
        Place a bid on behalf of a member.

        Returns the stored bid and a success message, or ``None`` and the
        reason the bid was refused. Concurrent bids are not arbitrated.
        """
        if db_auction.status not in ("scheduled", "active"):
            return None, f"Bidding is closed for this auction ({db_auction.status})"

        db_group = await self.get_group(db_auction.chit_group_id)
        member = await self.get_member(db_group.id, customer_id)
        if member is None:
            return None, "Only members of this group can bid"
        if member.grab_cycle is not None:
            return None, f"This member already won the pot in cycle {member.grab_cycle}"

        bids = await self.get_bids(db_auction.id)
        decision = rules.evaluate_bid(amount, db_group.chit_value, [b.amount for b in bids])
        if not decision.accepted:
            logger.info("Bid of %s on auction %s refused: %s", amount, db_auction.id, decision.message)
            return None, decision.message

        bid = Bid(auction_id=db_auction.id, customer_id=customer_id, amount=amount, placed_by=actor.id)
        self.session.add(bid)
        if db_auction.status == "scheduled":
            db_auction.status = "active"
        await self.session.flush()
        log_audit(self.session, "bid.place",
                  {"auction_id": db_auction.id, "customer_id": customer_id, "amount": amount},
                  actor=actor, entity_type="bid", entity_id=bid.id)
        await self.session.commit()
        await self.session.refresh(bid)
        return bid, decision.message

    async def close_auction(self, db_auction: Auction, actor: User) -> Tuple[Optional[dict], Optional[str]]:
        """
        Close an auction: the lowest bid wins.

        With no bids the auction is cancelled. The winner's membership
        records the cycle and the group moves on to its next cycle.
        """
        if db_auction.status not in ("scheduled", "active"):
            return None, f"Auction is already {db_auction.status}"

        bids = await self.get_bids(db_auction.id)
        if not bids:
            db_auction.status = "cancelled"
            log_audit(self.session, "auction.cancel", {"reason": "no bids"}, actor=actor,
                      entity_type="auction", entity_id=db_auction.id)
            await self.session.commit()
            return None, "No bids were placed in this auction."

        winning = bids[0]
        db_group = await self.get_group(db_auction.chit_group_id)
        db_auction.status = "completed"
        db_auction.winner_id = winning.customer_id
        db_auction.winning_bid_id = winning.id

        member = await self.get_member(db_group.id, winning.customer_id)
        if member is not None:
            member.grab_cycle = db_auction.cycle_number

        if db_auction.cycle_number >= db_group.current_cycle:
            db_group.current_cycle = db_auction.cycle_number + 1
        if db_group.current_cycle > db_group.duration:
            db_group.current_cycle = db_group.duration
            db_group.status = "completed"

        dividend = rules.dividend_per_member(
            db_group.chit_value, winning.amount, db_group.commission_percentage, db_group.max_members
        )
        await self._credit_auction(db_group, db_auction, winning, dividend)
        log_audit(self.session, "auction.close",
                  {"winning_bid_id": winning.id, "winner_id": winning.customer_id, "amount": winning.amount},
                  actor=actor, entity_type="auction", entity_id=db_auction.id)
        await self.session.commit()
        await self.session.refresh(db_auction)
        logger.info("Auction %s won by customer %s with %s", db_auction.id, winning.customer_id, winning.amount)
        return {
            "auction": db_auction,
            "winning_amount": float(winning.amount),
            "dividend_per_member": float(dividend),
        }, None
