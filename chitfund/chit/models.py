"""Chit group, membership, contribution, auction and bid models."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from chitfund.core.database import Base
from chitfund.core.utils import utcnow


class ChitGroup(Base):
    """Chit scheme: members pay an installment each cycle, one member takes the pot."""
    __tablename__ = "chit_groups"

    id = Column(Integer, primary_key=True, index=True)
    group_name = Column(String(120), nullable=False)
    chit_value = Column(Numeric(14, 2), nullable=False)
    commission_percentage = Column(Numeric(5, 2), nullable=False, default=5)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)  # months, one auction per month
    max_members = Column(Integer, nullable=False)
    current_cycle = Column(Integer, nullable=False, default=1)
    status = Column(String(10), nullable=False, default="pending")
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    members = relationship("ChitGroupMember", back_populates="chit_group")
    auctions = relationship("Auction", back_populates="chit_group")


class ChitGroupMember(Base):
    __tablename__ = "chit_group_members"
    __table_args__ = (UniqueConstraint("chit_group_id", "customer_id", name="uq_chit_member"),)

    id = Column(Integer, primary_key=True, index=True)
    chit_group_id = Column(Integer, ForeignKey("chit_groups.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    joined_at = Column(DateTime, nullable=False, default=utcnow)
    grab_cycle = Column(Integer, nullable=True)  # cycle in which this member won the pot

    chit_group = relationship("ChitGroup", back_populates="members")
    customer = relationship("Customer")


class Contribution(Base):
    """Installment paid by a member for one cycle."""
    __tablename__ = "contributions"

    id = Column(Integer, primary_key=True, index=True)
    chit_group_id = Column(Integer, ForeignKey("chit_groups.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    cycle_number = Column(Integer, nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_mode = Column(String(20), nullable=False, default="cash")
    receipt_number = Column(String(30), unique=True, nullable=False)
    status = Column(String(12), nullable=False, default="completed")
    collected_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Auction(Base):
    __tablename__ = "auctions"
    __table_args__ = (UniqueConstraint("chit_group_id", "cycle_number", name="uq_auction_cycle"),)

    id = Column(Integer, primary_key=True, index=True)
    chit_group_id = Column(Integer, ForeignKey("chit_groups.id"), nullable=False, index=True)
    cycle_number = Column(Integer, nullable=False)
    start_time = Column(DateTime, nullable=False)
    status = Column(String(10), nullable=False, default="scheduled")
    winner_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    winning_bid_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    chit_group = relationship("ChitGroup", back_populates="auctions")
    bids = relationship("Bid", back_populates="auction", order_by="Bid.amount")


class Bid(Base):
    """Discount a member is willing to accept; the lowest bid wins."""
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True)
    auction_id = Column(Integer, ForeignKey("auctions.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    placed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    auction = relationship("Auction", back_populates="bids")
