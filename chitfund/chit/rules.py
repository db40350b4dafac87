"""Chit arithmetic and the auction bid rule.

Pure functions over already-fetched rows; the repository supplies the data.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from chitfund.core.utils import format_inr, to_money

INVALID_BID_MESSAGE = "Please enter a valid bid amount."


@dataclass(frozen=True)
class Installment:
    installment: Decimal
    monthly_collection: Decimal
    total_commission: Decimal


@dataclass(frozen=True)
class BidDecision:
    accepted: bool
    message: str


def calculate_installment(chit_value, max_members: int, commission_percentage=0) -> Installment:
    """
    installment = chit_value / max_members
    monthly_collection = installment * max_members
    total_commission = chit_value * commission_percentage / 100

    A group without members has nothing to split: installment and
    collection are zero.
    """
    value = Decimal(str(chit_value))
    commission = to_money(value * Decimal(str(commission_percentage)) / 100)
    if not max_members or max_members <= 0:
        return Installment(Decimal("0.00"), Decimal("0.00"), commission)
    installment = to_money(value / max_members)
    return Installment(
        installment=installment,
        monthly_collection=to_money(installment * max_members),
        total_commission=commission,
    )


def _as_decimal(amount) -> Optional[Decimal]:
    if amount is None or isinstance(amount, bool):
        return None
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def lowest_bid(bids: Iterable) -> Optional[Decimal]:
    amounts = [Decimal(str(b)) for b in bids]
    return min(amounts) if amounts else None


def evaluate_bid(amount, chit_value, existing_bids: Iterable = ()) -> BidDecision:
    """
    Accept ``amount`` iff it is positive, below the chit value and below
    every bid already recorded for the auction.
    """
    value = _as_decimal(amount)
    if value is None or value <= 0:
        return BidDecision(False, INVALID_BID_MESSAGE)

    chit_value = Decimal(str(chit_value))
    if value >= chit_value:
        return BidDecision(False, f"Bid must be less than the total chit value of {format_inr(chit_value)}.")

    current = lowest_bid(existing_bids)
    if current is not None and value >= current:
        return BidDecision(False, f"Your bid must be lower than the current lowest bid of {format_inr(current)}.")

    return BidDecision(True, "Bid placed successfully!")


def dividend_per_member(chit_value, winning_bid, commission_percentage, max_members: int) -> Decimal:
    """
    Share of the auction discount returned to each member.

    The winner takes ``winning_bid``; what is left of the pot after the
    foreman's commission is split across all members.
    """
    if not max_members or max_members <= 0:
        return Decimal("0.00")
    value = Decimal(str(chit_value))
    commission = value * Decimal(str(commission_percentage)) / 100
    surplus = value - Decimal(str(winning_bid)) - commission
    return to_money(max(surplus, Decimal(0)) / max_members)
