"""Small helpers shared by the components."""

import secrets
import string
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal("0.01")


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_money(value) -> Decimal:
    """Round any number to two decimal places."""
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_inr(value) -> str:
    """Render an amount the way receipts and messages show it, e.g. ₹1,00,000.00"""
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    whole, frac = f"{abs(amount):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}₹{whole}.{frac}"


def random_code(prefix: str, length: int = 6) -> str:
    """Generate a human readable code such as CUS-4F7K2Q."""
    alphabet = string.ascii_uppercase + string.digits
    return f"{prefix}-" + "".join(secrets.choice(alphabet) for _ in range(length))
