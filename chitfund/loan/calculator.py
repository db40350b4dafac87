"""EMI arithmetic and the loan status lifecycle."""

from datetime import date
from decimal import Decimal
from typing import Dict, List

from dateutil.relativedelta import relativedelta

from chitfund.core.utils import to_money

# Allowed status moves; anything else is rejected
TRANSITIONS: Dict[str, set] = {
    "pending": {"approved", "rejected"},
    "approved": {"disbursed", "rejected"},
    "disbursed": {"completed", "defaulted"},
    "rejected": set(),
    "completed": set(),
    "defaulted": {"completed"},
}


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, set())


def calculate_emi(principal, annual_rate, months: int) -> Dict[str, Decimal]:
    """
    Equated monthly installment for a reducing-balance loan.

    emi = P * r * (1 + r)^n / ((1 + r)^n - 1) with r = annual_rate / 12 / 100.
    A zero rate spreads the principal evenly.
    """
    if months <= 0:
        raise ValueError("Loan duration must be at least one month")
    principal = Decimal(str(principal))
    rate = Decimal(str(annual_rate)) / Decimal(12) / Decimal(100)

    if rate == 0:
        emi = principal / months
    else:
        growth = (1 + rate) ** months
        emi = principal * rate * growth / (growth - 1)

    total_amount = emi * months
    return {
        "emi": to_money(emi),
        "total_interest": to_money(total_amount - principal),
        "total_amount": to_money(total_amount),
    }


def repayment_schedule(principal, annual_rate, months: int, start: date) -> List[Dict]:
    """Month by month split of each installment into interest and principal."""
    emi = calculate_emi(principal, annual_rate, months)["emi"]
    rate = Decimal(str(annual_rate)) / Decimal(12) / Decimal(100)
    balance = Decimal(str(principal))
    schedule = []

    for number in range(1, months + 1):
        interest = to_money(balance * rate)
        if number == months:
            # Last installment absorbs rounding
            principal_part = balance
            payment = to_money(principal_part + interest)
        else:
            principal_part = emi - interest
            payment = emi
        balance = to_money(balance - principal_part)
        schedule.append({
            "installment": number,
            "due_date": start + relativedelta(months=number),
            "payment": to_money(payment),
            "principal": to_money(principal_part),
            "interest": interest,
            "balance": max(balance, Decimal("0.00")),
        })
    return schedule
