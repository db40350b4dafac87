"""Chit scheme eligibility by age and monthly income."""

from dataclasses import dataclass
from typing import Optional

from chitfund.core.config import get_settings

ELIGIBLE_MESSAGE = (
    "Congratulations! You are eligible to apply for our chit funds. "
    "Our representative will contact you soon."
)
NOT_ELIGIBLE_MESSAGE = (
    "We're sorry, but you don't meet the eligibility criteria at this time. "
    "Please contact our support for more information."
)


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    message: str


def is_eligible(age: Optional[int], income: Optional[float],
                min_age: int = None, max_age: int = None, min_income: float = None) -> bool:
    """min_age <= age <= max_age and income >= min_income; missing values fail."""
    settings = get_settings()
    min_age = settings.ELIGIBILITY_MIN_AGE if min_age is None else min_age
    max_age = settings.ELIGIBILITY_MAX_AGE if max_age is None else max_age
    min_income = settings.ELIGIBILITY_MIN_INCOME if min_income is None else min_income
    if age is None or income is None:
        return False
    return min_age <= age <= max_age and income >= min_income


def check_eligibility(age: Optional[int], income: Optional[float]) -> Eligibility:
    eligible = is_eligible(age, income)
    return Eligibility(eligible=eligible, message=ELIGIBLE_MESSAGE if eligible else NOT_ELIGIBLE_MESSAGE)
