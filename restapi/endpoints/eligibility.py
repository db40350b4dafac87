"""Public chit scheme eligibility check."""

from fastapi import APIRouter

from chitfund.customer.eligibility import check_eligibility
from chitfund.customer.schemas import EligibilityRequest, EligibilityResult

router = APIRouter(
    prefix="/eligibility",
    tags=["eligibility"],
)


@router.post("", response_model=EligibilityResult)
async def check(request: EligibilityRequest) -> EligibilityResult:
    """Age between 21 and 58 and a monthly income of at least ₹15,000."""
    result = check_eligibility(request.age, request.income)
    return EligibilityResult(eligible=result.eligible, message=result.message)
