"""Auction endpoints: bidding and closing."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.chit import rules, schemas
from chitfund.chit.repository import ChitRepository
from chitfund.core.init_db import get_db
from chitfund.customer.repository import CustomerRepository
from chitfund.user.models import Role, STAFF_ROLES, User
from restapi.endpoints.auth import ensure_branch_access, get_current_user, require_roles

router = APIRouter(
    prefix="/auctions",
    tags=["auctions"],
    responses={404: {"description": "Not found"}},
)

staff = require_roles(*STAFF_ROLES)
managers = require_roles(Role.SUPER_ADMIN, Role.DEPARTMENT_HEAD, Role.MANDAL_HEAD, Role.BRANCH_MANAGER)


async def get_auction_or_404(db: AsyncSession, auction_id: int, current_user: User):
    repo = ChitRepository(db)
    auction = await repo.get_auction(auction_id)
    if auction is None:
        raise HTTPException(status_code=404, detail="Auction not found")
    group = await repo.get_group(auction.chit_group_id)
    if current_user.role != Role.CUSTOMER.value:
        ensure_branch_access(current_user, group.branch_id)
    return auction


@router.get("/{auction_id}", response_model=schemas.AuctionDetail)
async def read_auction(
    auction_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    """Auction with its bids, lowest first."""
    auction = await get_auction_or_404(db, auction_id, current_user)
    bids = await ChitRepository(db).get_bids(auction.id)
    lowest = rules.lowest_bid(b.amount for b in bids)
    return schemas.AuctionDetail(
        **schemas.Auction.model_validate(auction).model_dump(),
        bids=[schemas.Bid.model_validate(b) for b in bids],
        lowest_bid=float(lowest) if lowest is not None else None,
    )


@router.post("/{auction_id}/bids", response_model=schemas.Bid, status_code=201)
async def place_bid(
    auction_id: int,
    bid: schemas.BidCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Place a bid for a member.

    A bid is accepted only when it is positive, below the chit value and
    below the current lowest bid. Customers may only bid for themselves.
    """
    if current_user.role == Role.CUSTOMER.value:
        customer = await CustomerRepository(db).get_by_user_id(current_user.id)
        if customer is None or customer.id != bid.customer_id:
            raise HTTPException(status_code=403, detail="You can only bid for yourself")

    auction = await get_auction_or_404(db, auction_id, current_user)
    db_bid, message = await ChitRepository(db).place_bid(auction, bid.customer_id, bid.amount, current_user)
    if db_bid is None:
        raise HTTPException(status_code=400, detail=message)
    return db_bid


@router.post("/{auction_id}/close", response_model=schemas.AuctionResult)
async def close_auction(
    auction_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(managers)
):
    """Close bidding; the lowest bid wins the pot for this cycle."""
    auction = await get_auction_or_404(db, auction_id, current_user)
    result, error = await ChitRepository(db).close_auction(auction, current_user)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return schemas.AuctionResult(
        **schemas.Auction.model_validate(result["auction"]).model_dump(),
        winning_amount=result["winning_amount"],
        dividend_per_member=result["dividend_per_member"],
    )
