"""Authentication endpoints for login, registration and idle sessions."""

from datetime import timedelta
from typing import Any, Optional, Tuple
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.core.config import get_settings
from chitfund.core.init_db import get_db
from chitfund.core.schemas import Message
from chitfund.core.security import (
    create_access_token,
    verify_token,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)
from chitfund.user.models import Role, User, UserSession, UserStatus
from chitfund.user.repository import UserRepository
from chitfund.user.schemas import (
    PasswordChange,
    Referral,
    ReferralSummary,
    SessionInfo,
    User as UserSchema,
    UserRegister,
    UserWithToken,
)

router = APIRouter(prefix="/auth", tags=["authentication"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")
settings = get_settings()

SESSION_EXPIRED = "Session expired due to inactivity. Please login again."
SESSION_ENDED = "Session has ended. Please login again."
ACCOUNT_FROZEN = "Your account has been frozen. Please contact the administrator."


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _check_account(user: User) -> None:
    if user.is_frozen:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ACCOUNT_FROZEN)
    if user.status != UserStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {user.status}",
        )


async def _resolve_session(db: AsyncSession, token: str, touch: bool) -> Tuple[User, UserSession]:
    payload = verify_token(token)
    if payload is None or "sid" not in payload:
        raise _unauthorized("Could not validate credentials")

    repo = UserRepository(db)
    user = await repo.get_by_id(int(payload.get("sub")))
    if user is None:
        raise _unauthorized("User not found")
    _check_account(user)

    user_session, state = await repo.touch_session(payload["sid"], user, touch=touch)
    if user_session is None:
        if state == "timeout":
            raise _unauthorized(SESSION_EXPIRED)
        if state == "missing":
            raise _unauthorized("Could not validate credentials")
        raise _unauthorized(SESSION_ENDED)
    return user, user_session


async def get_current_session(
    db: AsyncSession = Depends(get_db),
    token: str = Depends(oauth2_scheme)
) -> Tuple[User, UserSession]:
    """
    Resolve the login session behind a bearer token.

    Every call counts as activity: the idle clock restarts unless the
    session has already been idle longer than the timeout, in which case
    it is closed and the caller must log in again.
    """
    return await _resolve_session(db, token, touch=True)


async def peek_current_session(
    db: AsyncSession = Depends(get_db),
    token: str = Depends(oauth2_scheme)
) -> Tuple[User, UserSession]:
    """Like ``get_current_session`` without counting the call as activity."""
    return await _resolve_session(db, token, touch=False)


async def get_current_user(current: Tuple[User, UserSession] = Depends(get_current_session)) -> User:
    """Get current user from JWT token and its live session."""
    return current[0]


def require_roles(*roles: Role):
    """Dependency factory: only the given roles may call the endpoint."""
    allowed = {role.value for role in roles}

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return current_user

    return checker


def branch_scope(current_user: User, requested: Optional[int] = None) -> Optional[int]:
    """
    Branch a query is limited to.

    Head office sees every branch (or the one it asks for); everybody else
    is pinned to their own branch.
    """
    if current_user.is_head_office:
        return requested
    return current_user.branch_id


def ensure_branch_access(current_user: User, branch_id: Optional[int]) -> None:
    """404 for records in a branch the user cannot see."""
    if not current_user.is_head_office and branch_id != current_user.branch_id:
        raise HTTPException(status_code=404, detail="Not found")


async def _issue_token(repo: UserRepository, user: User, request: Request) -> UserWithToken:
    user_session = await repo.start_session(user, ip_address=_client_ip(request))
    access_token = create_access_token(
        data={"sub": str(user.id), "sid": user_session.id, "role": user.role},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return UserWithToken(
        **UserSchema.model_validate(user).model_dump(),
        access_token=access_token,
        session_timeout_minutes=settings.SESSION_TIMEOUT_MINUTES,
    )


@router.post("/register", response_model=UserWithToken)
async def create_user(
    user_in: UserRegister,
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Self-registration; always creates a customer login, optionally referred by another user."""
    repo = UserRepository(db)
    if await repo.exists(user_in.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    referrer = None
    if user_in.referral_code:
        referrer = await repo.get_by_referral_code(user_in.referral_code)
        if referrer is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid referral code",
            )

    user = await repo.create(
        user_in.model_copy(update={"role": Role.CUSTOMER, "branch_id": None}),
        referred_by=referrer,
    )
    return await _issue_token(repo, user, request)


@router.post("/login", response_model=UserWithToken)
async def login(
    request: Request,
    db: AsyncSession = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends()
) -> Any:
    """Login with email and password; opens a new idle-tracked session."""
    repo = UserRepository(db)
    user = await repo.authenticate(form_data.username, form_data.password)
    if not user:
        raise _unauthorized("Incorrect email or password")
    _check_account(user)

    return await _issue_token(repo, user, request)


@router.get("/me", response_model=UserSchema)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/referrals", response_model=ReferralSummary)
async def read_referrals(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The caller's referral code and the users who registered with it."""
    referrals = await UserRepository(db).get_referrals(current_user)
    return ReferralSummary(
        referral_code=current_user.referral_code,
        total_referrals=len(referrals),
        referrals=[Referral.model_validate(u) for u in referrals],
    )


@router.post("/password", response_model=Message)
async def change_password(
    change: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    repo = UserRepository(db)
    if not await repo.change_password(current_user, change.current_password, change.new_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    return Message(message="Password changed successfully")


@router.get("/session", response_model=SessionInfo)
async def read_session(
    db: AsyncSession = Depends(get_db),
    current: Tuple[User, UserSession] = Depends(peek_current_session)
):
    """Time left before the session closes and whether to warn the user."""
    return UserRepository(db).session_state(current[1])


@router.post("/session/extend", response_model=SessionInfo)
async def extend_session(
    db: AsyncSession = Depends(get_db),
    current: Tuple[User, UserSession] = Depends(get_current_session)
):
    """Keep the session alive; resolving it already restarted the idle clock."""
    return UserRepository(db).session_state(current[1])


@router.post("/logout", response_model=Message)
async def logout(
    db: AsyncSession = Depends(get_db),
    current: Tuple[User, UserSession] = Depends(get_current_session)
):
    user, user_session = current
    await UserRepository(db).end_session(user_session, user)
    return Message(message="Logged out successfully")
