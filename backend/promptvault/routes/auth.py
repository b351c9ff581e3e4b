"""Account API routes: signup, login, current user, user lookup."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import get_db
from promptvault.dependencies import get_current_user_id
from promptvault.schemas.user import LoginRequest, SignupRequest, TokenResponse, UserResponse, UserSummary
from promptvault.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signup", response_model=UserResponse, status_code=201)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    """Create an account."""
    user = await AuthService(db).signup(body.username, body.password, body.name, body.email)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Exchange credentials for a bearer token."""
    user, token = await AuthService(db).login(body.username, body.password)
    return TokenResponse(access_token=token, user_id=user.id)


@router.get("/me", response_model=UserResponse)
async def me(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return UserResponse.model_validate(await AuthService(db).get_user(user_id))


@router.get("/users", response_model=list[UserSummary])
async def find_users(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Look up users by username, for member and co-creator pickers."""
    users = await AuthService(db).find_users(q, limit)
    return [UserSummary.model_validate(u) for u in users]
