"""FastAPI dependencies: DB session and the authenticated actor."""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import get_db
from promptvault.exceptions import UnauthorizedError
from promptvault.models import User
from promptvault.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> str:
    """Resolve the bearer token to an existing user's id, else 401."""
    if credentials is None:
        raise UnauthorizedError()
    user_id = decode_access_token(credentials.credentials)
    if await db.get(User, user_id) is None:
        raise UnauthorizedError("Account no longer exists")
    return user_id
