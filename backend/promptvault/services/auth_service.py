"""Account signup, login and user lookup."""
import logging
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import atomic
from promptvault.exceptions import InvalidInputError, InvalidStateError, NotFoundError, UnauthorizedError
from promptvault.models import User
from promptvault.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 8


def validate_username(username: str) -> str:
    if len(username) < USERNAME_MIN_LENGTH:
        raise InvalidInputError(
            f"Username must be at least {USERNAME_MIN_LENGTH} characters", field="username"
        )
    if len(username) > USERNAME_MAX_LENGTH:
        raise InvalidInputError(
            f"Username must be at most {USERNAME_MAX_LENGTH} characters", field="username"
        )
    if not USERNAME_PATTERN.match(username):
        raise InvalidInputError(
            "Username can only contain letters, numbers, and underscores", field="username"
        )
    return username


def validate_password(password: str) -> str:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise InvalidInputError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters", field="password"
        )
    return password


async def load_users(session: AsyncSession, user_ids) -> dict[str, User]:
    """Fetch users by id in one query, for embedding owner/member summaries."""
    ids = {i for i in user_ids if i}
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {u.id: u for u in result.scalars().all()}


class AuthService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_user(self, user_id: str) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def signup(
        self,
        username: str,
        password: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        validate_username(username)
        validate_password(password)
        async with atomic(self.session):
            if await self.get_by_username(username) is not None:
                raise InvalidStateError("Username is already taken")
            if email:
                taken = await self.session.scalar(select(User.id).where(User.email == email))
                if taken is not None:
                    raise InvalidStateError("Email is already registered")
            user = User(
                username=username,
                password_hash=hash_password(password),
                name=name,
                email=email or None,
            )
            self.session.add(user)
            await self.session.flush()
        logger.info("User %s signed up (%s)", username, user.id)
        return user

    async def authenticate(self, username: str, password: str) -> User:
        user = await self.get_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError("Invalid username or password")
        return user

    async def login(self, username: str, password: str) -> tuple[User, str]:
        user = await self.authenticate(username, password)
        return user, create_access_token(user.id)

    async def find_users(self, query: str, limit: int = 10) -> list[User]:
        """Username prefix/substring lookup for member and co-creator pickers."""
        pattern = "%" + query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        result = await self.session.execute(
            select(User).where(User.username.ilike(pattern, escape="\\")).order_by(User.username).limit(limit)
        )
        return list(result.scalars().all())
