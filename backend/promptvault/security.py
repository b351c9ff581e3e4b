"""Password hashing and bearer token helpers."""
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from promptvault.config import settings
from promptvault.exceptions import UnauthorizedError

# Single hashing context; switch schemes here if the algorithm ever changes.
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str, ttl_minutes: int | None = None) -> str:
    ttl = ttl_minutes if ttl_minutes is not None else settings.ACCESS_TOKEN_TTL_MINUTES
    now = datetime.now(timezone.utc)
    payload = {"sub": user_id, "iat": now, "exp": now + timedelta(minutes=ttl)}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=TOKEN_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the user id carried by ``token`` or raise UnauthorizedError."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[TOKEN_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Session expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid authentication token")
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid authentication token")
    return user_id
