"""Account request/response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from promptvault.schemas.base import CamelModel, CamelORMModel


class SignupRequest(CamelModel):
    username: str
    password: str
    name: Optional[str] = None
    email: Optional[str] = None


class LoginRequest(CamelModel):
    username: str
    password: str = Field(min_length=1)


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str


class UserSummary(CamelORMModel):
    id: str
    username: str
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None


class UserResponse(UserSummary):
    created_at: datetime
