"""Shared Pydantic schemas."""
from typing import Generic, Optional, TypeVar

from promptvault.schemas.base import CamelModel, CamelORMModel

T = TypeVar("T")


class Page(CamelModel, Generic[T]):
    items: list[T]
    next_cursor: Optional[str] = None


class SuccessResponse(CamelModel):
    success: bool = True


class ErrorResponse(CamelModel):
    code: str
    message: str


class FolderSummary(CamelORMModel):
    id: str
    name: str


class TeamSummary(CamelORMModel):
    id: str
    name: str
