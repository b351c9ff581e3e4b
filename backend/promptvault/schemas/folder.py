"""Folder request/response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from promptvault.schemas.base import CamelModel, CamelORMModel
from promptvault.schemas.prompt import PromptResponse


class FolderCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    parent_id: Optional[str] = None


class FolderUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


class FolderMove(CamelModel):
    new_parent_id: Optional[str] = None


class FolderResponse(CamelORMModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    parent_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class FolderTreeNode(FolderResponse):
    child_ids: list[str] = []
    prompt_count: int = 0


class FolderDetailResponse(FolderResponse):
    prompts: list[PromptResponse] = []
    children: list[FolderResponse] = []
