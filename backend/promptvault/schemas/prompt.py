"""Prompt request/response schemas."""
from datetime import datetime
from typing import Any, Optional

from pydantic import AnyUrl, Field, field_validator

from promptvault.models.prompt import ContentType, Visibility
from promptvault.schemas.base import CamelModel, CamelORMModel
from promptvault.schemas.common import FolderSummary, TeamSummary
from promptvault.schemas.user import UserSummary


class VariableSpec(CamelModel):
    name: str
    description: str


class ExampleIO(CamelModel):
    input: str
    output: str


def _dedupe_tags(tags: Optional[list[str]]) -> Optional[list[str]]:
    if tags is None:
        return None
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class PromptFields(CamelModel):
    """Editable content shared by create and update payloads."""
    content_url: Optional[AnyUrl] = None
    usage_notes: Optional[str] = None
    variables: Optional[list[VariableSpec]] = None
    example_io: Optional[list[ExampleIO]] = Field(None, alias="exampleIO")
    tags: Optional[list[str]] = None
    custom_sections: Optional[dict[str, Any]] = None
    metadata: Optional[dict[str, Any]] = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v):
        return _dedupe_tags(v)


class PromptCreate(PromptFields):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    content_type: ContentType = ContentType.PROMPT
    folder_id: Optional[str] = None
    visibility: Visibility = Visibility.PRIVATE
    team_ids: Optional[list[str]] = None


class PromptUpdate(PromptFields):
    model_config = {"extra": "forbid"}

    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    content_type: Optional[ContentType] = None


class PromptMove(CamelModel):
    folder_id: Optional[str] = None


class VisibilityUpdate(CamelModel):
    visibility: Visibility
    team_ids: Optional[list[str]] = None


class CoCreatorAdd(CamelModel):
    user_id: str


class PromptResponse(CamelORMModel):
    id: str
    title: str
    content: str
    content_url: Optional[str] = None
    usage_notes: Optional[str] = None
    content_type: ContentType
    variables: Optional[list[VariableSpec]] = None
    example_io: Optional[list[ExampleIO]] = Field(None, alias="exampleIO")
    tags: list[str] = []
    custom_sections: Optional[dict[str, Any]] = None
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="metadata_")
    owner_id: str
    folder_id: Optional[str] = None
    visibility: Visibility
    created_at: datetime
    updated_at: datetime
    owner: Optional[UserSummary] = None
    folder: Optional[FolderSummary] = None

    @field_validator("tags", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v if v is not None else []


class PromptDetailResponse(PromptResponse):
    co_creator_ids: list[str] = []
    team_ids: list[str] = []
    co_creators: list[UserSummary] = []
    teams: list[TeamSummary] = []


class PromptVersionResponse(CamelORMModel):
    id: str
    prompt_id: str
    version: int
    title: str
    content: str
    content_url: Optional[str] = None
    usage_notes: Optional[str] = None
    variables: Optional[list[VariableSpec]] = None
    example_io: Optional[list[ExampleIO]] = Field(None, alias="exampleIO")
    tags: list[str] = []
    custom_sections: Optional[dict[str, Any]] = None
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="metadata_")
    created_by: str
    created_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v if v is not None else []


class CoCreatorResponse(CamelORMModel):
    prompt_id: str
    user_id: str
    added_at: datetime
