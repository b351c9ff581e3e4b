"""Activity log request/response schemas."""
from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from promptvault.models.activity import ActivityType
from promptvault.models.prompt import ContentType
from promptvault.schemas.base import CamelModel, CamelORMModel
from promptvault.schemas.user import UserSummary


class ActivityCreate(CamelModel):
    action: ActivityType
    prompt_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class ActivityPromptSummary(CamelORMModel):
    id: str
    title: str
    content_type: ContentType


class ActivityResponse(CamelORMModel):
    id: str
    user_id: str
    prompt_id: Optional[str] = None
    action: ActivityType
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="metadata_")
    created_at: datetime
    user: Optional[UserSummary] = None
    prompt: Optional[ActivityPromptSummary] = None
