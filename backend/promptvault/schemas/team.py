"""Team request/response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from promptvault.models.team import TeamRole
from promptvault.schemas.base import CamelModel, CamelORMModel
from promptvault.schemas.user import UserSummary


class TeamCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class TeamUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


class MemberAdd(CamelModel):
    user_id: str
    role: TeamRole = TeamRole.MEMBER


class MemberRoleUpdate(CamelModel):
    role: TeamRole


class TeamMemberResponse(CamelORMModel):
    team_id: str
    user_id: str
    role: TeamRole
    joined_at: datetime
    user: Optional[UserSummary] = None


class TeamResponse(CamelORMModel):
    id: str
    name: str
    description: Optional[str] = None
    creator_id: str
    created_at: datetime
    updated_at: datetime
    creator: Optional[UserSummary] = None


class TeamDetailResponse(TeamResponse):
    members: list[TeamMemberResponse] = []
