"""Import all models so SQLAlchemy metadata knows about them."""
from promptvault.models.base import Base
from promptvault.models.user import User
from promptvault.models.folder import Folder
from promptvault.models.team import Team, TeamMember, TeamRole
from promptvault.models.prompt import (
    Prompt, PromptCoCreator, PromptTeamAccess, PromptVersion,
    ContentType, Visibility, VERSIONED_FIELDS,
)
from promptvault.models.activity import ActivityLog, ActivityType

__all__ = [
    "Base",
    "User", "Folder", "Team", "TeamMember", "TeamRole",
    "Prompt", "PromptCoCreator", "PromptTeamAccess", "PromptVersion",
    "ContentType", "Visibility", "VERSIONED_FIELDS",
    "ActivityLog", "ActivityType",
]
