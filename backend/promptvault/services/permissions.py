"""Permission evaluation for prompts, folders and teams.

Every check re-reads the store. Nothing is cached across calls because
sharing, membership and visibility can change between requests.

Prompt rules, first match wins:
    1. prompt absent or soft-deleted -> deny
    2. actor is the owner            -> allow everything
    3. actor is a co-creator         -> allow everything except delete
    4. PUBLIC prompt                 -> allow view
    5. TEAM prompt                   -> allow view to members of a granted team
    6. otherwise                     -> deny
"""
import enum
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.exceptions import ForbiddenError, NotFoundError
from promptvault.models import (
    Folder, Prompt, PromptCoCreator, PromptTeamAccess, TeamMember, TeamRole, Visibility,
)

logger = logging.getLogger(__name__)


class PermissionAction(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    SHARE = "share"


class PermissionEvaluator:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_live_prompt(self, prompt_id: str) -> Prompt | None:
        prompt = await self.session.get(Prompt, prompt_id)
        if prompt is None or prompt.is_deleted:
            return None
        return prompt

    async def is_co_creator(self, prompt_id: str, user_id: str) -> bool:
        result = await self.session.execute(
            select(PromptCoCreator.id).where(
                PromptCoCreator.prompt_id == prompt_id,
                PromptCoCreator.user_id == user_id,
            )
        )
        return result.first() is not None

    async def is_member_of_granted_team(self, prompt_id: str, user_id: str) -> bool:
        result = await self.session.execute(
            select(PromptTeamAccess.id)
            .join(TeamMember, TeamMember.team_id == PromptTeamAccess.team_id)
            .where(
                PromptTeamAccess.prompt_id == prompt_id,
                TeamMember.user_id == user_id,
            )
            .limit(1)
        )
        return result.first() is not None

    async def evaluate(self, prompt: Prompt, actor_id: str, action: PermissionAction) -> bool:
        """Apply rules 2-6 to an already loaded live prompt."""
        if prompt.owner_id == actor_id:
            return True
        if action != PermissionAction.DELETE and await self.is_co_creator(prompt.id, actor_id):
            return True
        if action == PermissionAction.VIEW:
            if prompt.visibility == Visibility.PUBLIC.value:
                return True
            if prompt.visibility == Visibility.TEAM.value:
                return await self.is_member_of_granted_team(prompt.id, actor_id)
        return False

    async def check_permission(self, actor_id: str, prompt_id: str, action: PermissionAction) -> bool:
        prompt = await self.get_live_prompt(prompt_id)
        if prompt is None:
            return False
        return await self.evaluate(prompt, actor_id, PermissionAction(action))

    async def require_prompt(self, actor_id: str, prompt_id: str, action: PermissionAction) -> Prompt:
        """Load a live prompt the actor may act on.

        Raises NotFoundError for absent or soft-deleted prompts and
        ForbiddenError when the rules deny ``action``.
        """
        action = PermissionAction(action)
        prompt = await self.get_live_prompt(prompt_id)
        if prompt is None:
            raise NotFoundError("Prompt", prompt_id)
        if not await self.evaluate(prompt, actor_id, action):
            logger.info("Denied %s on prompt %s for user %s", action.value, prompt_id, actor_id)
            raise ForbiddenError()
        return prompt

    async def can_access_folder(self, actor_id: str, folder_id: str) -> bool:
        owner_id = await self.session.scalar(select(Folder.owner_id).where(Folder.id == folder_id))
        return owner_id is not None and owner_id == actor_id

    async def get_membership(self, actor_id: str, team_id: str) -> TeamMember | None:
        result = await self.session.execute(
            select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == actor_id)
        )
        return result.scalar_one_or_none()

    async def can_access_team(self, actor_id: str, team_id: str) -> bool:
        return await self.get_membership(actor_id, team_id) is not None

    async def is_team_admin(self, actor_id: str, team_id: str) -> bool:
        membership = await self.get_membership(actor_id, team_id)
        return membership is not None and membership.role == TeamRole.ADMIN.value
