"""Team and membership operations.

The creator joins as ADMIN in the same transaction that creates the team
and can never be removed or have their role changed, whoever asks.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import atomic
from promptvault.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from promptvault.models import Prompt, PromptTeamAccess, Team, TeamMember, TeamRole, User, Visibility
from promptvault.services.auth_service import load_users
from promptvault.services.permissions import PermissionEvaluator

logger = logging.getLogger(__name__)


@dataclass
class TeamDetail:
    team: Team
    members: list[TeamMember] = field(default_factory=list)
    users: dict[str, User] = field(default_factory=dict)


class TeamService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.permissions = PermissionEvaluator(session)

    async def _get_team(self, team_id: str) -> Team:
        team = await self.session.get(Team, team_id)
        if team is None:
            raise NotFoundError("Team", team_id)
        return team

    async def _require_admin(self, actor_id: str, team_id: str) -> Team:
        team = await self._get_team(team_id)
        if not await self.permissions.is_team_admin(actor_id, team_id):
            raise ForbiddenError("Only team admins can do this")
        return team

    async def _members(self, team_id: str) -> list[TeamMember]:
        result = await self.session.execute(
            select(TeamMember).where(TeamMember.team_id == team_id).order_by(TeamMember.joined_at)
        )
        return list(result.scalars().all())

    async def _detail(self, team: Team, members: list[TeamMember]) -> TeamDetail:
        user_ids = {m.user_id for m in members} | {team.creator_id}
        return TeamDetail(team=team, members=members, users=await load_users(self.session, user_ids))

    async def create(self, actor_id: str, name: str, description: Optional[str] = None) -> TeamDetail:
        async with atomic(self.session):
            team = Team(name=name, description=description, creator_id=actor_id)
            self.session.add(team)
            await self.session.flush()
            member = TeamMember(team_id=team.id, user_id=actor_id, role=TeamRole.ADMIN.value)
            self.session.add(member)
            await self.session.flush()
        logger.info("Team %s created by %s", team.id, actor_id)
        return TeamDetail(team=team, members=[member], users=await load_users(self.session, {actor_id}))

    async def update(self, actor_id: str, team_id: str, changes: dict) -> Team:
        async with atomic(self.session):
            team = await self._require_admin(actor_id, team_id)
            for key in ("name", "description"):
                if key in changes:
                    if key == "name" and changes[key] is None:
                        continue
                    setattr(team, key, changes[key])
            await self.session.flush()
        return team

    async def delete(self, actor_id: str, team_id: str) -> None:
        """Delete a team. Creator only.

        TEAM prompts whose only grant is this team become PRIVATE; prompts
        also shared with other teams keep TEAM visibility.
        """
        async with atomic(self.session):
            team = await self._get_team(team_id)
            if team.creator_id != actor_id:
                raise ForbiddenError("Only the team creator can delete the team")

            grant_counts = (
                select(PromptTeamAccess.prompt_id, func.count(PromptTeamAccess.id).label("grants"))
                .group_by(PromptTeamAccess.prompt_id)
                .subquery()
            )
            result = await self.session.execute(
                select(Prompt)
                .join(PromptTeamAccess, PromptTeamAccess.prompt_id == Prompt.id)
                .join(grant_counts, grant_counts.c.prompt_id == Prompt.id)
                .where(
                    PromptTeamAccess.team_id == team_id,
                    Prompt.visibility == Visibility.TEAM.value,
                    grant_counts.c.grants == 1,
                )
            )
            orphaned = list(result.scalars().all())
            for prompt in orphaned:
                prompt.visibility = Visibility.PRIVATE.value

            await self.session.execute(delete(PromptTeamAccess).where(PromptTeamAccess.team_id == team_id))
            await self.session.execute(delete(TeamMember).where(TeamMember.team_id == team_id))
            await self.session.delete(team)
        logger.info(
            "Team %s deleted by %s; %d prompt(s) made private", team_id, actor_id, len(orphaned)
        )

    async def get(self, actor_id: str, team_id: str) -> TeamDetail:
        team = await self._get_team(team_id)
        members = await self._members(team_id)
        if not any(m.user_id == actor_id for m in members):
            raise ForbiddenError()
        return await self._detail(team, members)

    async def list_teams(self, actor_id: str) -> list[TeamDetail]:
        """Teams the actor belongs to, newest first."""
        result = await self.session.execute(
            select(Team)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .where(TeamMember.user_id == actor_id)
            .order_by(desc(Team.created_at))
        )
        teams = list(result.scalars().all())
        return [await self._detail(t, await self._members(t.id)) for t in teams]

    async def list_members(self, actor_id: str, team_id: str) -> list[TeamMember]:
        await self._get_team(team_id)
        if not await self.permissions.can_access_team(actor_id, team_id):
            raise ForbiddenError()
        return await self._members(team_id)

    async def add_member(
        self, actor_id: str, team_id: str, user_id: str, role: TeamRole = TeamRole.MEMBER
    ) -> TeamMember:
        async with atomic(self.session):
            await self._require_admin(actor_id, team_id)
            if await self.session.get(User, user_id) is None:
                raise NotFoundError("User", user_id)
            if await self.permissions.get_membership(user_id, team_id) is not None:
                raise InvalidStateError("User is already a member")
            member = TeamMember(team_id=team_id, user_id=user_id, role=TeamRole(role).value)
            self.session.add(member)
            await self.session.flush()
        return member

    async def remove_member(self, actor_id: str, team_id: str, user_id: str) -> None:
        """Remove a member. Removing a non-member is a no-op."""
        async with atomic(self.session):
            team = await self._require_admin(actor_id, team_id)
            if team.creator_id == user_id:
                raise InvalidStateError("Cannot remove team creator")
            await self.session.execute(
                delete(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
            )

    async def update_member_role(
        self, actor_id: str, team_id: str, user_id: str, role: TeamRole
    ) -> TeamMember:
        async with atomic(self.session):
            team = await self._require_admin(actor_id, team_id)
            if team.creator_id == user_id:
                raise InvalidStateError("Cannot change team creator role")
            member = await self.permissions.get_membership(user_id, team_id)
            if member is None:
                raise NotFoundError("Team member", user_id)
            member.role = TeamRole(role).value
            await self.session.flush()
        return member
