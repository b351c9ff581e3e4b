"""Prompt operations: create, edit, share, move, list and search.

Each mutation is one transaction: permission check, invariant checks,
version snapshot (for content edits), the change itself and its activity
entry are committed together by ``atomic``.

Concurrent updates to one prompt are last-writer-wins: two editors may both
snapshot the same state and the later commit overwrites the earlier one.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import and_, delete, desc, or_, select, String, cast
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.config import settings
from promptvault.database import atomic
from promptvault.exceptions import ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError
from promptvault.models import (
    ActivityType, ContentType, Folder, Prompt, PromptCoCreator, PromptTeamAccess,
    Team, TeamMember, User, Visibility,
)
from promptvault.services.activity_logger import ActivityLogger
from promptvault.services.auth_service import load_users
from promptvault.services.permissions import PermissionAction, PermissionEvaluator
from promptvault.services.versioning import VersioningEngine, copy_versioned_fields

logger = logging.getLogger(__name__)

# Request field name -> Prompt attribute for fields that update() may patch.
PATCHABLE_FIELDS = {
    "title": "title",
    "content": "content",
    "content_url": "content_url",
    "usage_notes": "usage_notes",
    "content_type": "content_type",
    "variables": "variables",
    "example_io": "example_io",
    "tags": "tags",
    "custom_sections": "custom_sections",
    "metadata": "metadata_",
}


@dataclass
class PromptDetail:
    prompt: Prompt
    owner: Optional[User] = None
    folder: Optional[Folder] = None
    co_creators: list[User] = field(default_factory=list)
    teams: list[Team] = field(default_factory=list)

    @property
    def co_creator_ids(self) -> list[str]:
        return [u.id for u in self.co_creators]

    @property
    def team_ids(self) -> list[str]:
        return [t.id for t in self.teams]


@dataclass
class PromptPage:
    items: list[Prompt]
    next_cursor: Optional[str] = None


def visible_to(actor_id: str):
    """SQL predicate: live prompts the actor may view."""
    is_co_creator = (
        select(PromptCoCreator.id)
        .where(PromptCoCreator.prompt_id == Prompt.id, PromptCoCreator.user_id == actor_id)
        .exists()
    )
    in_granted_team = (
        select(PromptTeamAccess.id)
        .join(TeamMember, TeamMember.team_id == PromptTeamAccess.team_id)
        .where(PromptTeamAccess.prompt_id == Prompt.id, TeamMember.user_id == actor_id)
        .exists()
    )
    return and_(
        Prompt.deleted_at.is_(None),
        or_(
            Prompt.owner_id == actor_id,
            is_co_creator,
            Prompt.visibility == Visibility.PUBLIC.value,
            and_(Prompt.visibility == Visibility.TEAM.value, in_granted_team),
        ),
    )


def has_tag(tag: str):
    """SQL predicate: the JSON tag list contains exactly ``tag``.

    Matches the quoted JSON form of the tag inside the serialized list, which
    works the same on PostgreSQL and SQLite.
    """
    return cast(Prompt.tags, String).contains(json.dumps(tag), autoescape=True)


def check_limit(limit: int) -> int:
    if limit < 1 or limit > settings.MAX_PAGE_SIZE:
        raise InvalidInputError(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}", field="limit")
    return limit


class PromptService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.permissions = PermissionEvaluator(session)
        self.activity = ActivityLogger(session, self.permissions)
        self.versioning = VersioningEngine(session, self.permissions, self.activity)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _require_own_folder(self, actor_id: str, folder_id: str) -> None:
        folder = await self.session.get(Folder, folder_id)
        if folder is None:
            raise NotFoundError("Folder", folder_id)
        if folder.owner_id != actor_id:
            raise ForbiddenError("You can only file prompts into your own folders")

    async def _check_shareable_teams(self, actor_id: str, team_ids: list[str]) -> list[str]:
        unique_ids = list(dict.fromkeys(team_ids))
        for team_id in unique_ids:
            if await self.session.get(Team, team_id) is None:
                raise NotFoundError("Team", team_id)
            if not await self.permissions.can_access_team(actor_id, team_id):
                raise ForbiddenError("You can only share prompts with teams you belong to")
        return unique_ids

    async def _replace_team_access(self, prompt_id: str, team_ids: list[str]) -> None:
        await self.session.execute(delete(PromptTeamAccess).where(PromptTeamAccess.prompt_id == prompt_id))
        for team_id in team_ids:
            self.session.add(PromptTeamAccess(prompt_id=prompt_id, team_id=team_id))
        await self.session.flush()

    async def co_creators(self, prompt_id: str) -> list[User]:
        result = await self.session.execute(
            select(User)
            .join(PromptCoCreator, PromptCoCreator.user_id == User.id)
            .where(PromptCoCreator.prompt_id == prompt_id)
            .order_by(PromptCoCreator.added_at)
        )
        return list(result.scalars().all())

    async def granted_teams(self, prompt_id: str) -> list[Team]:
        result = await self.session.execute(
            select(Team)
            .join(PromptTeamAccess, PromptTeamAccess.team_id == Team.id)
            .where(PromptTeamAccess.prompt_id == prompt_id)
            .order_by(Team.name)
        )
        return list(result.scalars().all())

    async def owners_and_folders(
        self, prompts: list[Prompt]
    ) -> tuple[dict[str, User], dict[str, Folder]]:
        """Owner and folder rows for a page of prompts, keyed by id."""
        owners = await load_users(self.session, {p.owner_id for p in prompts})
        folder_ids = {p.folder_id for p in prompts if p.folder_id}
        folders: dict[str, Folder] = {}
        if folder_ids:
            result = await self.session.execute(select(Folder).where(Folder.id.in_(folder_ids)))
            folders = {f.id: f for f in result.scalars().all()}
        return owners, folders

    async def team_ids(self, prompt_id: str) -> list[str]:
        result = await self.session.execute(
            select(PromptTeamAccess.team_id).where(PromptTeamAccess.prompt_id == prompt_id)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create(self, actor_id: str, data: dict[str, Any]) -> Prompt:
        """Create a prompt owned by ``actor_id``.

        ``data`` uses the snake_case request field names (see PromptCreate).
        """
        data = dict(data)
        team_ids = data.pop("team_ids", None) or []
        folder_id = data.pop("folder_id", None)
        visibility = Visibility(data.pop("visibility", None) or Visibility.PRIVATE)
        content_type = ContentType(data.pop("content_type", None) or ContentType.PROMPT)

        async with atomic(self.session):
            if folder_id is not None:
                await self._require_own_folder(actor_id, folder_id)
            if visibility == Visibility.TEAM:
                team_ids = await self._check_shareable_teams(actor_id, team_ids)

            prompt = Prompt(
                owner_id=actor_id,
                folder_id=folder_id,
                visibility=visibility.value,
                content_type=content_type.value,
                tags=[],
            )
            for key, value in data.items():
                if key in PATCHABLE_FIELDS and value is not None:
                    setattr(prompt, PATCHABLE_FIELDS[key], value)
            self.session.add(prompt)
            await self.session.flush()

            if visibility == Visibility.TEAM and team_ids:
                await self._replace_team_access(prompt.id, team_ids)

            await self.activity.log(actor_id, ActivityType.CREATED, prompt_id=prompt.id)

        logger.info("Prompt %s created by %s", prompt.id, actor_id)
        return prompt

    async def get(self, actor_id: str, prompt_id: str) -> PromptDetail:
        """Fetch a prompt the actor may view. Every call records a VIEWED entry."""
        async with atomic(self.session):
            prompt = await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.VIEW)
            detail = PromptDetail(
                prompt=prompt,
                owner=await self.session.get(User, prompt.owner_id),
                folder=await self.session.get(Folder, prompt.folder_id) if prompt.folder_id else None,
                co_creators=await self.co_creators(prompt_id),
                teams=await self.granted_teams(prompt_id),
            )
            await self.activity.log(actor_id, ActivityType.VIEWED, prompt_id=prompt_id)
        return detail

    async def update(self, actor_id: str, prompt_id: str, patch: dict[str, Any]) -> Prompt:
        """Apply a partial update after snapshotting the current state."""
        unknown = set(patch) - set(PATCHABLE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Fields cannot be updated here: {', '.join(sorted(unknown))}")
        if patch.get("content_type") is not None:
            patch = {**patch, "content_type": _content_type(patch["content_type"])}

        async with atomic(self.session):
            prompt = await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.EDIT)
            await self.versioning.snapshot_before_update(prompt, actor_id)

            for key, value in patch.items():
                if key in ("title", "content", "content_type") and value is None:
                    continue
                if key == "tags" and value is None:
                    value = []
                setattr(prompt, PATCHABLE_FIELDS[key], value)
            await self.session.flush()

            await self.activity.log(actor_id, ActivityType.UPDATED, prompt_id=prompt_id)
        return prompt

    async def delete(self, actor_id: str, prompt_id: str) -> None:
        """Soft delete. Only the owner may delete."""
        async with atomic(self.session):
            prompt = await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.DELETE)
            prompt.deleted_at = datetime.now(timezone.utc)
            await self.session.flush()
            await self.activity.log(actor_id, ActivityType.DELETED, prompt_id=prompt_id)
        logger.info("Prompt %s deleted by %s", prompt_id, actor_id)

    async def duplicate(self, actor_id: str, prompt_id: str) -> Prompt:
        async with atomic(self.session):
            original = await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.VIEW)
            copy_ = Prompt(
                owner_id=actor_id,
                visibility=Visibility.PRIVATE.value,
                content_type=original.content_type,
            )
            copy_versioned_fields(original, copy_)
            copy_.title = f"{original.title} (Copy)"
            if copy_.tags is None:
                copy_.tags = []
            self.session.add(copy_)
            await self.session.flush()

            await self.activity.log(
                actor_id, ActivityType.COPIED, prompt_id=copy_.id, metadata={"originalId": original.id}
            )
        return copy_

    async def move(self, actor_id: str, prompt_id: str, folder_id: Optional[str]) -> Prompt:
        """File the prompt under ``folder_id``; None moves it to the root."""
        async with atomic(self.session):
            prompt = await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.EDIT)
            if folder_id is not None:
                await self._require_own_folder(actor_id, folder_id)
            prompt.folder_id = folder_id
            await self.session.flush()
            await self.activity.log(
                actor_id, ActivityType.MOVED, prompt_id=prompt_id, metadata={"folderId": folder_id}
            )
        return prompt

    # ------------------------------------------------------------------
    # sharing
    # ------------------------------------------------------------------

    async def update_visibility(
        self,
        actor_id: str,
        prompt_id: str,
        visibility: Visibility,
        team_ids: Optional[list[str]] = None,
    ) -> Prompt:
        """Change the access tier. Owner only; co-creators cannot reshare.

        TEAM with ``team_ids`` replaces the whole team-access set; TEAM without
        it keeps the current set. Any other tier clears all team access.
        """
        visibility = Visibility(visibility)
        async with atomic(self.session):
            prompt = await self.permissions.get_live_prompt(prompt_id)
            if prompt is None:
                raise NotFoundError("Prompt", prompt_id)
            if prompt.owner_id != actor_id:
                raise ForbiddenError("Only the owner can change visibility")

            prompt.visibility = visibility.value
            if visibility == Visibility.TEAM:
                if team_ids is not None:
                    checked = await self._check_shareable_teams(actor_id, team_ids)
                    await self._replace_team_access(prompt_id, checked)
            else:
                await self._replace_team_access(prompt_id, [])
            await self.session.flush()
        return prompt

    async def add_co_creator(self, actor_id: str, prompt_id: str, user_id: str) -> PromptCoCreator:
        async with atomic(self.session):
            prompt = await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.SHARE)
            if await self.session.get(User, user_id) is None:
                raise NotFoundError("User", user_id)
            if prompt.owner_id == user_id:
                raise InvalidStateError("The owner cannot be added as a co-creator")
            if await self.permissions.is_co_creator(prompt_id, user_id):
                raise InvalidStateError("User is already a co-creator")

            co_creator = PromptCoCreator(prompt_id=prompt_id, user_id=user_id)
            self.session.add(co_creator)
            await self.session.flush()
            await self.activity.log(
                actor_id, ActivityType.SHARED, prompt_id=prompt_id, metadata={"coCreatorId": user_id}
            )
        return co_creator

    async def remove_co_creator(self, actor_id: str, prompt_id: str, user_id: str) -> None:
        """Remove a co-creator. Removing someone who is not one is a no-op."""
        async with atomic(self.session):
            await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.SHARE)
            await self.session.execute(
                delete(PromptCoCreator).where(
                    PromptCoCreator.prompt_id == prompt_id,
                    PromptCoCreator.user_id == user_id,
                )
            )

    # ------------------------------------------------------------------
    # listing & search
    # ------------------------------------------------------------------

    async def list_prompts(
        self,
        actor_id: str,
        folder_id: Optional[str] = None,
        content_type: Optional[ContentType] = None,
        visibility: Optional[Visibility] = None,
        tags: Optional[list[str]] = None,
        limit: int = settings.DEFAULT_PAGE_SIZE,
        cursor: Optional[str] = None,
    ) -> PromptPage:
        """Visible prompts, most recently updated first, cursor paginated.

        ``next_cursor`` is the id of the first prompt left out; passing it back
        starts the next page at that prompt.
        """
        check_limit(limit)
        query = select(Prompt).where(visible_to(actor_id))
        if folder_id is not None:
            query = query.where(Prompt.folder_id == folder_id)
        if content_type is not None:
            query = query.where(Prompt.content_type == ContentType(content_type).value)
        if visibility is not None:
            query = query.where(Prompt.visibility == Visibility(visibility).value)
        if tags:
            query = query.where(or_(*(has_tag(t) for t in tags)))
        if cursor is not None:
            anchor = (
                await self.session.execute(
                    select(Prompt.updated_at, Prompt.id).where(Prompt.id == cursor, visible_to(actor_id))
                )
            ).one_or_none()
            if anchor is None:
                raise NotFoundError("Cursor", cursor)
            query = query.where(
                or_(
                    Prompt.updated_at < anchor.updated_at,
                    and_(Prompt.updated_at == anchor.updated_at, Prompt.id <= anchor.id),
                )
            )
        query = query.order_by(desc(Prompt.updated_at), desc(Prompt.id)).limit(limit + 1)

        result = await self.session.execute(query)
        items = list(result.scalars().all())
        next_cursor = None
        if len(items) > limit:
            next_cursor = items[limit].id
            items = items[:limit]
        return PromptPage(items=items, next_cursor=next_cursor)

    async def search(
        self,
        actor_id: str,
        query: str,
        content_type: Optional[ContentType] = None,
        tags: Optional[list[str]] = None,
        limit: int = settings.DEFAULT_PAGE_SIZE,
    ) -> list[Prompt]:
        """Case-insensitive substring match on title, content and usage notes,
        or an exact tag match."""
        check_limit(limit)
        query = (query or "").strip()
        if not query:
            raise InvalidInputError("Search query must not be empty", field="query")

        pattern = f"%{_escape_like(query)}%"
        stmt = select(Prompt).where(
            visible_to(actor_id),
            or_(
                Prompt.title.ilike(pattern, escape="\\"),
                Prompt.content.ilike(pattern, escape="\\"),
                Prompt.usage_notes.ilike(pattern, escape="\\"),
                has_tag(query),
            ),
        )
        if content_type is not None:
            stmt = stmt.where(Prompt.content_type == ContentType(content_type).value)
        if tags:
            stmt = stmt.where(or_(*(has_tag(t) for t in tags)))
        stmt = stmt.order_by(desc(Prompt.updated_at), desc(Prompt.id)).limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _content_type(value) -> str:
    try:
        return ContentType(value).value
    except ValueError:
        raise InvalidInputError(f"Unknown content type: {value}", field="content_type")
