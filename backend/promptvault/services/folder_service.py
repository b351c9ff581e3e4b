"""Folder tree operations.

Folders form a per-owner tree through ``parent_id``. The tree is rebuilt
from flat rows on every request as an id -> parent_id map, so cycle checks
walk that map upward instead of recursing through the database.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import atomic
from promptvault.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from promptvault.models import Folder, Prompt, User
from promptvault.services.auth_service import load_users

logger = logging.getLogger(__name__)


@dataclass
class FolderNode:
    folder: Folder
    child_ids: list[str] = field(default_factory=list)
    prompt_count: int = 0


@dataclass
class FolderContents:
    folder: Folder
    prompts: list[Prompt] = field(default_factory=list)
    children: list[Folder] = field(default_factory=list)
    owners: dict[str, User] = field(default_factory=dict)


def creates_cycle(parents: dict[str, Optional[str]], folder_id: str, new_parent_id: str) -> bool:
    """True if ``new_parent_id`` is ``folder_id`` itself or one of its descendants.

    Walks from the proposed parent up to the root. A chain that revisits a
    node is already broken, so it is treated as a cycle too.
    """
    visited: set[str] = set()
    current: Optional[str] = new_parent_id
    while current is not None:
        if current == folder_id or current in visited:
            return True
        visited.add(current)
        current = parents.get(current)
    return False


class FolderService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _owned_folder(self, actor_id: str, folder_id: str) -> Folder:
        folder = await self.session.get(Folder, folder_id)
        if folder is None:
            raise NotFoundError("Folder", folder_id)
        if folder.owner_id != actor_id:
            raise ForbiddenError()
        return folder

    async def _check_parent(self, actor_id: str, parent_id: str) -> None:
        owner_id = await self.session.scalar(select(Folder.owner_id).where(Folder.id == parent_id))
        if owner_id is None or owner_id != actor_id:
            raise ForbiddenError("Parent folder must be one of your own folders")

    async def _parent_map(self, owner_id: str) -> dict[str, Optional[str]]:
        result = await self.session.execute(
            select(Folder.id, Folder.parent_id).where(Folder.owner_id == owner_id)
        )
        return {row.id: row.parent_id for row in result.all()}

    async def create(
        self,
        actor_id: str,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Folder:
        async with atomic(self.session):
            if parent_id is not None:
                await self._check_parent(actor_id, parent_id)
            folder = Folder(name=name, description=description, owner_id=actor_id, parent_id=parent_id)
            self.session.add(folder)
            await self.session.flush()
        return folder

    async def update(self, actor_id: str, folder_id: str, changes: dict) -> Folder:
        """Rename or re-describe a folder. Only provided keys are applied."""
        async with atomic(self.session):
            folder = await self._owned_folder(actor_id, folder_id)
            for key in ("name", "description"):
                if key in changes:
                    if key == "name" and changes[key] is None:
                        continue
                    setattr(folder, key, changes[key])
            await self.session.flush()
        return folder

    async def delete(self, actor_id: str, folder_id: str) -> None:
        """Delete an empty folder. Non-empty folders are refused, never cascaded."""
        async with atomic(self.session):
            folder = await self._owned_folder(actor_id, folder_id)

            prompt_count = await self.session.scalar(
                select(func.count(Prompt.id)).where(
                    Prompt.folder_id == folder_id, Prompt.deleted_at.is_(None)
                )
            )
            child_count = await self.session.scalar(
                select(func.count(Folder.id)).where(Folder.parent_id == folder_id)
            )
            if prompt_count or child_count:
                logger.warning(
                    "Refused to delete folder %s: %d prompts, %d subfolders",
                    folder_id, prompt_count, child_count,
                )
                raise InvalidStateError(
                    f"Cannot delete folder. It contains {prompt_count} prompts "
                    f"and {child_count} subfolders."
                )

            # soft-deleted prompts still reference the folder
            await self.session.execute(
                update(Prompt).where(Prompt.folder_id == folder_id).values(folder_id=None)
            )
            await self.session.delete(folder)
        logger.info("Folder %s deleted by %s", folder_id, actor_id)

    async def move(self, actor_id: str, folder_id: str, new_parent_id: Optional[str]) -> Folder:
        """Re-parent a folder; None moves it to the root."""
        async with atomic(self.session):
            folder = await self._owned_folder(actor_id, folder_id)
            if new_parent_id is not None:
                await self._check_parent(actor_id, new_parent_id)
                parents = await self._parent_map(actor_id)
                if creates_cycle(parents, folder_id, new_parent_id):
                    raise InvalidStateError("Cannot move folder into itself or its descendants")
            folder.parent_id = new_parent_id
            await self.session.flush()
        return folder

    async def get(self, actor_id: str, folder_id: str) -> FolderContents:
        folder = await self._owned_folder(actor_id, folder_id)
        prompts = await self.session.execute(
            select(Prompt)
            .where(Prompt.folder_id == folder_id, Prompt.deleted_at.is_(None))
            .order_by(desc(Prompt.updated_at))
        )
        children = await self.session.execute(
            select(Folder).where(Folder.parent_id == folder_id).order_by(Folder.name)
        )
        live_prompts = list(prompts.scalars().all())
        return FolderContents(
            folder=folder,
            prompts=live_prompts,
            children=list(children.scalars().all()),
            owners=await load_users(self.session, {p.owner_id for p in live_prompts}),
        )

    async def list_folders(self, actor_id: str) -> list[FolderNode]:
        """All of the actor's folders, by name, with child ids and live prompt counts."""
        result = await self.session.execute(
            select(Folder).where(Folder.owner_id == actor_id).order_by(Folder.name)
        )
        folders = list(result.scalars().all())

        counts = await self.session.execute(
            select(Prompt.folder_id, func.count(Prompt.id))
            .join(Folder, Folder.id == Prompt.folder_id)
            .where(Folder.owner_id == actor_id, Prompt.deleted_at.is_(None))
            .group_by(Prompt.folder_id)
        )
        prompt_counts = {folder_id: count for folder_id, count in counts.all()}

        nodes = {f.id: FolderNode(folder=f, prompt_count=prompt_counts.get(f.id, 0)) for f in folders}
        for f in folders:
            if f.parent_id in nodes:
                nodes[f.parent_id].child_ids.append(f.id)
        return [nodes[f.id] for f in folders]
