"""Snapshot-before-mutate versioning for prompts.

Version N always holds the prompt exactly as it was right before the Nth
tracked change, so restoring N reproduces that state. Restores snapshot the
current state first, so nothing is ever lost.
"""
import copy
import logging
from typing import Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import atomic
from promptvault.exceptions import NotFoundError
from promptvault.models import ActivityType, Prompt, PromptVersion, VERSIONED_FIELDS
from promptvault.services.activity_logger import ActivityLogger
from promptvault.services.permissions import PermissionAction, PermissionEvaluator

logger = logging.getLogger(__name__)


def copy_versioned_fields(source, target) -> None:
    """Copy every versioned field from ``source`` onto ``target``.

    JSON values are deep-copied so the two rows never share mutable state.
    """
    for field in VERSIONED_FIELDS:
        setattr(target, field, copy.deepcopy(getattr(source, field)))


class VersioningEngine:
    def __init__(
        self,
        session: AsyncSession,
        permissions: Optional[PermissionEvaluator] = None,
        activity: Optional[ActivityLogger] = None,
    ):
        self.session = session
        self.permissions = permissions or PermissionEvaluator(session)
        self.activity = activity or ActivityLogger(session, self.permissions)

    async def latest_version_number(self, prompt_id: str) -> int:
        latest = await self.session.scalar(
            select(func.max(PromptVersion.version)).where(PromptVersion.prompt_id == prompt_id)
        )
        return latest or 0

    async def snapshot_before_update(self, prompt: Prompt, actor_id: str) -> PromptVersion:
        """Record the prompt's current editable fields as the next version.

        Must run before the change is applied. Flushes, does not commit.
        """
        version = PromptVersion(
            prompt_id=prompt.id,
            version=await self.latest_version_number(prompt.id) + 1,
            created_by=actor_id,
        )
        copy_versioned_fields(prompt, version)
        if version.tags is None:
            version.tags = []
        self.session.add(version)
        await self.session.flush()
        return version

    async def list_versions(self, actor_id: str, prompt_id: str) -> list[PromptVersion]:
        await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.VIEW)
        result = await self.session.execute(
            select(PromptVersion)
            .where(PromptVersion.prompt_id == prompt_id)
            .order_by(desc(PromptVersion.version))
        )
        return list(result.scalars().all())

    async def _find_version(self, prompt_id: str, version: int) -> PromptVersion:
        result = await self.session.execute(
            select(PromptVersion).where(
                PromptVersion.prompt_id == prompt_id,
                PromptVersion.version == version,
            )
        )
        snapshot = result.scalar_one_or_none()
        if snapshot is None:
            raise NotFoundError("Prompt version", f"{prompt_id}@{version}")
        return snapshot

    async def get_version(self, actor_id: str, prompt_id: str, version: int) -> PromptVersion:
        await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.VIEW)
        return await self._find_version(prompt_id, version)

    async def restore_version(self, prompt_id: str, actor_id: str, version: int) -> Prompt:
        async with atomic(self.session):
            prompt = await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.EDIT)
            snapshot = await self._find_version(prompt_id, version)

            await self.snapshot_before_update(prompt, actor_id)
            copy_versioned_fields(snapshot, prompt)
            await self.session.flush()

            await self.activity.log(
                actor_id,
                ActivityType.UPDATED,
                prompt_id=prompt_id,
                metadata={"restoredFromVersion": version},
            )

        logger.info("Prompt %s restored to version %d by %s", prompt_id, version, actor_id)
        return prompt
