"""Append-only activity log.

``log`` joins the caller's transaction (flush only); the read helpers back
the dashboard feed and the per-prompt history panel.
"""
import logging
from typing import Any, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import atomic
from promptvault.models import ActivityLog, ActivityType, Prompt
from promptvault.services.permissions import PermissionAction, PermissionEvaluator

logger = logging.getLogger(__name__)


class ActivityLogger:
    def __init__(self, session: AsyncSession, permissions: Optional[PermissionEvaluator] = None):
        self.session = session
        self.permissions = permissions or PermissionEvaluator(session)

    async def log(
        self,
        actor_id: str,
        action: ActivityType,
        prompt_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ActivityLog:
        entry = ActivityLog(
            user_id=actor_id,
            prompt_id=prompt_id,
            action=ActivityType(action).value,
            metadata_=metadata,
        )
        self.session.add(entry)
        await self.session.flush()
        logger.debug("Activity %s by %s on prompt %s", entry.action, actor_id, prompt_id)
        return entry

    async def log_manual(
        self,
        actor_id: str,
        action: ActivityType,
        prompt_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ActivityLog:
        """Client-reported activity. The actor must be able to view the prompt."""
        async with atomic(self.session):
            if prompt_id is not None:
                await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.VIEW)
            return await self.log(actor_id, action, prompt_id, metadata)

    async def recent(self, actor_id: str, limit: int = 20) -> list[tuple[ActivityLog, Prompt | None]]:
        result = await self.session.execute(
            select(ActivityLog, Prompt)
            .outerjoin(Prompt, Prompt.id == ActivityLog.prompt_id)
            .where(ActivityLog.user_id == actor_id)
            .order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))
            .limit(limit)
        )
        return [(entry, prompt) for entry, prompt in result.all()]

    async def for_prompt(self, actor_id: str, prompt_id: str, limit: int = 50) -> list[ActivityLog]:
        await self.permissions.require_prompt(actor_id, prompt_id, PermissionAction.VIEW)
        result = await self.session.execute(
            select(ActivityLog)
            .where(ActivityLog.prompt_id == prompt_id)
            .order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))
            .limit(limit)
        )
        return list(result.scalars().all())
