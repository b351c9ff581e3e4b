"""Activity feed API routes."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import get_db
from promptvault.dependencies import get_current_user_id
from promptvault.models import ActivityLog, Prompt, User
from promptvault.schemas.activity import ActivityCreate, ActivityPromptSummary, ActivityResponse
from promptvault.schemas.user import UserSummary
from promptvault.services.activity_logger import ActivityLogger
from promptvault.services.auth_service import load_users

router = APIRouter(prefix="/api/activity", tags=["activity"])


@router.post("", response_model=ActivityResponse, status_code=201)
async def log_activity(
    body: ActivityCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Record a client-side activity (e.g. copying a prompt to the clipboard)."""
    entry = await ActivityLogger(db).log_manual(user_id, body.action, body.prompt_id, body.metadata)
    return _to_response(entry)


@router.get("/recent", response_model=list[ActivityResponse])
async def recent_activity(
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own recent activity, newest first."""
    rows = await ActivityLogger(db).recent(user_id, limit)
    users = await load_users(db, {user_id})
    return [_to_response(entry, prompt, users) for entry, prompt in rows]


@router.get("/prompts/{prompt_id}", response_model=list[ActivityResponse])
async def prompt_activity(
    prompt_id: str,
    limit: int = Query(50, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    entries = await ActivityLogger(db).for_prompt(user_id, prompt_id, limit)
    users = await load_users(db, {e.user_id for e in entries})
    return [_to_response(e, users=users) for e in entries]


def _to_response(
    entry: ActivityLog,
    prompt: Prompt | None = None,
    users: dict[str, User] | None = None,
) -> ActivityResponse:
    response = ActivityResponse.model_validate(entry)
    if prompt is not None:
        response = response.model_copy(update={"prompt": ActivityPromptSummary.model_validate(prompt)})
    user = (users or {}).get(entry.user_id)
    if user is not None:
        response = response.model_copy(update={"user": UserSummary.model_validate(user)})
    return response
