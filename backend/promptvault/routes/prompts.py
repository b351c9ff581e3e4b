"""Prompts API routes."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.config import settings
from promptvault.database import get_db
from promptvault.dependencies import get_current_user_id
from promptvault.models import ContentType, Folder, Prompt, User, Visibility
from promptvault.schemas.common import FolderSummary, Page, SuccessResponse, TeamSummary
from promptvault.schemas.prompt import (
    CoCreatorAdd, CoCreatorResponse, PromptCreate, PromptDetailResponse, PromptMove,
    PromptResponse, PromptUpdate, PromptVersionResponse, VisibilityUpdate,
)
from promptvault.schemas.user import UserSummary
from promptvault.services.prompt_service import PromptDetail, PromptService
from promptvault.services.versioning import VersioningEngine

router = APIRouter(prefix="/api/prompts", tags=["prompts"])


@router.get("", response_model=Page[PromptResponse])
async def list_prompts(
    folder_id: Optional[str] = Query(None, alias="folderId"),
    content_type: Optional[ContentType] = Query(None, alias="contentType"),
    visibility: Optional[Visibility] = Query(None),
    tags: Optional[list[str]] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    cursor: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """List prompts visible to the caller, most recently updated first."""
    service = PromptService(db)
    page = await service.list_prompts(
        user_id,
        folder_id=folder_id,
        content_type=content_type,
        visibility=visibility,
        tags=tags,
        limit=limit,
        cursor=cursor,
    )
    owners, folders = await service.owners_and_folders(page.items)
    return Page[PromptResponse](
        items=[_to_response(p, owners, folders) for p in page.items],
        next_cursor=page.next_cursor,
    )


@router.get("/search", response_model=list[PromptResponse])
async def search_prompts(
    query: str = Query(..., min_length=1),
    content_type: Optional[ContentType] = Query(None, alias="contentType"),
    tags: Optional[list[str]] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Substring search over title, content and usage notes, or exact tag."""
    service = PromptService(db)
    prompts = await service.search(
        user_id, query, content_type=content_type, tags=tags, limit=limit
    )
    owners, folders = await service.owners_and_folders(prompts)
    return [_to_response(p, owners, folders) for p in prompts]


@router.post("", response_model=PromptResponse, status_code=201)
async def create_prompt(
    body: PromptCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    prompt = await PromptService(db).create(user_id, body.model_dump(mode="json"))
    return _to_response(prompt)


@router.get("/{prompt_id}", response_model=PromptDetailResponse)
async def get_prompt(
    prompt_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get a single prompt with its co-creators and team grants."""
    return _to_detail_response(await PromptService(db).get(user_id, prompt_id))


@router.put("/{prompt_id}", response_model=PromptResponse)
async def update_prompt(
    prompt_id: str,
    body: PromptUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Update a prompt. Only provided fields are updated; the previous state is versioned."""
    patch = body.model_dump(mode="json", exclude_unset=True)
    prompt = await PromptService(db).update(user_id, prompt_id, patch)
    return _to_response(prompt)


@router.delete("/{prompt_id}", response_model=SuccessResponse)
async def delete_prompt(
    prompt_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete a prompt. Owner only."""
    await PromptService(db).delete(user_id, prompt_id)
    return SuccessResponse()


@router.post("/{prompt_id}/duplicate", response_model=PromptResponse, status_code=201)
async def duplicate_prompt(
    prompt_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return _to_response(await PromptService(db).duplicate(user_id, prompt_id))


@router.post("/{prompt_id}/move", response_model=PromptResponse)
async def move_prompt(
    prompt_id: str,
    body: PromptMove,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return _to_response(await PromptService(db).move(user_id, prompt_id, body.folder_id))


@router.put("/{prompt_id}/visibility", response_model=PromptResponse)
async def update_visibility(
    prompt_id: str,
    body: VisibilityUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    prompt = await PromptService(db).update_visibility(
        user_id, prompt_id, body.visibility, body.team_ids
    )
    return _to_response(prompt)


@router.post("/{prompt_id}/co-creators", response_model=CoCreatorResponse, status_code=201)
async def add_co_creator(
    prompt_id: str,
    body: CoCreatorAdd,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    co_creator = await PromptService(db).add_co_creator(user_id, prompt_id, body.user_id)
    return CoCreatorResponse.model_validate(co_creator)


@router.delete("/{prompt_id}/co-creators/{co_creator_id}", response_model=SuccessResponse)
async def remove_co_creator(
    prompt_id: str,
    co_creator_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await PromptService(db).remove_co_creator(user_id, prompt_id, co_creator_id)
    return SuccessResponse()


@router.get("/{prompt_id}/versions", response_model=list[PromptVersionResponse])
async def list_versions(
    prompt_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Version history, newest first."""
    versions = await VersioningEngine(db).list_versions(user_id, prompt_id)
    return [PromptVersionResponse.model_validate(v) for v in versions]


@router.get("/{prompt_id}/versions/{version}", response_model=PromptVersionResponse)
async def get_version(
    prompt_id: str,
    version: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    snapshot = await VersioningEngine(db).get_version(user_id, prompt_id, version)
    return PromptVersionResponse.model_validate(snapshot)


@router.post("/{prompt_id}/versions/{version}/restore", response_model=PromptResponse)
async def restore_version(
    prompt_id: str,
    version: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Restore a version. The current state is versioned first."""
    prompt = await VersioningEngine(db).restore_version(prompt_id, user_id, version)
    return _to_response(prompt)


def _to_response(
    prompt: Prompt,
    owners: Optional[dict[str, User]] = None,
    folders: Optional[dict[str, Folder]] = None,
) -> PromptResponse:
    """Convert SQLAlchemy model to response schema, embedding owner and folder when known."""
    response = PromptResponse.model_validate(prompt)
    owner = (owners or {}).get(prompt.owner_id)
    folder = (folders or {}).get(prompt.folder_id) if prompt.folder_id else None
    return response.model_copy(update={
        "owner": UserSummary.model_validate(owner) if owner else None,
        "folder": FolderSummary.model_validate(folder) if folder else None,
    })


def _to_detail_response(detail: PromptDetail) -> PromptDetailResponse:
    prompt = detail.prompt
    return PromptDetailResponse.model_validate(prompt).model_copy(update={
        "owner": UserSummary.model_validate(detail.owner) if detail.owner else None,
        "folder": FolderSummary.model_validate(detail.folder) if detail.folder else None,
        "co_creator_ids": detail.co_creator_ids,
        "team_ids": detail.team_ids,
        "co_creators": [UserSummary.model_validate(u) for u in detail.co_creators],
        "teams": [TeamSummary.model_validate(t) for t in detail.teams],
    })
