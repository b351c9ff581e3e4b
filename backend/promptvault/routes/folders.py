"""Folders API routes."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import get_db
from promptvault.dependencies import get_current_user_id
from promptvault.schemas.common import SuccessResponse
from promptvault.schemas.folder import (
    FolderCreate, FolderDetailResponse, FolderMove, FolderResponse, FolderTreeNode, FolderUpdate,
)
from promptvault.schemas.prompt import PromptResponse
from promptvault.schemas.user import UserSummary
from promptvault.services.folder_service import FolderService

router = APIRouter(prefix="/api/folders", tags=["folders"])


@router.get("", response_model=list[FolderTreeNode])
async def list_folders(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """All of the caller's folders with child ids and prompt counts."""
    nodes = await FolderService(db).list_folders(user_id)
    return [
        FolderTreeNode.model_validate(n.folder).model_copy(
            update={"child_ids": n.child_ids, "prompt_count": n.prompt_count}
        )
        for n in nodes
    ]


@router.post("", response_model=FolderResponse, status_code=201)
async def create_folder(
    body: FolderCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    folder = await FolderService(db).create(user_id, body.name, body.description, body.parent_id)
    return FolderResponse.model_validate(folder)


@router.get("/{folder_id}", response_model=FolderDetailResponse)
async def get_folder(
    folder_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get a folder with its prompts and direct subfolders."""
    contents = await FolderService(db).get(user_id, folder_id)
    return FolderDetailResponse.model_validate(contents.folder).model_copy(
        update={
            "prompts": [
                PromptResponse.model_validate(p).model_copy(
                    update={"owner": _summary(contents.owners.get(p.owner_id))}
                )
                for p in contents.prompts
            ],
            "children": [FolderResponse.model_validate(c) for c in contents.children],
        }
    )


@router.put("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: str,
    body: FolderUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    folder = await FolderService(db).update(user_id, folder_id, body.model_dump(exclude_unset=True))
    return FolderResponse.model_validate(folder)


@router.delete("/{folder_id}", response_model=SuccessResponse)
async def delete_folder(
    folder_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete an empty folder."""
    await FolderService(db).delete(user_id, folder_id)
    return SuccessResponse()


@router.post("/{folder_id}/move", response_model=FolderResponse)
async def move_folder(
    folder_id: str,
    body: FolderMove,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    folder = await FolderService(db).move(user_id, folder_id, body.new_parent_id)
    return FolderResponse.model_validate(folder)


def _summary(user) -> UserSummary | None:
    return UserSummary.model_validate(user) if user is not None else None
