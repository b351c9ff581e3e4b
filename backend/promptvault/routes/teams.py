"""Teams API routes."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from promptvault.database import get_db
from promptvault.dependencies import get_current_user_id
from promptvault.models import TeamMember, User
from promptvault.schemas.common import SuccessResponse
from promptvault.schemas.team import (
    MemberAdd, MemberRoleUpdate, TeamCreate, TeamDetailResponse, TeamMemberResponse,
    TeamResponse, TeamUpdate,
)
from promptvault.schemas.user import UserSummary
from promptvault.services.auth_service import load_users
from promptvault.services.team_service import TeamDetail, TeamService

router = APIRouter(prefix="/api/teams", tags=["teams"])


@router.get("", response_model=list[TeamDetailResponse])
async def list_teams(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Teams the caller belongs to, newest first."""
    return [_to_detail(d) for d in await TeamService(db).list_teams(user_id)]


@router.post("", response_model=TeamDetailResponse, status_code=201)
async def create_team(
    body: TeamCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a team; the caller becomes its first admin."""
    return _to_detail(await TeamService(db).create(user_id, body.name, body.description))


@router.get("/{team_id}", response_model=TeamDetailResponse)
async def get_team(
    team_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return _to_detail(await TeamService(db).get(user_id, team_id))


@router.put("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: str,
    body: TeamUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    team = await TeamService(db).update(user_id, team_id, body.model_dump(exclude_unset=True))
    return TeamResponse.model_validate(team)


@router.delete("/{team_id}", response_model=SuccessResponse)
async def delete_team(
    team_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a team. Prompts shared only with it become private."""
    await TeamService(db).delete(user_id, team_id)
    return SuccessResponse()


@router.get("/{team_id}/members", response_model=list[TeamMemberResponse])
async def list_members(
    team_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    members = await TeamService(db).list_members(user_id, team_id)
    users = await load_users(db, {m.user_id for m in members})
    return [_member_response(m, users) for m in members]


@router.post("/{team_id}/members", response_model=TeamMemberResponse, status_code=201)
async def add_member(
    team_id: str,
    body: MemberAdd,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    member = await TeamService(db).add_member(user_id, team_id, body.user_id, body.role)
    return _member_response(member, await load_users(db, {member.user_id}))


@router.put("/{team_id}/members/{member_id}", response_model=TeamMemberResponse)
async def update_member_role(
    team_id: str,
    member_id: str,
    body: MemberRoleUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    member = await TeamService(db).update_member_role(user_id, team_id, member_id, body.role)
    return _member_response(member, await load_users(db, {member.user_id}))


@router.delete("/{team_id}/members/{member_id}", response_model=SuccessResponse)
async def remove_member(
    team_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await TeamService(db).remove_member(user_id, team_id, member_id)
    return SuccessResponse()


def _to_detail(detail: TeamDetail) -> TeamDetailResponse:
    creator = detail.users.get(detail.team.creator_id)
    return TeamDetailResponse.model_validate(detail.team).model_copy(
        update={
            "creator": UserSummary.model_validate(creator) if creator else None,
            "members": [_member_response(m, detail.users) for m in detail.members],
        }
    )


def _member_response(member: TeamMember, users: dict[str, User]) -> TeamMemberResponse:
    user = users.get(member.user_id)
    return TeamMemberResponse.model_validate(member).model_copy(
        update={"user": UserSummary.model_validate(user) if user else None}
    )
