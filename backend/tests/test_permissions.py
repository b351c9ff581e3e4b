import pytest

from promptvault.exceptions import ForbiddenError, NotFoundError
from promptvault.models import Visibility
from promptvault.services.permissions import PermissionAction, PermissionEvaluator
from promptvault.services.prompt_service import PromptService
from promptvault.services.team_service import TeamService

ALL_ACTIONS = list(PermissionAction)


async def _prompt(db, owner, **extra):
    data = {"title": "Greeting", "content": "Say hello"}
    data.update(extra)
    prompt = await PromptService(db).create(owner, data)
    return prompt.id


async def test_owner_has_every_permission(db, alice):
    pid = await _prompt(db, alice)
    perms = PermissionEvaluator(db)
    for action in ALL_ACTIONS:
        assert await perms.check_permission(alice, pid, action)


async def test_stranger_denied_on_private_prompt(db, alice, bob):
    pid = await _prompt(db, alice)
    perms = PermissionEvaluator(db)
    for action in ALL_ACTIONS:
        assert not await perms.check_permission(bob, pid, action)


async def test_co_creator_can_do_everything_but_delete(db, alice, bob):
    pid = await _prompt(db, alice)
    await PromptService(db).add_co_creator(alice, pid, bob)
    perms = PermissionEvaluator(db)

    assert await perms.check_permission(bob, pid, PermissionAction.VIEW)
    assert await perms.check_permission(bob, pid, PermissionAction.EDIT)
    assert await perms.check_permission(bob, pid, PermissionAction.SHARE)
    assert not await perms.check_permission(bob, pid, PermissionAction.DELETE)


async def test_public_prompt_is_view_only_for_others(db, alice, bob):
    pid = await _prompt(db, alice, visibility=Visibility.PUBLIC)
    perms = PermissionEvaluator(db)

    assert await perms.check_permission(bob, pid, PermissionAction.VIEW)
    assert not await perms.check_permission(bob, pid, PermissionAction.EDIT)
    assert not await perms.check_permission(bob, pid, PermissionAction.SHARE)
    assert not await perms.check_permission(bob, pid, PermissionAction.DELETE)


async def test_team_prompt_viewable_by_members_only(db, alice, bob, carol):
    teams = TeamService(db)
    team = (await teams.create(alice, "Writers")).team
    await teams.add_member(alice, team.id, bob)
    pid = await _prompt(db, alice, visibility=Visibility.TEAM, team_ids=[team.id])
    perms = PermissionEvaluator(db)

    assert await perms.check_permission(bob, pid, PermissionAction.VIEW)
    assert not await perms.check_permission(bob, pid, PermissionAction.EDIT)
    assert not await perms.check_permission(carol, pid, PermissionAction.VIEW)


async def test_team_grant_ignored_unless_visibility_is_team(db, alice, bob):
    teams = TeamService(db)
    team = (await teams.create(alice, "Writers")).team
    await teams.add_member(alice, team.id, bob)
    pid = await _prompt(db, alice, visibility=Visibility.TEAM, team_ids=[team.id])
    await PromptService(db).update_visibility(alice, pid, Visibility.PRIVATE)

    assert not await PermissionEvaluator(db).check_permission(bob, pid, PermissionAction.VIEW)


async def test_delete_allowed_only_for_owner(db, alice, bob, carol):
    pid = await _prompt(db, alice, visibility=Visibility.PUBLIC)
    await PromptService(db).add_co_creator(alice, pid, bob)
    perms = PermissionEvaluator(db)

    assert await perms.check_permission(alice, pid, PermissionAction.DELETE)
    assert not await perms.check_permission(bob, pid, PermissionAction.DELETE)
    assert not await perms.check_permission(carol, pid, PermissionAction.DELETE)


async def test_soft_deleted_prompt_denied_even_for_owner(db, alice):
    pid = await _prompt(db, alice)
    await PromptService(db).delete(alice, pid)
    perms = PermissionEvaluator(db)

    assert not await perms.check_permission(alice, pid, PermissionAction.VIEW)
    with pytest.raises(NotFoundError):
        await perms.require_prompt(alice, pid, PermissionAction.VIEW)


async def test_require_prompt_distinguishes_missing_from_forbidden(db, alice, bob):
    pid = await _prompt(db, alice)
    perms = PermissionEvaluator(db)

    with pytest.raises(NotFoundError):
        await perms.require_prompt(alice, "no-such-prompt", PermissionAction.VIEW)
    with pytest.raises(ForbiddenError):
        await perms.require_prompt(bob, pid, PermissionAction.VIEW)


async def test_folder_and_team_predicates(db, alice, bob):
    from promptvault.services.folder_service import FolderService

    folder = await FolderService(db).create(alice, "Drafts")
    team = (await TeamService(db).create(alice, "Ops")).team
    await TeamService(db).add_member(alice, team.id, bob)
    perms = PermissionEvaluator(db)

    assert await perms.can_access_folder(alice, folder.id)
    assert not await perms.can_access_folder(bob, folder.id)
    assert not await perms.can_access_folder(alice, "missing")

    assert await perms.can_access_team(bob, team.id)
    assert await perms.is_team_admin(alice, team.id)
    assert not await perms.is_team_admin(bob, team.id)
