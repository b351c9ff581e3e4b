import pytest

from promptvault.exceptions import InvalidInputError, NotFoundError
from promptvault.models import ContentType, Visibility
from promptvault.services.folder_service import FolderService
from promptvault.services.prompt_service import PromptService
from promptvault.services.team_service import TeamService


async def _new(service, owner, title, **extra):
    data = {"title": title, "content": f"{title} body"}
    data.update(extra)
    return (await service.create(owner, data)).id


async def test_list_is_union_of_access_paths(db, alice, bob, carol):
    service = PromptService(db)
    teams = TeamService(db)
    team = (await teams.create(bob, "Shared")).team.id
    await teams.add_member(bob, team, alice)

    own = await _new(service, alice, "own")
    co = await _new(service, bob, "co")
    await service.add_co_creator(bob, co, alice)
    public = await _new(service, carol, "public", visibility=Visibility.PUBLIC)
    via_team = await _new(service, bob, "team", visibility=Visibility.TEAM, team_ids=[team])
    hidden = await _new(service, carol, "hidden")
    gone = await _new(service, alice, "gone")
    await service.delete(alice, gone)

    ids = {p.id for p in (await service.list_prompts(alice)).items}
    assert ids == {own, co, public, via_team}
    assert hidden not in ids


async def test_list_is_most_recently_updated_first(db, alice):
    service = PromptService(db)
    first = await _new(service, alice, "first")
    second = await _new(service, alice, "second")
    third = await _new(service, alice, "third")
    await service.update(alice, first, {"content": "touched"})

    page = await service.list_prompts(alice)
    assert [p.id for p in page.items] == [first, third, second]


async def test_filters(db, alice):
    service = PromptService(db)
    folder = (await FolderService(db).create(alice, "Work")).id
    in_folder = await _new(service, alice, "filed", folder_id=folder)
    template = await _new(service, alice, "tmpl", content_type=ContentType.TEMPLATE)
    public = await _new(service, alice, "pub", visibility=Visibility.PUBLIC)
    tagged = await _new(service, alice, "tagged", tags=["seo", "blog"])
    await _new(service, alice, "tag-prefix", tags=["seo-advanced"])

    assert [p.id for p in (await service.list_prompts(alice, folder_id=folder)).items] == [in_folder]
    assert [p.id for p in (await service.list_prompts(alice, content_type=ContentType.TEMPLATE)).items] == [template]
    assert [p.id for p in (await service.list_prompts(alice, visibility=Visibility.PUBLIC)).items] == [public]
    assert [p.id for p in (await service.list_prompts(alice, tags=["seo"])).items] == [tagged]


async def test_cursor_pagination_walks_every_item_once(db, alice):
    service = PromptService(db)
    created = [await _new(service, alice, f"p{i}") for i in range(5)]
    expected = list(reversed(created))

    first = await service.list_prompts(alice, limit=2)
    assert [p.id for p in first.items] == expected[:2]
    assert first.next_cursor == expected[2]

    second = await service.list_prompts(alice, limit=2, cursor=first.next_cursor)
    assert [p.id for p in second.items] == expected[2:4]
    assert second.next_cursor == expected[4]

    third = await service.list_prompts(alice, limit=2, cursor=second.next_cursor)
    assert [p.id for p in third.items] == expected[4:]
    assert third.next_cursor is None


async def test_cursor_must_be_a_prompt_the_caller_can_see(db, alice, bob):
    service = PromptService(db)
    private = await _new(service, alice, "private")
    gone = await _new(service, alice, "gone")
    await service.delete(alice, gone)

    with pytest.raises(NotFoundError):
        await service.list_prompts(bob, cursor=private)
    with pytest.raises(NotFoundError):
        await service.list_prompts(alice, cursor=gone)
    page = await service.list_prompts(alice, cursor=private)
    assert [p.id for p in page.items] == [private]


async def test_list_rejects_unknown_cursor_and_bad_limit(db, alice):
    service = PromptService(db)
    with pytest.raises(NotFoundError):
        await service.list_prompts(alice, cursor="missing")
    with pytest.raises(InvalidInputError):
        await service.list_prompts(alice, limit=0)
    with pytest.raises(InvalidInputError):
        await service.list_prompts(alice, limit=101)


async def test_search_is_case_insensitive_over_text_fields(db, alice):
    service = PromptService(db)
    in_title = await _new(service, alice, "Email Outreach")
    in_notes = await _new(service, alice, "other", usage_notes="good for cold EMAIL")
    await _new(service, alice, "unrelated")

    ids = {p.id for p in await service.search(alice, "email")}
    assert ids == {in_title, in_notes}


async def test_search_ignores_surrounding_whitespace(db, alice):
    service = PromptService(db)
    match = await _new(service, alice, "Email Outreach")
    await _new(service, alice, "unrelated")

    assert [p.id for p in await service.search(alice, "  email ")] == [match]


async def test_search_matches_exact_tags_only(db, alice):
    service = PromptService(db)
    exact = await _new(service, alice, "a", tags=["seo"])
    await _new(service, alice, "b", tags=["seo-advanced"])

    ids = [p.id for p in await service.search(alice, "seo")]
    assert ids == [exact]


async def test_search_respects_visibility(db, alice, bob):
    service = PromptService(db)
    await _new(service, bob, "secret recipe")
    visible = await _new(service, bob, "public recipe", visibility=Visibility.PUBLIC)

    assert [p.id for p in await service.search(alice, "recipe")] == [visible]


async def test_search_treats_wildcards_literally(db, alice):
    service = PromptService(db)
    await _new(service, alice, "plain")
    percent = await _new(service, alice, "100% done")

    assert [p.id for p in await service.search(alice, "%")] == [percent]


async def test_search_rejects_blank_query(db, alice):
    with pytest.raises(InvalidInputError):
        await PromptService(db).search(alice, "   ")
