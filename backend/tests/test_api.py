"""End-to-end checks through the HTTP layer."""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from promptvault.database import get_db
from promptvault.main import app


@pytest_asyncio.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _register(client, username, password="password123"):
    resp = await client.post("/api/auth/signup", json={"username": username, "password": password})
    assert resp.status_code == 201, resp.text
    resp = await client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    return body["userId"], {"Authorization": f"Bearer {body['accessToken']}"}


async def test_requests_without_token_are_unauthorized(client):
    resp = await client.get("/api/prompts")
    assert resp.status_code == 401
    assert resp.json()["code"] == "UNAUTHORIZED"

    resp = await client.get("/api/prompts", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401


async def test_signup_validation_error_body(client):
    resp = await client.post("/api/auth/signup", json={"username": "x", "password": "password123"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "BAD_REQUEST"


async def test_me(client):
    user_id, headers = await _register(client, "erin")
    resp = await client.get("/api/auth/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == user_id
    assert resp.json()["username"] == "erin"


async def test_prompt_lifecycle(client):
    _, headers = await _register(client, "erin")

    resp = await client.post(
        "/api/prompts",
        json={"title": "Summarize", "content": "Summarize {text}", "tags": ["work", "work"],
              "exampleIO": [{"input": "a", "output": "b"}]},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    created = resp.json()
    pid = created["id"]
    assert created["tags"] == ["work"]
    assert created["visibility"] == "PRIVATE"
    assert created["exampleIO"] == [{"input": "a", "output": "b"}]

    resp = await client.put(f"/api/prompts/{pid}", json={"title": "Summarize v2"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Summarize v2"

    resp = await client.get(f"/api/prompts/{pid}/versions", headers=headers)
    assert [v["version"] for v in resp.json()] == [1]
    assert resp.json()[0]["title"] == "Summarize"

    resp = await client.post(f"/api/prompts/{pid}/versions/1/restore", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Summarize"

    resp = await client.get("/api/prompts", headers=headers)
    assert [p["id"] for p in resp.json()["items"]] == [pid]
    assert resp.json()["nextCursor"] is None

    resp = await client.delete(f"/api/prompts/{pid}", headers=headers)
    assert resp.status_code == 200
    resp = await client.get(f"/api/prompts/{pid}", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


async def test_sharing_through_api(client):
    _, owner = await _register(client, "erin")
    frank_id, frank = await _register(client, "frank")

    pid = (await client.post(
        "/api/prompts", json={"title": "T", "content": "C"}, headers=owner
    )).json()["id"]

    resp = await client.get(f"/api/prompts/{pid}", headers=frank)
    assert resp.status_code == 403
    assert resp.json()["code"] == "FORBIDDEN"

    resp = await client.post(f"/api/prompts/{pid}/co-creators", json={"userId": frank_id}, headers=owner)
    assert resp.status_code == 201

    resp = await client.get(f"/api/prompts/{pid}", headers=frank)
    assert resp.status_code == 200
    assert resp.json()["coCreatorIds"] == [frank_id]

    resp = await client.put(f"/api/prompts/{pid}/visibility", json={"visibility": "PUBLIC"}, headers=frank)
    assert resp.status_code == 403
    resp = await client.delete(f"/api/prompts/{pid}", headers=frank)
    assert resp.status_code == 403


async def test_folder_delete_error_message(client):
    _, headers = await _register(client, "erin")
    folder_id = (await client.post("/api/folders", json={"name": "Work"}, headers=headers)).json()["id"]
    await client.post("/api/prompts", json={"title": "T", "content": "C", "folderId": folder_id}, headers=headers)

    resp = await client.delete(f"/api/folders/{folder_id}", headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {
        "code": "BAD_REQUEST",
        "message": "Cannot delete folder. It contains 1 prompts and 0 subfolders.",
    }


async def test_team_flow(client):
    _, admin = await _register(client, "erin")
    frank_id, frank = await _register(client, "frank")

    resp = await client.post("/api/teams", json={"name": "Writers"}, headers=admin)
    assert resp.status_code == 201, resp.text
    team_id = resp.json()["id"]

    resp = await client.post(f"/api/teams/{team_id}/members", json={"userId": frank_id}, headers=admin)
    assert resp.status_code == 201, resp.text

    resp = await client.post(
        "/api/prompts",
        json={"title": "T", "content": "C", "visibility": "TEAM", "teamIds": [team_id]},
        headers=admin,
    )
    pid = resp.json()["id"]

    resp = await client.get(f"/api/prompts/{pid}", headers=frank)
    assert resp.status_code == 200
    assert resp.json()["teamIds"] == [team_id]

    resp = await client.get("/api/teams", headers=frank)
    assert [t["id"] for t in resp.json()] == [team_id]


async def test_activity_feed(client):
    _, headers = await _register(client, "erin")
    pid = (await client.post("/api/prompts", json={"title": "T", "content": "C"}, headers=headers)).json()["id"]

    resp = await client.post("/api/activity", json={"action": "COPIED", "promptId": pid}, headers=headers)
    assert resp.status_code == 201

    resp = await client.get("/api/activity/recent", headers=headers)
    assert resp.status_code == 200
    feed = resp.json()
    assert [e["action"] for e in feed] == ["COPIED", "CREATED"]
    assert feed[0]["prompt"]["title"] == "T"


async def test_update_rejects_fields_it_cannot_change(client):
    _, headers = await _register(client, "erin")
    folder_id = (await client.post("/api/folders", json={"name": "Work"}, headers=headers)).json()["id"]
    pid = (await client.post("/api/prompts", json={"title": "T", "content": "C"}, headers=headers)).json()["id"]

    resp = await client.put(
        f"/api/prompts/{pid}", json={"title": "T2", "visibility": "PUBLIC", "folderId": folder_id}, headers=headers
    )
    assert resp.status_code == 422

    resp = await client.get(f"/api/prompts/{pid}/versions", headers=headers)
    assert resp.json() == []
    resp = await client.get(f"/api/prompts/{pid}", headers=headers)
    assert resp.json()["title"] == "T"
    assert resp.json()["visibility"] == "PRIVATE"
    assert resp.json()["folderId"] is None


async def test_prompt_responses_embed_people_folder_and_teams(client):
    erin_id, erin = await _register(client, "erin")
    frank_id, _ = await _register(client, "frank")

    folder_id = (await client.post("/api/folders", json={"name": "Work"}, headers=erin)).json()["id"]
    team_id = (await client.post("/api/teams", json={"name": "Writers"}, headers=erin)).json()["id"]
    pid = (await client.post(
        "/api/prompts",
        json={"title": "Brief", "content": "C", "folderId": folder_id, "visibility": "TEAM", "teamIds": [team_id]},
        headers=erin,
    )).json()["id"]
    await client.post(f"/api/prompts/{pid}/co-creators", json={"userId": frank_id}, headers=erin)

    body = (await client.get(f"/api/prompts/{pid}", headers=erin)).json()
    assert body["owner"] == {"id": erin_id, "username": "erin", "name": None, "email": None, "image": None}
    assert body["folder"] == {"id": folder_id, "name": "Work"}
    assert [u["username"] for u in body["coCreators"]] == ["frank"]
    assert body["coCreators"][0]["id"] == frank_id
    assert body["teams"] == [{"id": team_id, "name": "Writers"}]

    items = (await client.get("/api/prompts", headers=erin)).json()["items"]
    assert items[0]["owner"]["id"] == erin_id
    assert items[0]["folder"]["name"] == "Work"

    found = (await client.get("/api/prompts/search", params={"query": "brief"}, headers=erin)).json()
    assert found[0]["owner"]["username"] == "erin"

    folder = (await client.get(f"/api/folders/{folder_id}", headers=erin)).json()
    assert folder["prompts"][0]["owner"]["username"] == "erin"


async def test_team_and_activity_responses_embed_users(client):
    erin_id, erin = await _register(client, "erin")
    frank_id, _ = await _register(client, "frank")

    team_id = (await client.post("/api/teams", json={"name": "Writers"}, headers=erin)).json()["id"]
    resp = await client.post(f"/api/teams/{team_id}/members", json={"userId": frank_id}, headers=erin)
    assert resp.json()["user"]["username"] == "frank"

    team = (await client.get(f"/api/teams/{team_id}", headers=erin)).json()
    assert team["creator"]["id"] == erin_id
    assert {m["user"]["username"] for m in team["members"]} == {"erin", "frank"}

    teams = (await client.get("/api/teams", headers=erin)).json()
    assert teams[0]["creator"]["username"] == "erin"

    members = (await client.get(f"/api/teams/{team_id}/members", headers=erin)).json()
    assert {m["user"]["id"] for m in members} == {erin_id, frank_id}

    pid = (await client.post("/api/prompts", json={"title": "T", "content": "C"}, headers=erin)).json()["id"]
    history = (await client.get(f"/api/activity/prompts/{pid}", headers=erin)).json()
    assert [e["action"] for e in history] == ["CREATED"]
    assert history[0]["user"]["username"] == "erin"

    feed = (await client.get("/api/activity/recent", headers=erin)).json()
    assert feed[0]["user"]["id"] == erin_id
