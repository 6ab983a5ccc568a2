from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

import main
import mcp_server
from database import Store


@pytest.fixture
def client(store: Store):
    main.app.dependency_overrides[main.get_store] = lambda: store
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def _like(client: TestClient, actor_id: int, target_id: int) -> httpx.Response:
    return client.post("/interactions", json={"actor_id": actor_id, "target_id": target_id, "kind": "like"})


def test_health(client: TestClient) -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_profile_upsert_and_lookup(client: TestClient) -> None:
    resp = client.post("/profiles", json={"id": 40, "username": "margaret", "status": "inactive"})
    assert resp.status_code == 200

    fetched = client.get("/profiles/40").json()
    assert fetched["username"] == "margaret"
    assert fetched["status"] == "inactive"
    assert client.get("/profiles/41").status_code == 404


def test_mutual_like_over_http(client: TestClient) -> None:
    first = _like(client, 10, 20)
    assert first.status_code == 200
    assert first.json()["match"] is None

    second = _like(client, 20, 10).json()
    assert second["match"]["user1_id"] == 10
    assert second["match"]["user2_id"] == 20
    assert second["match"]["status"] == "active"

    matches = client.get("/users/20/matches").json()
    assert [m["id"] for m in matches] == [second["match"]["id"]]


def test_error_codes(client: TestClient) -> None:
    assert _like(client, 10, 10).status_code == 400
    assert _like(client, 10, 999).status_code == 404
    assert _like(client, 10, 20).status_code == 200
    dup = _like(client, 10, 20)
    assert dup.status_code == 409
    assert "already interacted" in dup.json()["detail"]


def test_malformed_requests_are_validation_errors(client: TestClient) -> None:
    bad_kind = client.post("/interactions", json={"actor_id": 10, "target_id": 20, "kind": "superlike"})
    assert bad_kind.status_code == 400
    assert isinstance(bad_kind.json()["detail"], str)
    assert "kind" in bad_kind.json()["detail"]

    bad_limit = client.get("/matches/1/messages", params={"limit": "abc"})
    assert bad_limit.status_code == 400
    assert "limit" in bad_limit.json()["detail"]

    missing_field = client.post("/messages", json={"match_id": 1, "sender_id": 10})
    assert missing_field.status_code == 400
    assert "content" in missing_field.json()["detail"]


def test_discover_feed_over_http(client: TestClient) -> None:
    _like(client, 10, 20)
    client.post("/profiles", json={"id": 40, "username": "margaret", "status": "inactive"})

    feed = client.get("/users/10/discover")
    assert feed.status_code == 200
    assert [p["id"] for p in feed.json()] == [30]
    assert client.get("/users/10/discover", params={"limit": 51}).status_code == 400


def test_messaging_over_http(client: TestClient) -> None:
    _like(client, 10, 20)
    match_id = _like(client, 20, 10).json()["match"]["id"]

    sent = client.post("/messages", json={"match_id": match_id, "sender_id": 10, "content": "hi"})
    assert sent.status_code == 200
    assert sent.json()["read_at"] is None

    outsider = client.post("/messages", json={"match_id": match_id, "sender_id": 30, "content": "hey"})
    assert outsider.status_code == 404
    assert outsider.json()["detail"] == "match not found or sender not part of it"

    too_long = client.post("/messages", json={"match_id": match_id, "sender_id": 20, "content": "x" * 2001})
    assert too_long.status_code == 400

    assert client.post(f"/matches/{match_id}/archive").json()["status"] == "archived"
    archived = client.post("/messages", json={"match_id": match_id, "sender_id": 10, "content": "hi?"})
    assert archived.status_code == 409

    thread = client.get(f"/matches/{match_id}/messages", params={"limit": 10})
    assert thread.status_code == 200
    assert [m["content"] for m in thread.json()] == ["hi"]

    assert client.get(f"/matches/{match_id}/messages", params={"limit": 0}).status_code == 400
    assert client.get("/matches/999/messages").status_code == 404
    assert client.post("/matches/999/archive").status_code == 404


def test_mcp_tools_proxy_to_http_api(store: Store, monkeypatch) -> None:
    main.app.dependency_overrides[main.get_store] = lambda: store
    monkeypatch.setattr(
        mcp_server, "_api_client",
        lambda: httpx.AsyncClient(transport=httpx.ASGITransport(app=main.app), base_url=mcp_server.API_BASE),
    )

    async def scenario():
        await mcp_server.create_interaction(10, 20, "like")
        result = await mcp_server.create_interaction(20, 10, "like")
        match_id = result["match"]["id"]
        await mcp_server.send_message(match_id, 20, "hello from mcp")
        thread = await mcp_server.list_match_messages(match_id)
        matches = await mcp_server.get_user_matches(10)
        rejected = await mcp_server.send_message(match_id, 30, "let me in")
        bad_kind = await mcp_server.create_interaction(10, 30, "superlike")
        return thread, matches, rejected, bad_kind

    try:
        thread, matches, rejected, bad_kind = asyncio.run(scenario())
    finally:
        main.app.dependency_overrides.clear()

    assert [m["content"] for m in thread] == ["hello from mcp"]
    assert len(matches) == 1
    assert rejected == {"detail": "match not found or sender not part of it"}
    assert isinstance(bad_kind["detail"], str)
