import uuid

import httpx
import pytest

from streamgate.core.config import settings

BASE = "/api/v1/episodes"


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_readyz_memory_backend(client):
    r = client.get("/readyz")
    assert r.status_code == 200
    assert r.json() == {"ready": True, "checks": {"db": True}}


def test_readyz_reports_db_down(client, monkeypatch):
    async def _down() -> bool:
        return False

    monkeypatch.setattr(settings, "REPOSITORY_BACKEND", "sql")
    monkeypatch.setattr("streamgate.main.db_healthcheck", _down)
    r = client.get("/readyz")
    assert r.status_code == 503
    assert r.json()["checks"]["db"] is False


def test_request_id_generated(client):
    r = client.get("/healthz")
    uuid.UUID(r.headers["x-request-id"])


def test_request_id_echoed_when_valid(client):
    rid = str(uuid.uuid4())
    r = client.get("/healthz", headers={"X-Request-ID": rid})
    assert r.headers["x-request-id"] == rid


def test_request_id_replaced_when_not_a_uuid(client):
    r = client.get("/healthz", headers={"X-Request-ID": "<script>"})
    assert r.headers["x-request-id"] != "<script>"
    uuid.UUID(r.headers["x-request-id"])


def test_problem_body_carries_request_id(client):
    rid = str(uuid.uuid4())
    r = client.get(f"{BASE}/{uuid.uuid4()}/playback", headers={"X-Request-ID": rid})
    assert r.status_code == 404
    assert r.headers["content-type"].startswith("application/problem+json")
    body = r.json()
    assert body["request_id"] == rid
    assert body["code"] == "episode_not_found"
    assert body["status"] == 404


def test_unknown_route_is_problem_json(client):
    r = client.get("/api/v1/nope")
    assert r.status_code == 404
    assert r.headers["content-type"].startswith("application/problem+json")


@pytest.mark.anyio
async def test_async_client_playback(app, add_episode):
    ep = add_episode()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get(f"{BASE}/{ep.slug}/playback")
    assert r.status_code == 200
    assert [q["quality"] for q in r.json()["qualities"]] == [480, 720, 1080]
