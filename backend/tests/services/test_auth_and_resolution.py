"""Access and Project Resolution — API token checks, health probes, default projects.

Invariants:
    - With api_token set, every route except health needs the token
    - Token accepted as Bearer header, X-API-Token header, or api_token query
    - Resolution order: body → query → X-Project-Id → session default → env default
    - A named project that does not exist is 404; nothing resolvable is 400
"""

import pytest

from tests.services.helpers import make_doc, make_project


# ─── Token ───────────────────────────────────────────────────────

@pytest.fixture
def token(settings, monkeypatch):
    monkeypatch.setattr(settings, "api_token", "s3cret")
    return "s3cret"


async def test_missing_token_is_401(client, token):
    res = await client.get("/api/v1/projects")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "UNAUTHORIZED"


async def test_wrong_token_is_401(client, token):
    res = await client.get("/api/v1/projects", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401


@pytest.mark.parametrize("kwargs", [
    {"headers": {"Authorization": "Bearer s3cret"}},
    {"headers": {"X-API-Token": "s3cret"}},
    {"params": {"api_token": "s3cret"}},
])
async def test_token_sources(client, token, kwargs):
    res = await client.get("/api/v1/projects", **kwargs)
    assert res.status_code == 200


async def test_health_is_open(client, token):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_readiness_checks_database(client):
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"]["database"] == "healthy"


# ─── Project resolution ──────────────────────────────────────────

async def test_no_project_is_400(client):
    res = await client.get("/api/v1/docs")
    assert res.status_code == 400


async def test_unknown_project_name_is_404(client, project):
    res = await client.get("/api/v1/docs", params={"project_name": "Nope"})
    assert res.status_code == 404


async def test_header_project_id(client, project):
    await make_doc(client, project, title="Opening")
    res = await client.get("/api/v1/docs", headers={"X-Project-Id": project["id"]})
    assert res.json()["count"] == 1


async def test_malformed_header_is_400(client, project):
    res = await client.get("/api/v1/docs", headers={"X-Project-Id": "not-a-uuid"})
    assert res.status_code == 400


async def test_body_name_beats_query(client, project):
    other = await make_project(client, "Other Book")
    res = await client.post(
        "/api/v1/docs",
        params={"project_name": project["name"]},
        json={"project_name": other["name"], "title": "Opening"},
    )
    assert res.json()["project_id"] == other["id"]


async def test_session_default(client, project):
    res = await client.post("/api/v1/projects/set-default", json={"name": project["name"]})
    assert res.status_code == 200

    res = await client.post("/api/v1/docs", json={"title": "Opening"})
    assert res.status_code == 201
    assert res.json()["project_id"] == project["id"]

    res = await client.get("/api/v1/projects/default")
    assert res.json()["project"]["id"] == project["id"]

    await client.post("/api/v1/projects/clear-default")
    res = await client.get("/api/v1/projects/default")
    assert res.json()["project"] is None
    assert (await client.get("/api/v1/docs")).status_code == 400


async def test_env_default_project(client, project, settings, monkeypatch):
    monkeypatch.setattr(settings, "default_project_name", project["name"])
    res = await client.get("/api/v1/counts")
    assert res.status_code == 200
    assert res.json()["project_id"] == project["id"]


async def test_session_default_beats_env_default(client, project, settings, monkeypatch):
    other = await make_project(client, "Other Book")
    monkeypatch.setattr(settings, "default_project_name", other["name"])
    await client.post("/api/v1/projects/set-default", json={"id": project["id"]})
    res = await client.get("/api/v1/counts")
    assert res.json()["project_id"] == project["id"]


async def test_trashing_default_clears_it(client, project):
    await client.post("/api/v1/projects/set-default", json={"id": project["id"]})
    await client.delete(
        f"/api/v1/projects/{project['id']}", headers={"X-Confirm-Name": project["name"]},
    )
    res = await client.get("/api/v1/projects/default")
    assert res.json()["project"] is None
