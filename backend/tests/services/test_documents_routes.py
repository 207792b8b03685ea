"""Document Routes — confirmation gate, CRUD, filters, soft delete and restore.

Invariants:
    - Writing to an unconfirmed project → 412 unless autoconfirm is on
    - Writing to a blocked project → 403
    - tagsMode=all requires every tag, any requires one (any letter case)
    - Trashed documents disappear from reads until restored
"""

from tests.services.helpers import make_doc, make_project


# ─── Confirmation gate ───────────────────────────────────────────

async def test_write_to_unconfirmed_project_is_412(client):
    project = await make_project(client, "Draft", confirm=False)
    res = await client.post(
        "/api/v1/docs", json={"project_name": "Draft", "title": "Opening"},
    )
    assert res.status_code == 412
    error = res.json()["error"]
    assert error["code"] == "PROJECT_NOT_CONFIRMED"
    assert error["details"]["project"]["id"] == project["id"]
    assert "/projects/confirm" in error["details"]["hint"]


async def test_autoconfirm_lets_write_through_and_confirms(client, settings, monkeypatch):
    monkeypatch.setattr(settings, "allow_autoconfirm", True)
    project = await make_project(client, "Draft", confirm=False)
    res = await client.post(
        "/api/v1/docs", json={"project_name": "Draft", "title": "Opening"},
    )
    assert res.status_code == 201
    res = await client.get(f"/api/v1/projects/{project['id']}")
    assert res.json()["project"]["confirmed"] is True


async def test_blocked_project_is_403(client, settings, monkeypatch):
    monkeypatch.setattr(settings, "allow_autoconfirm", True)
    project = await make_project(client, "Draft")
    await client.patch(f"/api/v1/projects/{project['id']}", json={"blocked": True})
    res = await client.post(
        "/api/v1/docs", json={"project_name": "Draft", "title": "Opening"},
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "PROJECT_BLOCKED"


# ─── CRUD ────────────────────────────────────────────────────────

async def test_create_and_get_document(client, project):
    doc = await make_doc(
        client, project, title="Opening", bodyMd="The tide turned.",
        tags=["draft"], meta={"pov": "Amira"},
    )
    assert doc["body_md"] == "The tide turned."
    assert doc["parts"] == doc["part_count"] == 1

    res = await client.get(f"/api/v1/docs/{doc['id']}", params={"project_name": project["name"]})
    assert res.status_code == 200
    assert res.json()["meta"] == {"pov": "Amira"}


async def test_non_object_meta_becomes_empty(client, project):
    doc = await make_doc(client, project, title="Opening", meta="oops")
    assert doc["meta"] == {}


async def test_explicit_duplicate_id_is_409(client, project):
    await make_doc(client, project, id="scn-001", title="Opening")
    res = await client.post(
        "/api/v1/docs",
        json={"project_name": project["name"], "id": "scn-001", "title": "Again"},
    )
    assert res.status_code == 409


async def test_get_unknown_document_is_404(client, project):
    res = await client.get("/api/v1/docs/nope", params={"project_name": project["name"]})
    assert res.status_code == 404


async def test_patch_overwrite_and_append(client, project):
    doc = await make_doc(client, project, title="Opening", body_md="One.")
    params = {"project_name": project["name"]}

    res = await client.patch(f"/api/v1/docs/{doc['id']}", params=params, json={"body_md": "Two."})
    assert res.json()["body_md"] == "Two."

    res = await client.patch(
        f"/api/v1/docs/{doc['id']}", params={**params, "append": "true"},
        json={"body_md": " Three."},
    )
    body = res.json()
    assert body["body_md"] == "Two. Three."
    assert body["title"] == "Opening"


async def test_update_by_title_case_insensitive_append(client, project):
    await make_doc(client, project, title="The  Opening", body_md="One.")
    res = await client.post("/api/v1/docs/update-by-title", json={
        "project_name": project["name"], "title": "the opening", "ci": True,
        "body_md": "Two.", "mode": "append",
    })
    assert res.status_code == 200
    assert res.json()["body_md"] == "One.\nTwo."


async def test_update_by_title_missing_is_404(client, project):
    res = await client.post("/api/v1/docs/update-by-title", json={
        "project_name": project["name"], "title": "Nowhere", "body_md": "x",
    })
    assert res.status_code == 404


# ─── Filters ─────────────────────────────────────────────────────

async def _seed_tagged(client, project):
    await make_doc(client, project, title="A", tags=["act1", "night"], meta={"pov": "Amira"})
    await make_doc(client, project, title="B", tags=["act1"], meta={"pov": "Tariq"})
    await make_doc(client, project, title="C", tags=["night"], doc_type="concept")


async def test_tags_mode_all_and_any(client, project):
    await _seed_tagged(client, project)
    base = {"project_name": project["name"], "tags": "act1,night"}

    res = await client.get("/api/v1/docs", params=base)
    assert [d["title"] for d in res.json()["docs"]] == ["A"]

    res = await client.get("/api/v1/docs", params={**base, "tagsMode": "any"})
    assert sorted(d["title"] for d in res.json()["docs"]) == ["A", "B", "C"]


async def test_repeatable_tag_param(client, project):
    await _seed_tagged(client, project)
    res = await client.get(
        "/api/v1/docs",
        params=[("project_name", project["name"]), ("tag", "night"), ("tag", "act1")],
    )
    assert [d["title"] for d in res.json()["docs"]] == ["A"]


async def test_meta_and_doc_type_filters(client, project):
    await _seed_tagged(client, project)
    res = await client.get(
        "/api/v1/docs", params={"project_name": project["name"], "meta.pov": "Tariq"},
    )
    assert [d["title"] for d in res.json()["docs"]] == ["B"]

    res = await client.get(
        "/api/v1/docs", params={"project_name": project["name"], "doc_type": "concept"},
    )
    assert [d["title"] for d in res.json()["docs"]] == ["C"]


async def test_tags_mode_accepts_any_case(client, project):
    await _seed_tagged(client, project)
    res = await client.get("/api/v1/docs", params={
        "project_name": project["name"], "tags": "act1,night", "tagsMode": "ANY",
    })
    assert res.status_code == 200
    assert sorted(d["title"] for d in res.json()["docs"]) == ["A", "B", "C"]


async def test_invalid_tags_mode_is_400(client, project):
    res = await client.get(
        "/api/v1/docs", params={"project_name": project["name"], "tagsMode": "some"},
    )
    assert res.status_code == 400


# ─── Soft delete ─────────────────────────────────────────────────

async def test_delete_checks_confirm_title(client, project):
    doc = await make_doc(client, project, title="Opening")
    res = await client.delete(
        f"/api/v1/docs/{doc['id']}",
        params={"project_name": project["name"]},
        headers={"X-Confirm-Title": "Wrong"},
    )
    assert res.status_code == 412


async def test_delete_then_restore(client, project):
    doc = await make_doc(client, project, title="Opening", body_md="Tide.")
    params = {"project_name": project["name"]}

    res = await client.delete(
        f"/api/v1/docs/{doc['id']}", params=params, headers={"X-Confirm-Title": "Opening"},
    )
    assert res.status_code == 200
    assert (await client.get(f"/api/v1/docs/{doc['id']}", params=params)).status_code == 404
    trashed = await client.get("/api/v1/docs", params={**params, "trashed": "true"})
    assert [d["id"] for d in trashed.json()["docs"]] == [doc["id"]]

    res = await client.post(f"/api/v1/docs/{doc['id']}/restore", params=params)
    assert res.status_code == 200
    assert res.json()["doc"]["body_md"] == "Tide."


async def test_restore_live_document_is_404(client, project):
    doc = await make_doc(client, project, title="Opening")
    res = await client.post(
        f"/api/v1/docs/{doc['id']}/restore", params={"project_name": project["name"]},
    )
    assert res.status_code == 404


async def test_purge_removes_trashed_document(client, project):
    doc = await make_doc(client, project, title="Opening")
    params = {"project_name": project["name"]}
    await client.delete(f"/api/v1/docs/{doc['id']}", params=params)
    res = await client.delete(
        f"/api/v1/docs/{doc['id']}", params={**params, "purge": "true"},
    )
    assert res.json()["purged"] is True
    res = await client.post(f"/api/v1/docs/{doc['id']}/restore", params=params)
    assert res.status_code == 404
