"""Chunked Documents — oversized bodies stored as parts, read back as one document.

Invariants:
    - A body over doc_part_max_chars is stored as parts and returned whole
    - Any part id resolves to the logical document
    - Rewriting a chunked document to a short body collapses it to one row
"""

from sqlalchemy import select

from writing_api.models.document import Document

from tests.services.helpers import make_doc

PARAGRAPHS = [f"Paragraph {n}: the caravan moved east again." for n in range(1, 9)]
LONG_BODY = "\n\n".join(PARAGRAPHS)


async def test_long_body_round_trips(client, project, settings, monkeypatch):
    monkeypatch.setattr(settings, "doc_part_max_chars", 120)
    doc = await make_doc(client, project, title="Caravan", body_md=LONG_BODY)
    assert doc["body_md"] == LONG_BODY
    assert doc["part_count"] > 1
    assert doc["parts"] == doc["part_count"]
    assert doc["title"] == "Caravan"

    res = await client.get(f"/api/v1/docs/{doc['id']}", params={"project_name": project["name"]})
    assert res.json()["body_md"] == LONG_BODY


async def test_parts_stored_with_suffixes(client, project, settings, monkeypatch, test_db):
    monkeypatch.setattr(settings, "doc_part_max_chars", 120)
    doc = await make_doc(client, project, title="Caravan", body_md=LONG_BODY)

    rows = (await test_db.execute(
        select(Document).where(Document.base_id == doc["id"]).order_by(Document.part_index),
    )).scalars().all()
    assert [r.part_index for r in rows] == list(range(1, len(rows) + 1))
    assert rows[0].id == f"{doc['id']}-p1"
    assert rows[1].title == "Caravan (Part 2)"
    assert all(len(r.body_md) <= 120 for r in rows)


async def test_part_id_resolves_to_whole_document(client, project, settings, monkeypatch):
    monkeypatch.setattr(settings, "doc_part_max_chars", 120)
    doc = await make_doc(client, project, title="Caravan", body_md=LONG_BODY)
    res = await client.get(
        f"/api/v1/docs/{doc['id']}-p2", params={"project_name": project["name"]},
    )
    assert res.status_code == 200
    assert res.json()["id"] == doc["id"]
    assert res.json()["body_md"] == LONG_BODY


async def test_listing_shows_one_entry_per_document(client, project, settings, monkeypatch):
    monkeypatch.setattr(settings, "doc_part_max_chars", 120)
    await make_doc(client, project, title="Caravan", body_md=LONG_BODY)
    await make_doc(client, project, title="Oasis", body_md="Short.")
    res = await client.get("/api/v1/docs", params={"project_name": project["name"]})
    assert sorted(d["title"] for d in res.json()["docs"]) == ["Caravan", "Oasis"]


async def test_append_grows_document_into_parts(client, project, settings, monkeypatch):
    monkeypatch.setattr(settings, "doc_part_max_chars", 120)
    doc = await make_doc(client, project, title="Caravan", body_md=PARAGRAPHS[0])
    assert doc["part_count"] == 1

    params = {"project_name": project["name"], "append": "true"}
    for paragraph in PARAGRAPHS[1:]:
        res = await client.patch(
            f"/api/v1/docs/{doc['id']}", params=params, json={"body_md": "\n\n" + paragraph},
        )
        assert res.status_code == 200
    body = res.json()
    assert body["body_md"] == LONG_BODY
    assert body["part_count"] > 1


async def test_shrinking_collapses_parts(client, project, settings, monkeypatch, test_db):
    monkeypatch.setattr(settings, "doc_part_max_chars", 120)
    doc = await make_doc(client, project, title="Caravan", body_md=LONG_BODY)
    res = await client.patch(
        f"/api/v1/docs/{doc['id']}", params={"project_name": project["name"]},
        json={"body_md": "Just one line now."},
    )
    assert res.json()["part_count"] == 1

    rows = (await test_db.execute(
        select(Document).where(Document.base_id == doc["id"]),
    )).scalars().all()
    assert [(r.id, r.part_index) for r in rows] == [(doc["id"], 0)]


async def test_trash_and_restore_cover_every_part(client, project, settings, monkeypatch):
    monkeypatch.setattr(settings, "doc_part_max_chars", 120)
    doc = await make_doc(client, project, title="Caravan", body_md=LONG_BODY)
    params = {"project_name": project["name"]}

    await client.delete(f"/api/v1/docs/{doc['id']}", params=params, headers={"X-Confirm-Title": "Caravan"})
    listed = await client.get("/api/v1/docs", params=params)
    assert listed.json()["count"] == 0

    res = await client.post(f"/api/v1/docs/{doc['id']}-p1/restore", params=params)
    assert res.status_code == 200
    assert res.json()["doc"]["body_md"] == LONG_BODY
