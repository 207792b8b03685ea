"""Scene Service — save, list and order scene documents by act/section/chapter/scene.

Invariants:
    - Scenes are documents with doc_type "scene" and meta.structure
    - save_scene updates the scene matched by normalized title, else by structure,
      else creates one
    - notes_append is appended to the stored body ("\\n" separator); without it the
      body is left untouched on update
    - TOC lines come back in natural order ("Scene 2" before "Scene 10")
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.core.doc_filters import title_matches
from writing_api.core.scene_structure import (
    SCENE_DOC_TYPE, normalize_structure, scene_sort_key, scene_tags,
    structure_matches, toc_line, toc_path,
)
from writing_api.schemas.scene import SaveScene
from writing_api.services import document_service
from writing_api.services.lyra_service import APPEND_SEPARATOR

logger = logging.getLogger(__name__)


async def _scenes(db: AsyncSession, project_id: UUID) -> list[dict]:
    return await document_service.list_documents(db, project_id, doc_type=SCENE_DOC_TYPE)


def _structure_of(doc: dict) -> dict:
    return (doc.get("meta") or {}).get("structure") or {}


async def save_scene(db: AsyncSession, project_id: UUID, body: SaveScene) -> dict:
    s = body.structure
    structure = normalize_structure(s.act, s.section, s.chapter, s.scene)
    scenes = await _scenes(db, project_id)
    existing = next(
        (d for d in scenes if title_matches(d["title"], body.title, case_insensitive=True)),
        None,
    ) or next(
        (d for d in scenes if structure_matches(_structure_of(d), structure)),
        None,
    )

    meta = {
        **(existing["meta"] if existing else {}),
        "structure": structure,
        "toc_path": toc_path(structure),
    }
    for key in ("location", "start", "end"):
        value = getattr(body, key)
        if value:
            meta[key] = value
    tags = scene_tags(s.act, body.tags)

    if existing is None:
        doc = await document_service.create_document(
            db, project_id, title=body.title, doc_type=SCENE_DOC_TYPE,
            body_md=body.notes_append or "", tags=tags, meta=meta,
        )
        mode = "create"
    else:
        doc = await document_service.update_document(
            db, project_id, existing["id"], title=body.title, doc_type=SCENE_DOC_TYPE,
            body_md=body.notes_append, tags=tags, meta=meta,
            append=True, separator=APPEND_SEPARATOR,
        )
        mode = "update"
    logger.info(
        f"Scene saved ({mode}): {body.title}",
        extra={"project_id": project_id, "document_id": doc["id"]},
    )
    return {"ok": True, "mode": mode, "id": doc["id"], "title": doc["title"]}


async def list_scenes(
    db: AsyncSession,
    project_id: UUID,
    act: str | None = None,
    section: str | None = None,
    chapter: str | None = None,
) -> dict:
    wanted = {"act": act, "section": section, "chapter": chapter}
    scenes = sorted(
        (d for d in await _scenes(db, project_id) if structure_matches(_structure_of(d), wanted)),
        key=scene_sort_key,
    )
    items = [
        {
            "id": d["id"],
            "title": d["title"],
            "structure": _structure_of(d) or None,
            "location": (d.get("meta") or {}).get("location"),
        }
        for d in scenes
    ]
    return {"ok": True, "count": len(items), "scenes": items}


async def toc_scenes(db: AsyncSession, project_id: UUID) -> dict:
    lines = [toc_line(d) for d in sorted(await _scenes(db, project_id), key=scene_sort_key)]
    return {"ok": True, "count": len(lines), "lines": lines}
