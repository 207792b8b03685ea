"""Lyra Helpers — batch ingest, paste-save, filtered read, and chat-style commands.

Invariants:
    - Ingest processes items independently: one invalid item never aborts the batch
    - Ingest updates an item in place only when its id names a live document of the
      same project; otherwise the item is created
    - paste-save append joins the stored body and the new text with "\\n"
    - read: zero matches → 404, one → {"doc"}, several → {"docs"}
    - Service functions flush but never commit; routes own the transaction
"""

import logging
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.core.doc_filters import filter_documents
from writing_api.core.domain_types import DocMode, TagsMode, WriteMode
from writing_api.core.errors import InvalidRequestError, ResourceNotFoundError
from writing_api.schemas.document import DocumentCreate
from writing_api.schemas.lyra import LyraCommand, PasteSave
from writing_api.schemas.project import ProjectConfirm
from writing_api.services import document_service, project_service

logger = logging.getLogger(__name__)

APPEND_SEPARATOR = "\n"
COMMANDS = ("/confirm-project",)


def modes_descriptor(version: str) -> dict:
    prefix = "/api/v1/lyra"
    return {
        "ok": True,
        "version": version,
        "modes": {
            "read": {"route": f"{prefix}/read"},
            "write": {"route": f"{prefix}/paste-save"},
            "ingest": {"route": f"{prefix}/ingest"},
            "stream": {"route": f"{prefix}/read-stream"},
            "commands": {"route": f"{prefix}/command", "commands": list(COMMANDS)},
        },
    }


def _item_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(loc) for loc in first["loc"])
    return f"{field}: {first['msg']}" if field else first["msg"]


async def ingest(db: AsyncSession, project_id: UUID, items: list[dict]) -> dict:
    if not items:
        raise InvalidRequestError("docs array required", "docs")

    results = []
    touched: list[str] = []
    for raw in items:
        try:
            item = DocumentCreate.model_validate(raw if isinstance(raw, dict) else {})
        except ValidationError as e:
            results.append({"ok": False, "error": _item_error(e)})
            continue

        existing = None
        if item.id:
            existing = await document_service.find_document(db, project_id, item.id)
        if existing is not None:
            doc = await document_service.update_document(
                db, project_id, existing["id"], title=item.title, doc_type=item.doc_type,
                body_md=item.body_md, tags=item.tags, meta=item.meta,
            )
            mode = "update"
        else:
            doc = await document_service.create_document(
                db, project_id, title=item.title, doc_type=item.doc_type,
                body_md=item.body_md, tags=item.tags, meta=item.meta,
            )
            mode = "create"
        touched.append(doc["id"])
        results.append({"ok": True, "id": doc["id"], "mode": mode})

    logger.info(
        f"Ingested {len(touched)}/{len(items)} document(s)", extra={"project_id": project_id},
    )
    return {"ok": True, "count": len(results), "results": results, "ids": touched}


async def paste_save(db: AsyncSession, project_id: UUID, body: PasteSave) -> dict:
    payload = body.payload
    append = body.scene_write_mode == WriteMode.APPEND

    if body.doc_mode == DocMode.UPDATE:
        if not body.id:
            raise InvalidRequestError("id required for update", "id")
        doc = await document_service.update_document(
            db, project_id, body.id, title=payload.title, doc_type=payload.doc_type,
            body_md=payload.body_md, tags=payload.tags, meta=payload.meta,
            append=append, separator=APPEND_SEPARATOR,
        )
        return {"ok": True, "mode": "update", "doc": doc}

    if body.doc_mode == DocMode.UPSERT:
        existing = None
        if body.id:
            existing = await document_service.find_document(db, project_id, body.id)
        if existing is None and payload.title:
            existing = await document_service.find_by_title(db, project_id, payload.title)
        if existing is not None:
            doc = await document_service.update_document(
                db, project_id, existing["id"], title=payload.title,
                doc_type=payload.doc_type, body_md=payload.body_md, tags=payload.tags,
                meta=payload.meta, append=append, separator=APPEND_SEPARATOR,
            )
            return {"ok": True, "mode": "update", "doc": doc}

    if not payload.title:
        raise InvalidRequestError("payload.title required", "payload.title")
    doc = await document_service.create_document(
        db, project_id, title=payload.title, doc_type=payload.doc_type or "doc",
        body_md=payload.body_md, tags=payload.tags, meta=payload.meta,
        doc_id=body.id if body.doc_mode == DocMode.UPSERT else None,
    )
    return {"ok": True, "mode": "create", "doc": doc}


async def read(
    db: AsyncSession,
    project_id: UUID,
    *,
    doc_id: str | None = None,
    title: str | None = None,
    case_insensitive: bool = False,
    doc_type: str | None = None,
    tags: list[str] | None = None,
    tags_mode: TagsMode = TagsMode.ALL,
    meta_pairs: list[tuple[str, str]] | None = None,
) -> dict:
    if doc_id:
        return {"ok": True, "doc": await document_service.get_document(db, project_id, doc_id)}

    docs = filter_documents(
        await document_service.list_documents(db, project_id, doc_type=doc_type),
        title=title,
        case_insensitive=case_insensitive,
        tags=tags,
        tags_mode=tags_mode,
        meta_pairs=meta_pairs,
    )
    if not docs:
        raise ResourceNotFoundError("Document", "no matches")
    if len(docs) == 1:
        return {"ok": True, "doc": docs[0]}
    return {"ok": True, "docs": docs}


async def run_command(db: AsyncSession, body: LyraCommand) -> dict:
    if body.command == "/confirm-project":
        args = body.args
        try:
            target = ProjectConfirm.model_validate({
                "id": args.get("id"),
                "name": args.get("project_name") or args.get("name"),
                "slug": args.get("slug"),
            })
        except ValidationError as e:
            raise InvalidRequestError(_item_error(e), "args")
        project = await project_service.resolve_confirm_target(db, target)
        await project_service.confirm_project(db, project)
        return {"ok": True, "project": project_service.project_to_dict(project)}
    raise InvalidRequestError(f"unknown command: {body.command}", "command")
