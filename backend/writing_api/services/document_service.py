"""Document Service — part-aware persistence for documents: write, read, search, trash.

Invariants:
    - Every body write replaces ALL part rows of the document (delete, then insert) in
      the caller's transaction; part rows never mix two versions
    - Reads always return merged documents (core.chunking.merge_parts)
    - A part id ("<base>-p3") resolves to its logical document
    - A split never takes over another document's id; the write fails with ConflictError
    - Trashed documents invisible unless include_deleted / only_deleted is set
    - Service functions flush but never commit; routes own the transaction

Design Decisions:
    - Bodies split with the configured strategy at doc_part_max_chars
    - Search uses PostgreSQL full-text search when the bound dialect is postgresql,
      a case-insensitive substring match everywhere else (SQLite in tests)
    - Export is serialized incrementally so large projects stream to the client
"""

import json
import logging
import uuid
from collections.abc import Iterator
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.config import get_settings
from writing_api.core.chunking import merge_parts, part_id, part_title, split_body
from writing_api.core.errors import (
    ConfirmationMismatchError, ConflictError, ResourceNotFoundError,
)
from writing_api.core.doc_filters import title_matches
from writing_api.db.base import utcnow
from writing_api.models.document import Document
from writing_api.models.embedding_chunk import EmbeddingChunk

logger = logging.getLogger(__name__)


def new_document_id() -> str:
    return uuid.uuid4().hex[:16]


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def part_to_dict(row: Document) -> dict:
    """Stored-row shape consumed by merge_parts."""
    return {
        "id": row.id,
        "base_id": row.base_id,
        "part_index": row.part_index,
        "part_count": row.part_count,
        "project_id": str(row.project_id),
        "doc_type": row.doc_type,
        "title": row.title,
        "body_md": row.body_md,
        "tags": row.tags,
        "meta": row.meta,
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
        "deleted_at": _iso(row.deleted_at),
    }


def build_parts(
    *,
    base_id: str,
    project_id: UUID,
    doc_type: str,
    title: str,
    body_md: str,
    tags: list[str],
    meta: dict,
    created_at: datetime | None = None,
) -> list[Document]:
    """Cut a body into part rows (a single whole row when it fits)."""
    settings = get_settings()
    pieces = split_body(body_md or "", settings.doc_part_max_chars, settings.doc_split_strategy)
    now = utcnow()
    created_at = created_at or now
    common = dict(
        base_id=base_id, project_id=project_id, doc_type=doc_type,
        tags=list(tags), meta=dict(meta), created_at=created_at, updated_at=now,
    )
    if len(pieces) == 1:
        return [Document(
            id=base_id, part_index=0, part_count=1, title=title, body_md=pieces[0], **common,
        )]
    return [
        Document(
            id=part_id(base_id, n),
            part_index=n,
            part_count=len(pieces),
            title=part_title(title, n),
            body_md=piece,
            **common,
        )
        for n, piece in enumerate(pieces, start=1)
    ]


# ─── Reads ───────────────────────────────────────────────────────

async def _load_parts(
    db: AsyncSession,
    project_id: UUID,
    base_ids: list[str] | None = None,
    doc_type: str | None = None,
    include_deleted: bool = False,
    only_deleted: bool = False,
) -> list[Document]:
    query = select(Document).where(Document.project_id == project_id)
    if base_ids is not None:
        query = query.where(Document.base_id.in_(base_ids))
    if doc_type:
        query = query.where(Document.doc_type == doc_type)
    if only_deleted:
        query = query.where(Document.deleted_at.is_not(None))
    elif not include_deleted:
        query = query.where(Document.deleted_at.is_(None))
    query = query.order_by(desc(Document.updated_at), Document.base_id, Document.part_index)
    result = await db.execute(query)
    return _detach(db, list(result.scalars().all()))


def _detach(db: AsyncSession, rows: list[Document]) -> list[Document]:
    """Part rows are never kept in the identity map: rewrites reuse their primary keys."""
    for row in rows:
        db.expunge(row)
    return rows


async def _resolve_base_id(db: AsyncSession, project_id: UUID, doc_id: str) -> str | None:
    result = await db.execute(
        select(Document.base_id)
        .where(
            Document.project_id == project_id,
            (Document.base_id == doc_id) | (Document.id == doc_id),
        )
        .limit(1),
    )
    return result.scalar_one_or_none()


async def list_documents(
    db: AsyncSession,
    project_id: UUID,
    doc_type: str | None = None,
    include_deleted: bool = False,
    only_deleted: bool = False,
) -> list[dict]:
    """Merged documents, most recently updated first."""
    rows = await _load_parts(
        db, project_id, doc_type=doc_type,
        include_deleted=include_deleted, only_deleted=only_deleted,
    )
    docs = merge_parts([part_to_dict(r) for r in rows])
    docs.sort(key=lambda d: d["updated_at"] or "", reverse=True)
    return docs


async def find_document(
    db: AsyncSession, project_id: UUID, doc_id: str, include_deleted: bool = False,
) -> dict | None:
    base_id = await _resolve_base_id(db, project_id, doc_id)
    if base_id is None:
        return None
    rows = await _load_parts(db, project_id, [base_id], include_deleted=include_deleted)
    merged = merge_parts([part_to_dict(r) for r in rows])
    return merged[0] if merged else None


async def get_document(
    db: AsyncSession, project_id: UUID, doc_id: str, include_deleted: bool = False,
) -> dict:
    doc = await find_document(db, project_id, doc_id, include_deleted)
    if doc is None:
        raise ResourceNotFoundError("Document", doc_id)
    return doc


async def find_by_title(
    db: AsyncSession,
    project_id: UUID,
    title: str,
    case_insensitive: bool = False,
    doc_type: str | None = None,
) -> dict | None:
    """Most recently updated live document whose title matches."""
    for doc in await list_documents(db, project_id, doc_type=doc_type):
        if title_matches(doc["title"], title, case_insensitive):
            return doc
    return None


# ─── Writes ──────────────────────────────────────────────────────

async def _insert_parts(db: AsyncSession, parts: list[Document]) -> None:
    db.add_all(parts)
    await db.flush()
    _detach(db, parts)


async def _ensure_part_ids_free(db: AsyncSession, base_id: str, parts: list[Document]) -> None:
    """Generated part ids must not collide with another document's rows."""
    if len(parts) < 2:
        return
    result = await db.execute(
        select(Document.id)
        .where(Document.id.in_([p.id for p in parts]), Document.base_id != base_id)
        .limit(1),
    )
    taken = result.scalar_one_or_none()
    if taken is not None:
        raise ConflictError(
            f"Document id '{taken}' is already taken; cannot split '{base_id}' into parts",
        )


async def _replace_parts(db: AsyncSession, base_id: str, parts: list[Document]) -> None:
    await db.execute(
        delete(Document)
        .where(Document.base_id == base_id)
        .execution_options(synchronize_session=False),
    )
    await _insert_parts(db, parts)


async def create_document(
    db: AsyncSession,
    project_id: UUID,
    *,
    title: str,
    doc_type: str = "doc",
    body_md: str = "",
    tags: list[str] | None = None,
    meta: dict | None = None,
    doc_id: str | None = None,
) -> dict:
    base_id = doc_id or new_document_id()
    clash = await db.execute(
        select(Document.id)
        .where((Document.base_id == base_id) | (Document.id == base_id))
        .limit(1),
    )
    if clash.first() is not None:
        raise ConflictError(f"Document '{base_id}' already exists")

    parts = build_parts(
        base_id=base_id, project_id=project_id, doc_type=doc_type, title=title,
        body_md=body_md, tags=tags or [], meta=meta or {},
    )
    await _ensure_part_ids_free(db, base_id, parts)
    await _insert_parts(db, parts)
    logger.info(
        f"Document created: {title}",
        extra={"project_id": project_id, "document_id": base_id, "parts": len(parts)},
    )
    return merge_parts([part_to_dict(p) for p in parts])[0]


async def update_document(
    db: AsyncSession,
    project_id: UUID,
    doc_id: str,
    *,
    title: str | None = None,
    doc_type: str | None = None,
    body_md: str | None = None,
    tags: list[str] | None = None,
    meta: dict | None = None,
    append: bool = False,
    separator: str = "",
) -> dict:
    """Rewrite a live document; omitted fields keep their stored values.

    With append=True the new body is added after the stored one, joined by separator.
    """
    current = await get_document(db, project_id, doc_id)
    if body_md is None:
        new_body = current["body_md"]
    elif append:
        new_body = current["body_md"] + separator + body_md
    else:
        new_body = body_md

    parts = build_parts(
        base_id=current["id"],
        project_id=project_id,
        doc_type=doc_type or current["doc_type"],
        title=title or current["title"],
        body_md=new_body,
        tags=tags if tags is not None else current["tags"],
        meta=meta if meta is not None else current["meta"],
        created_at=datetime.fromisoformat(current["created_at"]),
    )
    await _ensure_part_ids_free(db, current["id"], parts)
    await _replace_parts(db, current["id"], parts)
    logger.info(
        "Document updated",
        extra={"project_id": project_id, "document_id": current["id"], "parts": len(parts)},
    )
    return merge_parts([part_to_dict(p) for p in parts])[0]


async def upsert_document(
    db: AsyncSession,
    project_id: UUID,
    *,
    doc_id: str | None,
    title: str,
    doc_type: str = "doc",
    body_md: str = "",
    tags: list[str] | None = None,
    meta: dict | None = None,
) -> tuple[dict, str]:
    """Update by id, else by exact title, else create. Returns (doc, "update" | "create")."""
    existing = None
    if doc_id:
        existing = await find_document(db, project_id, doc_id)
    if existing is None and title:
        existing = await find_by_title(db, project_id, title)
    if existing is not None:
        doc = await update_document(
            db, project_id, existing["id"], title=title, doc_type=doc_type,
            body_md=body_md, tags=tags, meta=meta,
        )
        return doc, "update"
    doc = await create_document(
        db, project_id, title=title, doc_type=doc_type, body_md=body_md,
        tags=tags, meta=meta, doc_id=doc_id,
    )
    return doc, "create"


async def delete_document(
    db: AsyncSession,
    project_id: UUID,
    doc_id: str,
    confirm_title: str | None = None,
    purge: bool = False,
    deleted_by: str = "api",
) -> dict:
    """Soft-delete (or purge) every part of a document."""
    doc = await get_document(db, project_id, doc_id, include_deleted=purge)
    if confirm_title is not None and confirm_title.strip() != doc["title"]:
        raise ConfirmationMismatchError("X-Confirm-Title", doc["title"])

    if purge:
        await db.execute(delete(EmbeddingChunk).where(
            EmbeddingChunk.project_id == project_id, EmbeddingChunk.document_id == doc["id"],
        ))
        await db.execute(delete(Document).where(Document.base_id == doc["id"]))
    else:
        await db.execute(
            update(Document)
            .where(Document.base_id == doc["id"], Document.deleted_at.is_(None))
            .values(deleted_at=utcnow(), deleted_by=deleted_by),
        )
    await db.flush()
    logger.info(
        "Document purged" if purge else "Document trashed",
        extra={"project_id": project_id, "document_id": doc["id"]},
    )
    return {"ok": True, "id": doc["id"], "purged": purge}


async def restore_document(db: AsyncSession, project_id: UUID, doc_id: str) -> dict:
    base_id = await _resolve_base_id(db, project_id, doc_id)
    rows = await _load_parts(db, project_id, [base_id], only_deleted=True) if base_id else []
    if not rows:
        raise ResourceNotFoundError("Trashed document", doc_id)
    await db.execute(
        update(Document)
        .where(Document.base_id == base_id)
        .values(deleted_at=None, deleted_by=None),
    )
    await db.flush()
    return await get_document(db, project_id, base_id)


# ─── Search & export ─────────────────────────────────────────────

async def _fts_ranked_base_ids(
    db: AsyncSession, project_id: UUID, q: str, limit: int,
) -> list[str]:
    vector = func.to_tsvector(
        "english",
        func.coalesce(Document.title, "") + " " + func.coalesce(Document.body_md, ""),
    )
    query = func.plainto_tsquery("english", q)
    rank = func.max(func.ts_rank(vector, query)).label("rank")
    result = await db.execute(
        select(Document.base_id, rank)
        .where(
            Document.project_id == project_id,
            Document.deleted_at.is_(None),
            vector.op("@@")(query),
        )
        .group_by(Document.base_id)
        .order_by(desc("rank"), desc(func.max(Document.updated_at)))
        .limit(limit),
    )
    return [row[0] for row in result.all()]


async def search_documents(
    db: AsyncSession, project_id: UUID, q: str, limit: int,
) -> list[dict]:
    """Ranked matches with body_md cut to the snippet length."""
    settings = get_settings()
    if db.get_bind().dialect.name == "postgresql":
        order = await _fts_ranked_base_ids(db, project_id, q, limit)
        rows = await _load_parts(db, project_id, order) if order else []
        by_id = {d["id"]: d for d in merge_parts([part_to_dict(r) for r in rows])}
        docs = [by_id[base_id] for base_id in order if base_id in by_id]
    else:
        needle = q.lower()
        docs = [
            d for d in await list_documents(db, project_id)
            if needle in (d["title"] or "").lower() or needle in (d["body_md"] or "").lower()
        ][:limit]
    for doc in docs:
        doc["body_md"] = doc["body_md"][:settings.search_snippet_chars]
    return docs


def iter_export(project: dict, docs: list[dict]) -> Iterator[str]:
    """Serialize {"project": ..., "docs": [...]} one document at a time."""
    yield '{"project": ' + json.dumps(project, ensure_ascii=False) + ', "docs": ['
    for i, doc in enumerate(docs):
        yield ("" if i == 0 else ", ") + json.dumps(doc, ensure_ascii=False)
    yield "]}"
