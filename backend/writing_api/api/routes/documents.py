"""Document Routes — CRUD, filtered listing, counts, search, export, and stored-text streaming.

Invariants:
    - Every write passes the confirmation gate first (403 blocked, 412 unconfirmed)
    - Responses carry merged documents; part rows never leak
    - Successful writes schedule re-indexing in the background when embeddings are on
    - read-stream resolves the document BEFORE streaming: lookup failures are plain
      JSON 404s, only failures during playback become SSE error events

Design Decisions:
    - Filters (tag/tags/tagsMode/meta.*) applied in-process after reassembly
      (core/doc_filters.py)
    - Export and read-stream generators receive fully loaded data and never touch
      the request's DB session
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.api.dependencies import (
    ProjectHints, get_embedding_client, project_hints, require_api_token, resolve_project,
)
from writing_api.config import get_settings
from writing_api.core.doc_filters import (
    extract_meta_filters, filter_documents, parse_requested_tags,
)
from writing_api.core.domain_types import TagsMode, WriteMode
from writing_api.core.errors import EmbeddingAPIError, InvalidRequestError, ResourceNotFoundError
from writing_api.core.naming import export_filename
from writing_api.infrastructure.database import get_db
from writing_api.infrastructure.embedding_client import ResilientEmbeddingClient
from writing_api.schemas.document import DocumentCreate, DocumentUpdate, UpdateByTitle
from writing_api.services import document_service, project_service, rag_service
from writing_api.services.project_service import project_to_dict
from writing_api.services.text_stream import SSE_HEADERS, stream_stored_text

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1", tags=["documents"], dependencies=[Depends(require_api_token)],
)


# ─── Writes ──────────────────────────────────────────────────────

@router.post("/docs", status_code=status.HTTP_201_CREATED)
async def create_document(
    body: DocumentCreate,
    background_tasks: BackgroundTasks,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
    embedder: ResilientEmbeddingClient = Depends(get_embedding_client),
):
    project = await resolve_project(db, hints, body.project_id, body.project_name)
    await project_service.ensure_writable(db, project, get_settings().allow_autoconfirm)
    doc = await document_service.create_document(
        db, project.id, title=body.title, doc_type=body.doc_type, body_md=body.body_md,
        tags=body.tags, meta=body.meta, doc_id=body.id,
    )
    await db.commit()
    rag_service.schedule_indexing(background_tasks, project.id, doc["id"], embedder)
    return doc


@router.post("/docs/update-by-title")
async def update_by_title(
    body: UpdateByTitle,
    background_tasks: BackgroundTasks,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
    embedder: ResilientEmbeddingClient = Depends(get_embedding_client),
):
    """Update the most recently edited document with the given title."""
    project = await resolve_project(db, hints, body.project_id, body.project_name)
    await project_service.ensure_writable(db, project, get_settings().allow_autoconfirm)
    existing = await document_service.find_by_title(
        db, project.id, body.title, body.ci, body.doc_type,
    )
    if existing is None:
        raise ResourceNotFoundError("Document", body.title)
    doc = await document_service.update_document(
        db, project.id, existing["id"], title=body.new_title, doc_type=body.doc_type,
        body_md=body.body_md, tags=body.tags, meta=body.meta,
        append=body.mode == WriteMode.APPEND, separator="\n",
    )
    await db.commit()
    rag_service.schedule_indexing(background_tasks, project.id, doc["id"], embedder)
    return doc


@router.patch("/docs/{doc_id}")
async def update_document(
    doc_id: str,
    body: DocumentUpdate,
    background_tasks: BackgroundTasks,
    append: bool = Query(False),
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
    embedder: ResilientEmbeddingClient = Depends(get_embedding_client),
):
    """Partial update. append=true concatenates body_md to the stored body as-is."""
    project = await resolve_project(db, hints, body.project_id, body.project_name)
    await project_service.ensure_writable(db, project, get_settings().allow_autoconfirm)
    doc = await document_service.update_document(
        db, project.id, doc_id, title=body.title, doc_type=body.doc_type,
        body_md=body.body_md, tags=body.tags, meta=body.meta, append=append,
    )
    await db.commit()
    rag_service.schedule_indexing(background_tasks, project.id, doc["id"], embedder)
    return doc


@router.delete("/docs/{doc_id}")
async def delete_document(
    doc_id: str,
    purge: bool = Query(False),
    x_confirm_title: str | None = Header(None),
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    project = await resolve_project(db, hints)
    await project_service.ensure_writable(db, project, get_settings().allow_autoconfirm)
    result = await document_service.delete_document(
        db, project.id, doc_id, confirm_title=x_confirm_title, purge=purge,
    )
    await db.commit()
    return result


@router.post("/docs/{doc_id}/restore")
async def restore_document(
    doc_id: str,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    project = await resolve_project(db, hints)
    await project_service.ensure_writable(db, project, get_settings().allow_autoconfirm)
    doc = await document_service.restore_document(db, project.id, doc_id)
    await db.commit()
    return {"ok": True, "doc": doc}


@router.post("/docs/{doc_id}/reindex")
async def reindex_document(
    doc_id: str,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
    embedder: ResilientEmbeddingClient = Depends(get_embedding_client),
):
    if not embedder.enabled:
        raise EmbeddingAPIError("No embedding API key configured", "disabled")
    project = await resolve_project(db, hints)
    doc = await document_service.get_document(db, project.id, doc_id)
    chunks = await rag_service.index_document(db, embedder, project.id, doc)
    await db.commit()
    return {"ok": True, "id": doc["id"], "chunks": chunks}


# ─── Reads ───────────────────────────────────────────────────────

@router.get("/docs")
async def list_documents(
    request: Request,
    doc_type: str | None = Query(None),
    title: str | None = Query(None),
    ci: bool = Query(False),
    tag: list[str] | None = Query(None),
    tags: str | None = Query(None),
    tags_mode: TagsMode = Query(TagsMode.ALL, alias="tagsMode"),
    trashed: bool = Query(False),
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    """List documents; tag, tags, tagsMode and meta.<key> narrow the result."""
    project = await resolve_project(db, hints)
    docs = await document_service.list_documents(
        db, project.id, doc_type=doc_type, only_deleted=trashed,
    )
    docs = filter_documents(
        docs,
        title=title,
        case_insensitive=ci,
        tags=parse_requested_tags(tag, tags),
        tags_mode=tags_mode,
        meta_pairs=extract_meta_filters(request.query_params.multi_items()),
    )
    return {"ok": True, "count": len(docs), "docs": docs}


@router.get("/docs/{doc_id}")
async def get_document(
    doc_id: str,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    project = await resolve_project(db, hints)
    return await document_service.get_document(db, project.id, doc_id)


@router.get("/counts")
async def document_counts(
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    project = await resolve_project(db, hints)
    counts = await project_service.count_documents(db, project.id)
    return {"ok": True, "project_id": str(project.id), "counts": counts}


@router.get("/search")
async def search_documents(
    q: str = Query(min_length=1, max_length=500),
    limit: int | None = Query(None, ge=1),
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    settings = get_settings()
    project = await resolve_project(db, hints)
    hard_limit = min(limit or settings.search_limit_default, settings.search_limit_max)
    docs = await document_service.search_documents(db, project.id, q, hard_limit)
    return {"ok": True, "count": len(docs), "docs": docs}


@router.get("/export")
async def export_project(
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    """Download the project and all of its live documents as one JSON file."""
    project = await resolve_project(db, hints)
    docs = await document_service.list_documents(db, project.id)
    filename = export_filename(project.slug, project.name)
    logger.info(
        f"Exporting {len(docs)} document(s)", extra={"project_id": project.id},
    )
    return StreamingResponse(
        document_service.iter_export(project_to_dict(project), docs),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/read-stream")
async def read_stream(
    id: str | None = Query(None),
    title: str | None = Query(None),
    ci: bool = Query(False),
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    """Replay a stored body as SSE (start, delta..., done)."""
    if not (id or title):
        raise InvalidRequestError("id or title required", "id")
    project = await resolve_project(db, hints)
    if id:
        doc = await document_service.get_document(db, project.id, id)
    else:
        doc = await document_service.find_by_title(db, project.id, title, ci)
        if doc is None:
            raise ResourceNotFoundError("Document", title)
    settings = get_settings()
    return StreamingResponse(
        stream_stored_text(doc, settings.stream_chunk_chars, settings.stream_interval_ms),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
