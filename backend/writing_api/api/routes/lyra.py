"""Lyra Helper Routes — assistant-friendly wrappers over the document API.

Invariants:
    - Writes (ingest, paste-save) pass the confirmation gate
    - /lyra/read answers {"doc"} for one match, {"docs"} for several, 404 for none
    - /lyra/read-stream is the same handler as /api/v1/read-stream
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.api.dependencies import (
    ProjectHints, get_embedding_client, project_hints, require_api_token, resolve_project,
)
from writing_api.api.routes.documents import read_stream
from writing_api.config import get_settings
from writing_api.core.doc_filters import extract_meta_filters, parse_requested_tags
from writing_api.core.domain_types import TagsMode
from writing_api.infrastructure.database import get_db
from writing_api.infrastructure.embedding_client import ResilientEmbeddingClient
from writing_api.schemas.lyra import IngestRequest, LyraCommand, PasteSave
from writing_api.services import lyra_service, project_service, rag_service

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/lyra", tags=["lyra"], dependencies=[Depends(require_api_token)],
)


@router.get("/modes")
async def modes():
    return lyra_service.modes_descriptor(get_settings().app_version)


@router.post("/ingest")
async def ingest(
    body: IngestRequest,
    background_tasks: BackgroundTasks,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
    embedder: ResilientEmbeddingClient = Depends(get_embedding_client),
):
    """Batch create/update; each item reports its own outcome."""
    project = await resolve_project(db, hints, body.project_id, body.project_name)
    await project_service.ensure_writable(db, project, get_settings().allow_autoconfirm)
    result = await lyra_service.ingest(db, project.id, body.docs)
    await db.commit()
    for doc_id in result.pop("ids"):
        rag_service.schedule_indexing(background_tasks, project.id, doc_id, embedder)
    return result


@router.post("/paste-save")
async def paste_save(
    body: PasteSave,
    background_tasks: BackgroundTasks,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
    embedder: ResilientEmbeddingClient = Depends(get_embedding_client),
):
    project = await resolve_project(db, hints, body.project_id, body.project_name)
    await project_service.ensure_writable(db, project, get_settings().allow_autoconfirm)
    result = await lyra_service.paste_save(db, project.id, body)
    await db.commit()
    rag_service.schedule_indexing(background_tasks, project.id, result["doc"]["id"], embedder)
    return result


@router.get("/read")
async def read(
    request: Request,
    id: str | None = Query(None),
    title: str | None = Query(None),
    ci: bool = Query(False),
    doc_type: str | None = Query(None),
    tag: list[str] | None = Query(None),
    tags: str | None = Query(None),
    tags_mode: TagsMode = Query(TagsMode.ALL, alias="tagsMode"),
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    project = await resolve_project(db, hints)
    return await lyra_service.read(
        db,
        project.id,
        doc_id=id,
        title=title,
        case_insensitive=ci,
        doc_type=doc_type,
        tags=parse_requested_tags(tag, tags),
        tags_mode=tags_mode,
        meta_pairs=extract_meta_filters(request.query_params.multi_items()),
    )


@router.post("/command")
async def command(body: LyraCommand, db: AsyncSession = Depends(get_db)):
    result = await lyra_service.run_command(db, body)
    await db.commit()
    return result


router.add_api_route("/read-stream", read_stream, methods=["GET"])
