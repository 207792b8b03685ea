"""Scene Routes (/mw) — save scenes by title or structure, list them, build a scenes TOC."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.api.dependencies import (
    ProjectHints, get_embedding_client, project_hints, require_api_token, resolve_project,
)
from writing_api.config import get_settings
from writing_api.infrastructure.database import get_db
from writing_api.infrastructure.embedding_client import ResilientEmbeddingClient
from writing_api.schemas.scene import SaveScene
from writing_api.services import project_service, rag_service, scene_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/mw", tags=["scenes"], dependencies=[Depends(require_api_token)])


@router.post("/save-scene")
async def save_scene(
    body: SaveScene,
    background_tasks: BackgroundTasks,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
    embedder: ResilientEmbeddingClient = Depends(get_embedding_client),
):
    project = await resolve_project(db, hints, body.project_id, body.project_name)
    await project_service.ensure_writable(db, project, get_settings().allow_autoconfirm)
    result = await scene_service.save_scene(db, project.id, body)
    await db.commit()
    rag_service.schedule_indexing(background_tasks, project.id, result["id"], embedder)
    return result


@router.get("/list-scenes")
async def list_scenes(
    act: str | None = Query(None),
    section: str | None = Query(None),
    chapter: str | None = Query(None),
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    project = await resolve_project(db, hints)
    return await scene_service.list_scenes(db, project.id, act, section, chapter)


@router.get("/toc/scenes")
async def toc_scenes(
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
):
    project = await resolve_project(db, hints)
    return await scene_service.toc_scenes(db, project.id)
