"""Project Routes — create, list, find, confirm, default selection, trash, and restore.

Invariants:
    - Duplicate names (trimmed, case-insensitive) → 409
    - Confirm is idempotent and available by id (path) or by id/name/slug (body)
    - DELETE requires X-Confirm-Name equal to the project name (412 otherwise)
    - Static paths (/find, /confirm, /default...) registered before /{project_id}
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.api.dependencies import (
    get_session_default, require_api_token, set_session_default,
)
from writing_api.core.errors import InvalidRequestError, ResourceNotFoundError
from writing_api.infrastructure.database import get_db
from writing_api.schemas.project import (
    DefaultProjectSelect, ProjectConfirm, ProjectCreate, ProjectUpdate,
)
from writing_api.services import project_service
from writing_api.services.project_service import project_to_dict

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/projects", tags=["projects"],
    dependencies=[Depends(require_api_token)],
)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(body: ProjectCreate, db: AsyncSession = Depends(get_db)):
    project = await project_service.create_project(db, body)
    await db.commit()
    return {"ok": True, "project": project_to_dict(project)}


@router.get("")
async def list_projects(
    q: str | None = Query(None, max_length=200),
    include_deleted: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    projects = await project_service.list_projects(db, q, include_deleted)
    return {"ok": True, "projects": [project_to_dict(p) for p in projects]}


@router.get("/find")
async def find_project(
    name: str | None = Query(None),
    slug: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Look a project up by name (case-insensitive) or slug."""
    if not (name or slug):
        raise InvalidRequestError("name or slug required", "name")
    project = None
    if name:
        project = await project_service.find_project_by_name(db, name)
    if project is None and slug:
        project = await project_service.find_project_by_slug(db, slug)
    if project is None:
        raise ResourceNotFoundError("Project", name or slug or "")
    return {"ok": True, "project": project_to_dict(project)}


@router.post("/confirm")
async def confirm_project_by_body(body: ProjectConfirm, db: AsyncSession = Depends(get_db)):
    project = await project_service.resolve_confirm_target(db, body)
    await project_service.confirm_project(db, project)
    await db.commit()
    return {"ok": True, "project": project_to_dict(project)}


@router.get("/default")
async def get_default_project(db: AsyncSession = Depends(get_db)):
    project_id = get_session_default()
    if project_id is None:
        return {"ok": True, "project": None}
    project = await project_service.get_project(db, project_id)
    return {"ok": True, "project": project_to_dict(project)}


@router.post("/set-default")
async def set_default_project(
    body: DefaultProjectSelect, db: AsyncSession = Depends(get_db),
):
    """Remember a project for requests that name none."""
    if body.project_id:
        project = await project_service.get_project(db, body.project_id)
    else:
        project = await project_service.get_project_by_name(db, body.project_name or "")
    set_session_default(project.id)
    logger.info(f"Default project set: {project.name}", extra={"project_id": project.id})
    return {"ok": True, "project": project_to_dict(project)}


@router.post("/clear-default")
async def clear_default_project():
    set_session_default(None)
    return {"ok": True}


@router.get("/{project_id}")
async def get_project(project_id: UUID, db: AsyncSession = Depends(get_db)):
    project = await project_service.get_project(db, project_id)
    return {"ok": True, "project": project_to_dict(project)}


@router.patch("/{project_id}")
async def update_project(
    project_id: UUID, body: ProjectUpdate, db: AsyncSession = Depends(get_db),
):
    project = await project_service.get_project(db, project_id)
    await project_service.update_project(db, project, body)
    await db.commit()
    return {"ok": True, "project": project_to_dict(project)}


@router.post("/{project_id}/confirm")
async def confirm_project(project_id: UUID, db: AsyncSession = Depends(get_db)):
    project = await project_service.get_project(db, project_id)
    await project_service.confirm_project(db, project)
    await db.commit()
    return {"ok": True, "project": project_to_dict(project)}


@router.delete("/{project_id}")
async def delete_project(
    project_id: UUID,
    cascade: bool = Query(False),
    purge: bool = Query(False),
    x_confirm_name: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """Trash a project (cascade=true also trashes its documents), or purge it."""
    project = await project_service.get_project(db, project_id, include_deleted=purge)
    result = await project_service.delete_project(
        db, project, x_confirm_name, cascade=cascade, purge=purge,
    )
    await db.commit()
    if get_session_default() == project_id:
        set_session_default(None)
    return result


@router.post("/{project_id}/restore")
async def restore_project(project_id: UUID, db: AsyncSession = Depends(get_db)):
    project = await project_service.restore_project(db, project_id)
    await db.commit()
    return {"ok": True, "project": project_to_dict(project)}
