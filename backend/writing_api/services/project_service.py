"""Project Service — persistence for projects: create, lookup, confirm, trash, counts.

Invariants:
    - Name uniqueness enforced on name_key (trimmed, lowercased) across live AND trashed projects
    - Lookups by name/slug/id ignore trashed projects unless include_deleted=True
    - Confirmation is idempotent: confirming twice leaves the same flags
    - Service functions flush but never commit; routes own the transaction

Design Decisions:
    - Plain async functions taking the session first (no repository class):
      the service layer stays a set of composable steps
    - Purge deletes embedding chunks and documents explicitly instead of relying on
      FK cascades (SQLite does not enforce them by default)
"""

import logging
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.core.confirmation_gate import check_write_allowed, confirmed_flags
from writing_api.core.errors import (
    ConfirmationMismatchError, ConflictError, ResourceNotFoundError,
)
from writing_api.core.naming import escape_like, make_slug, name_key
from writing_api.db.base import utcnow
from writing_api.models.document import Document
from writing_api.models.embedding_chunk import EmbeddingChunk
from writing_api.models.project import Project
from writing_api.schemas.project import ProjectConfirm, ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)


def project_to_dict(project: Project) -> dict:
    return {
        "id": str(project.id),
        "name": project.name,
        "slug": project.slug,
        "kind": project.kind,
        "parent_id": str(project.parent_id) if project.parent_id else None,
        "description": project.description,
        "confirmed": project.confirmed,
        "require_confirmation": project.require_confirmation,
        "blocked": project.blocked,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
        "deleted_at": project.deleted_at.isoformat() if project.deleted_at else None,
    }


# ─── Lookup ──────────────────────────────────────────────────────

async def get_project(
    db: AsyncSession, project_id: UUID, include_deleted: bool = False,
) -> Project:
    project = await db.get(Project, project_id)
    if project is None or (project.deleted_at is not None and not include_deleted):
        raise ResourceNotFoundError("Project", str(project_id))
    return project


async def find_project_by_name(db: AsyncSession, name: str) -> Project | None:
    result = await db.execute(
        select(Project).where(
            Project.name_key == name_key(name), Project.deleted_at.is_(None),
        ),
    )
    return result.scalar_one_or_none()


async def find_project_by_slug(db: AsyncSession, slug: str) -> Project | None:
    result = await db.execute(
        select(Project)
        .where(Project.slug == make_slug(slug), Project.deleted_at.is_(None))
        .order_by(Project.created_at)
        .limit(1),
    )
    return result.scalar_one_or_none()


async def get_project_by_name(db: AsyncSession, name: str) -> Project:
    project = await find_project_by_name(db, name)
    if project is None:
        raise ResourceNotFoundError("Project", name)
    return project


async def list_projects(
    db: AsyncSession, q: str | None = None, include_deleted: bool = False,
) -> list[Project]:
    query = select(Project).order_by(Project.created_at)
    if not include_deleted:
        query = query.where(Project.deleted_at.is_(None))
    if q:
        needle = f"%{escape_like(q.strip().lower())}%"
        query = query.where(or_(
            func.lower(Project.name).like(needle, escape="\\"),
            Project.slug.like(needle, escape="\\"),
        ))
    result = await db.execute(query)
    return list(result.scalars().all())


# ─── Writes ──────────────────────────────────────────────────────

async def create_project(db: AsyncSession, body: ProjectCreate) -> Project:
    existing = await db.execute(
        select(Project.id).where(Project.name_key == name_key(body.name)),
    )
    if existing.first() is not None:
        raise ConflictError(f"Project '{body.name}' already exists")

    parent_id = body.parent_id
    if parent_id is not None:
        await get_project(db, parent_id)
    elif body.parent_name:
        parent_id = (await get_project_by_name(db, body.parent_name)).id

    project = Project(
        name=body.name,
        name_key=name_key(body.name),
        slug=make_slug(body.slug or body.name),
        kind=body.kind.value,
        parent_id=parent_id,
        description=body.description,
        confirmed=not body.require_confirmation,
        require_confirmation=body.require_confirmation,
        blocked=False,
    )
    db.add(project)
    await db.flush()
    logger.info(f"Project created: {project.name}", extra={"project_id": project.id})
    return project


async def update_project(
    db: AsyncSession, project: Project, body: ProjectUpdate,
) -> Project:
    changes = body.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is not None:
        new_name = changes["name"].strip()
        clash = await db.execute(
            select(Project.id).where(
                Project.name_key == name_key(new_name), Project.id != project.id,
            ),
        )
        if clash.first() is not None:
            raise ConflictError(f"Project '{new_name}' already exists")
        project.name = new_name
        project.name_key = name_key(new_name)
    if changes.get("slug"):
        project.slug = make_slug(changes["slug"])
    if changes.get("kind") is not None:
        project.kind = changes["kind"].value
    if "parent_id" in changes:
        parent_id = changes["parent_id"]
        if parent_id == project.id:
            raise ConflictError("A project cannot be its own parent")
        if parent_id is not None:
            await get_project(db, parent_id)
        project.parent_id = parent_id
    if "description" in changes:
        project.description = changes["description"]
    if changes.get("require_confirmation") is not None:
        project.require_confirmation = changes["require_confirmation"]
    if changes.get("blocked") is not None:
        project.blocked = changes["blocked"]
    project.updated_at = utcnow()
    await db.flush()
    return project


async def confirm_project(db: AsyncSession, project: Project) -> Project:
    for key, value in confirmed_flags().items():
        setattr(project, key, value)
    project.updated_at = utcnow()
    await db.flush()
    logger.info(f"Project confirmed: {project.name}", extra={"project_id": project.id})
    return project


async def resolve_confirm_target(db: AsyncSession, body: ProjectConfirm) -> Project:
    """Find the project named by a confirm request (id, then name, then slug)."""
    if body.id:
        return await get_project(db, body.id)
    if body.name:
        return await get_project_by_name(db, body.name)
    project = await find_project_by_slug(db, body.slug or "")
    if project is None:
        raise ResourceNotFoundError("Project", body.slug or "")
    return project


async def ensure_writable(
    db: AsyncSession, project: Project, allow_autoconfirm: bool,
) -> Project:
    """Apply the confirmation gate before a document write."""
    if check_write_allowed(project, allow_autoconfirm):
        logger.info(
            f"Auto-confirming project {project.name}", extra={"project_id": project.id},
        )
        await confirm_project(db, project)
    return project


async def delete_project(
    db: AsyncSession,
    project: Project,
    confirm_name: str | None,
    cascade: bool = False,
    purge: bool = False,
) -> dict:
    if confirm_name is None or confirm_name.strip() != project.name:
        raise ConfirmationMismatchError("X-Confirm-Name", project.name)

    live_docs = (await db.execute(
        select(func.count(func.distinct(Document.base_id))).where(
            Document.project_id == project.id, Document.deleted_at.is_(None),
        ),
    )).scalar_one()

    if purge:
        await db.execute(delete(EmbeddingChunk).where(EmbeddingChunk.project_id == project.id))
        await db.execute(delete(Document).where(Document.project_id == project.id))
        await db.execute(
            update(Project).where(Project.parent_id == project.id).values(parent_id=None),
        )
        await db.delete(project)
        await db.flush()
        logger.info(f"Project purged: {project.name}", extra={"project_id": project.id})
        return {"ok": True, "purged": True, "id": str(project.id), "docs": live_docs}

    if live_docs and not cascade:
        raise ConflictError(
            f"Project has {live_docs} live document(s); pass cascade=true to trash them too",
        )
    now = utcnow()
    if live_docs:
        await db.execute(
            update(Document)
            .where(Document.project_id == project.id, Document.deleted_at.is_(None))
            .values(deleted_at=now, deleted_by="cascade"),
        )
    project.deleted_at = now
    project.deleted_by = "api"
    await db.flush()
    logger.info(f"Project trashed: {project.name}", extra={"project_id": project.id})
    return {"ok": True, "purged": False, "id": str(project.id), "docs": live_docs}


async def restore_project(db: AsyncSession, project_id: UUID) -> Project:
    """Bring a project back from the trash, with the documents its deletion cascaded."""
    project = await db.get(Project, project_id)
    if project is None or project.deleted_at is None:
        raise ResourceNotFoundError("Trashed project", str(project_id))
    await db.execute(
        update(Document)
        .where(Document.project_id == project.id, Document.deleted_by == "cascade")
        .values(deleted_at=None, deleted_by=None),
    )
    project.deleted_at = None
    project.deleted_by = None
    project.updated_at = utcnow()
    await db.flush()
    return project


async def count_documents(db: AsyncSession, project_id: UUID) -> list[dict]:
    """Live logical documents per doc_type, ordered by doc_type."""
    result = await db.execute(
        select(Document.doc_type, func.count(func.distinct(Document.base_id)))
        .where(Document.project_id == project_id, Document.deleted_at.is_(None))
        .group_by(Document.doc_type)
        .order_by(Document.doc_type),
    )
    return [{"doc_type": doc_type, "count": count} for doc_type, count in result.all()]
