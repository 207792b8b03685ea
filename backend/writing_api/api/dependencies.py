"""API Dependencies — auth, external clients, and project resolution shared by all routers.

Invariants:
    - With API_TOKEN unset every route is open; with it set, a matching token is
      required (Bearer header, X-API-Token header, or api_token query), compared in
      constant time
    - Project resolution order: body id → body name → query id → query name →
      X-Project-Id header → session default → DEFAULT_PROJECT_ID / DEFAULT_PROJECT_NAME
    - The first source that names a project decides: a named project that does not
      exist is a 404, never a fall-through to the next source
    - Nothing resolvable → 400

Design Decisions:
    - Client singletons created lazily; tests swap them through dependency_overrides
    - _session_default is a module-level holder: single process, lost on restart
"""

import hmac
import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.config import get_settings
from writing_api.core.errors import InvalidRequestError, UnauthorizedError
from writing_api.infrastructure.anthropic_client import ResilientAnthropicClient
from writing_api.infrastructure.embedding_client import ResilientEmbeddingClient
from writing_api.models.project import Project
from writing_api.services import project_service

logger = logging.getLogger(__name__)


# ─── Auth ────────────────────────────────────────────────────────

def _bearer(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None


async def require_api_token(
    authorization: str | None = Header(None),
    x_api_token: str | None = Header(None),
    api_token: str | None = Query(None),
) -> None:
    expected = get_settings().api_token
    if not expected:
        return
    supplied = _bearer(authorization) or x_api_token or api_token or ""
    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        raise UnauthorizedError()


# ─── External clients ────────────────────────────────────────────

_chat_client: ResilientAnthropicClient | None = None
_embedding_client: ResilientEmbeddingClient | None = None


def get_chat_client() -> ResilientAnthropicClient:
    global _chat_client
    if _chat_client is None:
        settings = get_settings()
        _chat_client = ResilientAnthropicClient(
            api_key=settings.anthropic_api_key,
            max_retries=settings.anthropic_max_retries,
            base_delay_ms=settings.anthropic_base_delay_ms,
            max_delay_ms=settings.anthropic_max_delay_ms,
            timeout_seconds=settings.anthropic_timeout_seconds,
        )
    return _chat_client


def get_embedding_client() -> ResilientEmbeddingClient:
    global _embedding_client
    if _embedding_client is None:
        settings = get_settings()
        _embedding_client = ResilientEmbeddingClient(
            api_key=settings.embedding_api_key,
            base_url=settings.embedding_base_url,
            model=settings.embedding_model,
            batch_size=settings.embedding_batch_size,
            timeout_seconds=settings.embedding_timeout_seconds,
            max_retries=settings.embedding_max_retries,
        )
    return _embedding_client


# ─── Project resolution ──────────────────────────────────────────

_session_default: dict[str, UUID | None] = {"project_id": None}


def set_session_default(project_id: UUID | None) -> None:
    _session_default["project_id"] = project_id


def get_session_default() -> UUID | None:
    return _session_default["project_id"]


@dataclass
class ProjectHints:
    """Project identifiers found outside the request body."""
    query_id: UUID | None = None
    query_name: str | None = None
    header_id: str | None = None


def project_hints(
    project_id: UUID | None = Query(None),
    project_name: str | None = Query(None),
    x_project_id: str | None = Header(None),
) -> ProjectHints:
    return ProjectHints(query_id=project_id, query_name=project_name, header_id=x_project_id)


def _parse_uuid(value: str, source: str) -> UUID:
    try:
        return UUID(value.strip())
    except ValueError:
        raise InvalidRequestError(f"{source} is not a valid project id", source)


async def resolve_project(
    db: AsyncSession,
    hints: ProjectHints,
    body_id: UUID | None = None,
    body_name: str | None = None,
) -> Project:
    """Find the project a request targets (see module docstring for the order)."""
    settings = get_settings()
    if body_id:
        return await project_service.get_project(db, body_id)
    if body_name:
        return await project_service.get_project_by_name(db, body_name)
    if hints.query_id:
        return await project_service.get_project(db, hints.query_id)
    if hints.query_name:
        return await project_service.get_project_by_name(db, hints.query_name)
    if hints.header_id:
        return await project_service.get_project(
            db, _parse_uuid(hints.header_id, "X-Project-Id"),
        )
    if get_session_default():
        return await project_service.get_project(db, get_session_default())
    if settings.default_project_id:
        return await project_service.get_project(
            db, _parse_uuid(settings.default_project_id, "DEFAULT_PROJECT_ID"),
        )
    if settings.default_project_name:
        return await project_service.get_project_by_name(db, settings.default_project_name)
    raise InvalidRequestError("project_id or project_name required", "project_name")
