"""RAG Routes — grounded question answering over a project's embedded documents.

Invariants:
    - Retrieval happens before any byte is streamed: embedding failures are JSON 503s
    - /ask-stream emits data: {"delta"} frames, then data: {"done", "used_context"};
      chat failures mid-stream become a data: {"error"} frame
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.api.dependencies import (
    ProjectHints, get_chat_client, get_embedding_client, project_hints,
    require_api_token, resolve_project,
)
from writing_api.infrastructure.anthropic_client import ResilientAnthropicClient
from writing_api.infrastructure.database import get_db
from writing_api.infrastructure.embedding_client import ResilientEmbeddingClient
from writing_api.schemas.rag import AskRequest
from writing_api.services import rag_service
from writing_api.services.text_stream import SSE_HEADERS

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["rag"], dependencies=[Depends(require_api_token)])


@router.post("/ask")
async def ask(
    body: AskRequest,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
    chat: ResilientAnthropicClient = Depends(get_chat_client),
    embedder: ResilientEmbeddingClient = Depends(get_embedding_client),
):
    project = await resolve_project(db, hints, body.project_id, body.project_name)
    return await rag_service.ask(
        db, chat, embedder, project.id, project.name, body.question,
        [turn.model_dump() for turn in body.history], body.top_k,
    )


@router.post("/ask-stream")
async def ask_stream(
    body: AskRequest,
    hints: ProjectHints = Depends(project_hints),
    db: AsyncSession = Depends(get_db),
    chat: ResilientAnthropicClient = Depends(get_chat_client),
    embedder: ResilientEmbeddingClient = Depends(get_embedding_client),
):
    project = await resolve_project(db, hints, body.project_id, body.project_name)
    system, messages, chunks = await rag_service.prepare_question(
        db, embedder, project.id, project.name, body.question,
        [turn.model_dump() for turn in body.history], body.top_k,
    )
    return StreamingResponse(
        rag_service.ask_stream(chat, system, messages, chunks, project.id),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
