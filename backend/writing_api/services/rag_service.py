"""RAG Service — embedding index maintenance, retrieval, and grounded answering.

Invariants:
    - Indexing a document replaces all of its previous chunks
    - Retrieval only considers chunks of live (not trashed) documents in the project
    - ask/ask_stream never call the chat model with chunks from another project
    - ask_stream yields SSE data frames only: {"delta"}*, then {"done", "used_context"},
      or a single {"error"} frame

Design Decisions:
    - Vectors stored as JSON and ranked in Python (core.vector_math): no database extension
    - Background indexing opens its own session (the request session is closed by then)
      and logs failures instead of raising: a failed index never fails the write
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from writing_api.config import get_settings
from writing_api.core.chunking import paragraph_chunks
from writing_api.core.errors import EmbeddingAPIError, WritingAPIError
from writing_api.core.rag_prompt import build_rag_request, extract_answer_text
from writing_api.core.repository_protocols import ChatClientLike, EmbeddingClientLike
from writing_api.core.sse_format import sse_frame
from writing_api.core.vector_math import rank_top_k
from writing_api.models.document import Document
from writing_api.models.embedding_chunk import EmbeddingChunk
from writing_api.services import document_service

logger = logging.getLogger(__name__)


# ─── Indexing ────────────────────────────────────────────────────

async def delete_document_chunks(db: AsyncSession, project_id: UUID, doc_id: str) -> None:
    await db.execute(
        delete(EmbeddingChunk).where(
            EmbeddingChunk.project_id == project_id, EmbeddingChunk.document_id == doc_id,
        ),
    )


async def index_document(
    db: AsyncSession, embedder: EmbeddingClientLike, project_id: UUID, doc: dict,
) -> int:
    """Embed a merged document paragraph by paragraph. Returns the chunk count."""
    body = doc.get("body_md") or ""
    chunks = paragraph_chunks(body) if body.strip() else []
    vectors = await embedder.embed(chunks) if chunks else []

    await delete_document_chunks(db, project_id, doc["id"])
    chunk_meta = {**(doc.get("meta") or {}), "title": doc["title"], "doc_type": doc["doc_type"]}
    db.add_all([
        EmbeddingChunk(
            project_id=project_id,
            document_id=doc["id"],
            chunk_no=n,
            chunk_text=text,
            embedding=vector,
            meta=chunk_meta,
        )
        for n, (text, vector) in enumerate(zip(chunks, vectors), start=1)
    ])
    await db.flush()
    logger.info(
        "Document indexed",
        extra={"project_id": project_id, "document_id": doc["id"], "chunks": len(chunks)},
    )
    return len(chunks)


async def index_in_background(
    project_id: UUID, doc_id: str, embedder: EmbeddingClientLike,
) -> None:
    """Background task: (re)index one document with its own DB session."""
    from writing_api.infrastructure.database import db_manager

    if not db_manager:
        logger.error(f"Cannot index document {doc_id}: database not initialized")
        return
    try:
        async with db_manager.session() as db:
            doc = await document_service.find_document(db, project_id, doc_id)
            if doc is None:
                logger.warning(f"Document {doc_id} gone before indexing")
                return
            await index_document(db, embedder, project_id, doc)
            await db.commit()
    except WritingAPIError as e:
        logger.warning(
            f"Background indexing failed: {e.message}",
            extra={"project_id": project_id, "document_id": doc_id, "error_code": e.code},
        )


def schedule_indexing(background_tasks, project_id: UUID, doc_id: str, embedder) -> None:
    """Queue indexing when auto-indexing is on and an embedding key is configured."""
    if get_settings().rag_auto_index and embedder.enabled:
        background_tasks.add_task(index_in_background, project_id, doc_id, embedder)


# ─── Retrieval ───────────────────────────────────────────────────

async def retrieve(
    db: AsyncSession,
    embedder: EmbeddingClientLike,
    project_id: UUID,
    question: str,
    top_k: int,
) -> list[dict]:
    if not embedder.enabled:
        raise EmbeddingAPIError("No embedding API key configured", "disabled")
    query_vector = (await embedder.embed([question]))[0]

    live_ids = select(Document.base_id).where(
        Document.project_id == project_id, Document.deleted_at.is_(None),
    )
    result = await db.execute(
        select(EmbeddingChunk)
        .where(
            EmbeddingChunk.project_id == project_id,
            EmbeddingChunk.document_id.in_(live_ids),
        )
        .order_by(EmbeddingChunk.document_id, EmbeddingChunk.chunk_no),
    )
    candidates = [
        (
            row.embedding,
            {
                "document_id": row.document_id,
                "chunk_no": row.chunk_no,
                "chunk_text": row.chunk_text,
                "title": (row.meta or {}).get("title"),
            },
        )
        for row in result.scalars().all()
    ]
    return [
        {**payload, "score": round(score, 6)}
        for score, payload in rank_top_k(query_vector, candidates, top_k)
    ]


def _used_context(chunks: list[dict]) -> list[dict]:
    return [
        {k: c[k] for k in ("document_id", "chunk_no", "title", "score")}
        for c in chunks
    ]


# ─── Answering ───────────────────────────────────────────────────

async def prepare_question(
    db: AsyncSession,
    embedder: EmbeddingClientLike,
    project_id: UUID,
    project_label: str | None,
    question: str,
    history: list[dict] | None = None,
    top_k: int | None = None,
) -> tuple[str, list[dict], list[dict]]:
    """Retrieve context and build (system, messages, chunks) for the chat call."""
    chunks = await retrieve(
        db, embedder, project_id, question, top_k or get_settings().rag_top_k,
    )
    system, messages = build_rag_request(question, chunks, project_label, history)
    return system, messages, chunks


async def ask(
    db: AsyncSession,
    chat: ChatClientLike,
    embedder: EmbeddingClientLike,
    project_id: UUID,
    project_label: str | None,
    question: str,
    history: list[dict] | None = None,
    top_k: int | None = None,
) -> dict:
    settings = get_settings()
    system, messages, chunks = await prepare_question(
        db, embedder, project_id, project_label, question, history, top_k,
    )
    response = await chat.create_message(
        model=settings.chat_model,
        max_tokens=settings.chat_max_tokens,
        system=system,
        messages=messages,
        temperature=settings.chat_temperature,
    )
    return {"answer": extract_answer_text(response), "used_context": _used_context(chunks)}


async def ask_stream(
    chat: ChatClientLike,
    system: str,
    messages: list[dict],
    chunks: list[dict],
    project_id: UUID | None = None,
) -> AsyncIterator[str]:
    """Relay the chat stream as SSE frames. Needs no DB session."""
    settings = get_settings()
    try:
        async with chat.stream_message(
            model=settings.chat_model,
            max_tokens=settings.chat_max_tokens,
            system=system,
            messages=messages,
            temperature=settings.chat_temperature,
        ) as stream:
            async for text in stream.text_stream:
                if text:
                    yield sse_frame({"delta": text})
        yield sse_frame({"done": True, "used_context": _used_context(chunks)})
    except asyncio.CancelledError:
        logger.info("Client disconnected from ask stream", extra={"project_id": project_id})
        raise
    except WritingAPIError as e:
        logger.error(
            f"Ask stream failed: {e.message}",
            extra={"project_id": project_id, "error_code": e.code},
        )
        yield sse_frame(e.to_sse_event())
