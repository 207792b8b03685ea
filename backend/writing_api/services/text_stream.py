"""Stored-Text Playback — replays a document body as a paced SSE "typing" stream.

Invariants:
    - Event order: start {id, title} → delta {chunk}* → done {bytes}
    - bytes counts the UTF-8 size of the full body
    - Any failure after start becomes a single error event; the stream then ends
    - Client disconnect (CancelledError) ends the generator without an error event
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from writing_api.core.domain_types import StreamEvent
from writing_api.core.sse_format import iter_text_slices, sse_frame

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


async def stream_stored_text(
    doc: dict, chunk_chars: int, interval_ms: int,
) -> AsyncIterator[str]:
    """Yield SSE frames replaying doc["body_md"] in chunk_chars slices."""
    body = doc.get("body_md") or ""
    yield sse_frame({"id": doc["id"], "title": doc["title"]}, StreamEvent.START.value)
    try:
        for chunk in iter_text_slices(body, chunk_chars):
            yield sse_frame({"chunk": chunk}, StreamEvent.DELTA.value)
            if interval_ms > 0:
                await asyncio.sleep(interval_ms / 1000)
        yield sse_frame({"bytes": len(body.encode("utf-8"))}, StreamEvent.DONE.value)
    except asyncio.CancelledError:
        logger.info("Client disconnected from read stream", extra={"document_id": doc["id"]})
        raise
    except Exception as e:
        logger.error(
            f"Read stream failed: {e}", exc_info=True, extra={"document_id": doc["id"]},
        )
        yield sse_frame({"error": "stream failed"}, StreamEvent.ERROR.value)
