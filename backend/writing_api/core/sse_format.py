"""SSE Formatting — wire encoding for text/event-stream responses.

Invariants:
    - Every frame ends with a blank line
    - Payloads are compact JSON (ensure_ascii=False keeps prose readable)
    - Named events emit an "event:" line; unnamed frames carry only "data:"
"""

import json


def sse_frame(data: dict, event: str | None = None) -> str:
    payload = json.dumps(data, ensure_ascii=False)
    if event:
        return f"event: {event}\ndata: {payload}\n\n"
    return f"data: {payload}\n\n"


def iter_text_slices(text: str, size: int) -> list[str]:
    """Fixed-size slices used for stored-text playback."""
    if size <= 0:
        raise ValueError("size must be positive")
    return [text[i:i + size] for i in range(0, len(text), size)]
