"""Domain Types — closed vocabularies that replace bare strings across the codebase.

Invariants:
    - All closed vocabularies encoded as str Enums — no raw string matching in services

Design Decisions:
    - str Enums: serialize to JSON without custom encoders and validate as query params
"""

from enum import Enum


# ─── Enums ───────────────────────────────────────────────────────

class ProjectKind(str, Enum):
    """Project hierarchy level — a series groups books via parent_id."""
    BOOK = "book"
    SERIES = "series"


class DocMode(str, Enum):
    """How a paste-save request resolves its target document."""
    CREATE = "create"
    UPDATE = "update"
    UPSERT = "upsert"


class WriteMode(str, Enum):
    """Body write behaviour for updates."""
    OVERWRITE = "overwrite"
    APPEND = "append"


class TagsMode(str, Enum):
    """Tag filter semantics: every requested tag, or at least one."""
    ALL = "all"
    ANY = "any"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class SplitStrategy(str, Enum):
    """How oversized bodies are cut into stored parts."""
    FIXED = "fixed"
    PARAGRAPH = "paragraph"


class StreamEvent(str, Enum):
    """SSE event names for stored-text playback."""
    START = "start"
    DELTA = "delta"
    DONE = "done"
    ERROR = "error"
