"""Body Chunking — split oversized document bodies into stored parts and merge them back.

Invariants:
    - Pure functions: no IO, no async, no DB
    - split_fixed / split_paragraphs are lossless: "".join(parts) == text
    - Paragraph separators (\\n\\s*\\n) stay attached to the paragraph before them
    - No produced part is longer than max_chars
    - merge_parts orders each document's parts by part_index, never by id string
      (so p10 sorts after p9)

Design Decisions:
    - Stored parts carry base_id/part_index/part_count columns; the "-p<n>" id and
      "(Part <n>)" title suffixes are kept for readability of raw rows only
    - merge_parts reports parts found vs part_count expected but does not reject
      incomplete documents
    - paragraph_chunks is the lossy embedding chunker (stripped paragraphs)
"""

import re

from writing_api.core.domain_types import SplitStrategy

_PARAGRAPH_BREAK = re.compile(r"(\n\s*\n)")
_PART_TITLE_SUFFIX = re.compile(r" \(Part \d+\)$")
_PART_ID_SUFFIX = re.compile(r"-p\d+$")


def split_fixed(text: str, max_chars: int) -> list[str]:
    """Cut text into consecutive slices of at most max_chars."""
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    return [text[i:i + max_chars] for i in range(0, len(text), max_chars)]


def _paragraph_units(text: str) -> list[str]:
    """Paragraphs with their trailing separator attached."""
    pieces = _PARAGRAPH_BREAK.split(text)
    units = []
    for i in range(0, len(pieces), 2):
        unit = pieces[i] + (pieces[i + 1] if i + 1 < len(pieces) else "")
        if unit:
            units.append(unit)
    return units


def split_paragraphs(text: str, max_chars: int) -> list[str]:
    """Pack whole paragraphs into parts of at most max_chars.

    A paragraph longer than max_chars on its own is force-sliced.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    chunks: list[str] = []
    buf = ""
    for unit in _paragraph_units(text):
        if len(buf) + len(unit) <= max_chars:
            buf += unit
            continue
        if buf:
            chunks.append(buf)
            buf = ""
        if len(unit) > max_chars:
            chunks.extend(split_fixed(unit, max_chars))
        else:
            buf = unit
    if buf:
        chunks.append(buf)
    return chunks


def split_body(
    text: str, max_chars: int, strategy: SplitStrategy = SplitStrategy.PARAGRAPH,
) -> list[str]:
    """Return [text] when it fits, otherwise the parts for the given strategy."""
    if len(text) <= max_chars:
        return [text]
    if strategy == SplitStrategy.FIXED:
        return split_fixed(text, max_chars)
    return split_paragraphs(text, max_chars)


def paragraph_chunks(text: str) -> list[str]:
    """Embedding chunks: stripped non-empty paragraphs, or the whole text."""
    paragraphs = [p.strip() for p in re.split(r"\n\s*\n", text)]
    paragraphs = [p for p in paragraphs if p]
    return paragraphs or [text]


# ─── Part naming ─────────────────────────────────────────────────

def part_id(base_id: str, index: int) -> str:
    return f"{base_id}-p{index}"


def looks_like_part_id(doc_id: str) -> bool:
    """True for ids shaped like a generated part id ("<base>-p<n>")."""
    return _PART_ID_SUFFIX.search(doc_id) is not None


def part_title(title: str, index: int) -> str:
    return f"{title} (Part {index})"


def strip_part_suffix(title: str) -> str:
    return _PART_TITLE_SUFFIX.sub("", title or "")


# ─── Reassembly ──────────────────────────────────────────────────

def merge_parts(parts: list[dict]) -> list[dict]:
    """Reassemble stored part rows into logical documents.

    Groups by base_id (first-seen order preserved), concatenates bodies in
    part_index order. Input dicts use the stored-row shape produced by
    services.document_service.part_to_dict.
    """
    groups: dict[str, list[dict]] = {}
    for part in parts:
        groups.setdefault(part["base_id"], []).append(part)

    documents = []
    for base_id, group in groups.items():
        group.sort(key=lambda p: p["part_index"])
        head = group[0]
        chunked = head["part_count"] > 1 or head["part_index"] > 0
        documents.append({
            "id": base_id,
            "project_id": head["project_id"],
            "doc_type": head["doc_type"],
            "title": strip_part_suffix(head["title"]) if chunked else head["title"],
            "body_md": "".join(p["body_md"] or "" for p in group),
            "tags": list(head["tags"] or []),
            "meta": dict(head["meta"] or {}),
            "created_at": min(p["created_at"] for p in group),
            "updated_at": max(p["updated_at"] for p in group),
            "deleted": any(p["deleted_at"] for p in group),
            "parts": len(group),
            "part_count": head["part_count"],
        })
    return documents
