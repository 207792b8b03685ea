"""Document Filters — in-process title, doc_type, tag and meta filtering of merged documents.

Invariants:
    - Pure functions: no IO, no async, no DB
    - Tags: ALL requires every requested tag, ANY requires at least one
    - No requested tags → input returned unchanged
    - Meta: every (key, value) pair must match by string equality
    - A missing meta key compares as ""

Design Decisions:
    - Filtering runs after reassembly so chunked documents behave like whole ones
    - Dotted meta keys fall back to a nested lookup only when the flat key is absent
      (meta.structure.act matches {"structure": {"act": "I"}})
    - Values stringified JSON-style (true/false, 3 not 3.0) to match query strings
"""

import json
from collections.abc import Iterable

from writing_api.core.domain_types import TagsMode
from writing_api.core.naming import normalize_title

META_PREFIX = "meta."


def parse_requested_tags(tag_values: list[str] | None, tags_csv: str | None) -> list[str]:
    """Merge repeatable ?tag= values with ?tags=a,b,c (deduped, order kept)."""
    wanted = list(tag_values or [])
    if tags_csv:
        wanted.extend(t.strip() for t in tags_csv.split(",") if t.strip())
    return list(dict.fromkeys(wanted))


def filter_by_tags(docs: list[dict], wanted: list[str], mode: TagsMode = TagsMode.ALL) -> list[dict]:
    if not wanted:
        return docs

    def _matches(doc: dict) -> bool:
        doc_tags = doc.get("tags") if isinstance(doc.get("tags"), list) else []
        if mode == TagsMode.ANY:
            return any(t in doc_tags for t in wanted)
        return all(t in doc_tags for t in wanted)

    return [d for d in docs if _matches(d)]


def extract_meta_filters(params: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Pick meta.<key>=<value> pairs out of query parameters."""
    return [
        (key[len(META_PREFIX):], value)
        for key, value in params
        if key.startswith(META_PREFIX) and len(key) > len(META_PREFIX)
    ]


def stringify_meta_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def lookup_meta(meta: dict | None, key: str) -> object:
    meta = meta if isinstance(meta, dict) else {}
    if key in meta or "." not in key:
        return meta.get(key)
    node: object = meta
    for segment in key.split("."):
        if not isinstance(node, dict) or segment not in node:
            return None
        node = node[segment]
    return node


def filter_by_meta(docs: list[dict], pairs: list[tuple[str, str]]) -> list[dict]:
    if not pairs:
        return docs
    return [
        d for d in docs
        if all(
            stringify_meta_value(lookup_meta(d.get("meta"), key)) == str(value)
            for key, value in pairs
        )
    ]


def title_matches(doc_title: str | None, wanted: str, case_insensitive: bool) -> bool:
    if case_insensitive:
        return normalize_title(doc_title) == normalize_title(wanted)
    return doc_title == wanted


def filter_documents(
    docs: list[dict],
    *,
    title: str | None = None,
    case_insensitive: bool = False,
    doc_type: str | None = None,
    tags: list[str] | None = None,
    tags_mode: TagsMode = TagsMode.ALL,
    meta_pairs: list[tuple[str, str]] | None = None,
) -> list[dict]:
    """Apply every filter in turn: title, doc_type, tags, meta."""
    if title:
        docs = [d for d in docs if title_matches(d.get("title"), title, case_insensitive)]
    if doc_type:
        docs = [d for d in docs if d.get("doc_type") == doc_type]
    docs = filter_by_tags(docs, tags or [], tags_mode)
    return filter_by_meta(docs, meta_pairs or [])
