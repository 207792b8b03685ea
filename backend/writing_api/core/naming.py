"""Name normalization — slugs, title/name comparison keys, export filenames."""

import re

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9-]+")


def make_slug(value: str | None) -> str:
    """Lowercase, trim, whitespace runs become '-'."""
    return _WHITESPACE.sub("-", str(value or "").lower().strip())


def normalize_title(value: str | None) -> str:
    """Lowercase, collapse internal whitespace, trim."""
    return _WHITESPACE.sub(" ", str(value or "").lower()).strip()


def name_key(value: str | None) -> str:
    """Comparison key for project names (trimmed, case-insensitive)."""
    return str(value or "").strip().lower()


def export_filename(slug: str | None, name: str | None) -> str:
    base = (slug or name or "project").lower()
    return f"{_NON_SLUG.sub('-', base)}-export.json"


def escape_like(value: str, escape: str = "\\") -> str:
    """Make LIKE wildcards (% and _) match literally."""
    return (
        value.replace(escape, escape * 2).replace("%", escape + "%").replace("_", escape + "_")
    )
