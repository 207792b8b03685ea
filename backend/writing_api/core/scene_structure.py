"""Scene Structure — act/section/chapter/scene addressing, TOC paths, natural ordering.

Invariants:
    - Pure functions: no IO, no async, no DB
    - toc_path omits absent levels and joins present ones with " > "
    - section/chapter become ints when numeric; scene is always a string
    - scene_sort_key orders numerically inside strings ("Scene 2" before "Scene 10")
"""

import re

_DIGITS = re.compile(r"(\d+)")

SCENE_DOC_TYPE = "scene"
_LEVELS = (("act", "Act"), ("section", "Section"), ("chapter", "Chapter"), ("scene", "Scene"))


def _as_number_or_text(value: object) -> object:
    text = str(value).strip()
    return int(text) if text.isdigit() else value


def normalize_structure(
    act: str,
    section: int | str | None = None,
    chapter: int | str | None = None,
    scene: int | str | None = None,
) -> dict:
    """Build the meta.structure object stored on scene documents."""
    structure: dict[str, object] = {"act": act}
    if section is not None:
        structure["section"] = _as_number_or_text(section)
    if chapter is not None:
        structure["chapter"] = _as_number_or_text(chapter)
    if scene is not None:
        structure["scene"] = str(scene)
    return structure


def toc_path(structure: dict | None) -> str:
    structure = structure or {}
    parts = []
    for key, label in _LEVELS:
        value = structure.get(key)
        if value is None or (key == "act" and not value):
            continue
        parts.append(f"{label} {value}")
    return " > ".join(parts)


def scene_tags(act: str | None, extra: list[str] | None = None) -> list[str]:
    """'scene' + 'Act <act>' + caller tags, deduped in that order."""
    tags = ["scene"]
    if act:
        tags.append(f"Act {act}")
    tags.extend(extra or [])
    return list(dict.fromkeys(tags))


def structure_matches(structure: dict | None, wanted: dict) -> bool:
    """Every given level must match (string comparison)."""
    structure = structure or {}
    return all(
        str(structure.get(key, "")) == str(value)
        for key, value in wanted.items()
        if value is not None
    )


def _natural(text: str) -> list:
    return [int(tok) if tok.isdigit() else tok.lower() for tok in _DIGITS.split(text)]


def scene_sort_key(doc: dict) -> list:
    """Compare act, section, chapter, scene level by level."""
    structure = (doc.get("meta") or {}).get("structure") or {}
    scene = structure.get("scene")
    return [
        _natural(str(structure.get("act") or "")),
        _natural(str(structure.get("section") or 0)),
        _natural(str(structure.get("chapter") or 0)),
        _natural(str(scene) if scene is not None else ""),
    ]


def toc_line(doc: dict) -> str:
    structure = (doc.get("meta") or {}).get("structure") or {}
    return f"{toc_path(structure)} — {doc.get('title')} ({doc.get('id')})"
