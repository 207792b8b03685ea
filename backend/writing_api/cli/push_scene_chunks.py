"""Scene Upload Client — push a long scene file to a running Writing API in pieces.

Invariants:
    - The file is cut with split_paragraphs, which is lossless
    - First piece overwrites (paste-save upsert by scene id), later pieces are
      appended with no separator: the stored body equals the file byte for byte
    - Any non-2xx response aborts the upload with the server's error text

Usage:
    push-scene-chunks --file Scene01.txt --scene-id scn-001 --title "Scene 1" \\
        --project "Shadow of the Crescent" --api http://localhost:8000
"""

import argparse
import logging
import os
import sys
from pathlib import Path

import httpx

from writing_api.core.chunking import split_paragraphs
from writing_api.core.scene_structure import SCENE_DOC_TYPE
from writing_api.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 12_000


class UploadError(RuntimeError):
    """The API refused one of the pieces."""


def _check(response: httpx.Response, step: str) -> dict:
    if response.is_error:
        raise UploadError(f"{step}: HTTP {response.status_code} {response.text[:400]}")
    return response.json()


def push_scene(
    client: httpx.Client,
    *,
    text: str,
    project: str,
    scene_id: str,
    title: str,
    chapter_id: str | None = None,
    max_chars: int = DEFAULT_MAX_CHARS,
) -> dict:
    """Upload text as one scene document. Returns the final merged document."""
    pieces = split_paragraphs(text, max_chars) or [""]
    logger.info(f"Pushing scene in {len(pieces)} piece(s)")

    meta = {"chapter_id": chapter_id} if chapter_id else {}
    result = _check(
        client.post("/api/v1/lyra/paste-save", json={
            "project_name": project,
            "docMode": "upsert",
            "sceneWriteMode": "overwrite",
            "id": scene_id,
            "payload": {
                "doc_type": SCENE_DOC_TYPE,
                "title": title,
                "body_md": pieces[0],
                "tags": [SCENE_DOC_TYPE],
                "meta": meta,
            },
        }),
        "piece 1",
    )
    doc = result["doc"]
    for n, piece in enumerate(pieces[1:], start=2):
        logger.info(f"[{n}/{len(pieces)}] append ({len(piece)} chars)")
        doc = _check(
            client.patch(
                f"/api/v1/docs/{doc['id']}",
                params={"append": "true", "project_name": project},
                json={"body_md": piece},
            ),
            f"piece {n}",
        )
    return doc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="push-scene-chunks", description="Upload a scene file in paragraph-bounded pieces.",
    )
    parser.add_argument("--file", required=True, type=Path)
    parser.add_argument("--scene-id", required=True)
    parser.add_argument("--title", help="Scene title (defaults to the scene id)")
    parser.add_argument("--chapter-id")
    parser.add_argument("--project", default=os.environ.get("DEFAULT_PROJECT_NAME"))
    parser.add_argument("--api", default=os.environ.get("WRITING_API_BASE"))
    parser.add_argument("--token", default=os.environ.get("API_TOKEN"))
    parser.add_argument("--max", dest="max_chars", type=int, default=DEFAULT_MAX_CHARS)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("INFO", "text")
    if not args.api or not args.project:
        logger.error("--api and --project are required (or WRITING_API_BASE / DEFAULT_PROJECT_NAME)")
        return 2

    text = args.file.read_text(encoding="utf-8")
    headers = {"Authorization": f"Bearer {args.token}"} if args.token else {}
    with httpx.Client(base_url=args.api, headers=headers, timeout=60) as client:
        try:
            doc = push_scene(
                client, text=text, project=args.project, scene_id=args.scene_id,
                title=args.title or args.scene_id, chapter_id=args.chapter_id,
                max_chars=args.max_chars,
            )
        except (UploadError, httpx.HTTPError) as e:
            logger.error(f"Upload failed: {e}")
            return 1
    logger.info(f"Done: {doc['id']} ({len(doc['body_md'])} chars)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
