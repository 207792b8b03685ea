"""push-scene-chunks — paragraph-bounded upload of a scene file.

Invariants:
    - First piece upserts by scene id, later pieces are appended as-is
    - The server ends up with the file content byte for byte
    - A refused piece aborts with UploadError
"""

import json

import httpx
import pytest

from writing_api.cli.push_scene_chunks import UploadError, main, push_scene

SCENE = "\n\n".join(f"Line {n} of the desert crossing." for n in range(1, 21)) + "\n"


class FakeWritingAPI:
    """Just enough of paste-save and PATCH ?append=true to store one document."""

    def __init__(self, fail_on_patch: int | None = None):
        self.docs: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.patches = 0
        self.fail_on_patch = fail_on_patch

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        if request.url.path == "/api/v1/lyra/paste-save":
            payload = body["payload"]
            doc = {"id": body["id"], "title": payload["title"], "body_md": payload["body_md"]}
            self.docs[doc["id"]] = doc
            return httpx.Response(200, json={"ok": True, "mode": "create", "doc": doc})

        self.patches += 1
        if self.patches == self.fail_on_patch:
            return httpx.Response(412, json={"error": {"code": "PROJECT_NOT_CONFIRMED"}})
        doc_id = request.url.path.rsplit("/", 1)[-1]
        assert request.url.params["append"] == "true"
        self.docs[doc_id]["body_md"] += body["body_md"]
        return httpx.Response(200, json=self.docs[doc_id])


def http_client(api: FakeWritingAPI) -> httpx.Client:
    return httpx.Client(base_url="http://writing.test", transport=httpx.MockTransport(api))


def test_upload_is_lossless():
    api = FakeWritingAPI()
    with http_client(api) as client:
        doc = push_scene(
            client, text=SCENE, project="Crescent", scene_id="scn-001",
            title="Scene 1", chapter_id="ch-01", max_chars=200,
        )
    assert doc["body_md"] == SCENE
    assert api.docs["scn-001"]["body_md"] == SCENE
    assert len(api.requests) > 2

    first = json.loads(api.requests[0].content)
    assert first["docMode"] == "upsert"
    assert first["payload"]["doc_type"] == "scene"
    assert first["payload"]["meta"] == {"chapter_id": "ch-01"}
    assert all(r.method == "PATCH" for r in api.requests[1:])


def test_short_scene_is_one_request():
    api = FakeWritingAPI()
    with http_client(api) as client:
        push_scene(client, text="Short.", project="Crescent", scene_id="scn-002", title="Scene 2")
    assert len(api.requests) == 1


def test_refused_piece_raises():
    api = FakeWritingAPI(fail_on_patch=2)
    with http_client(api) as client, pytest.raises(UploadError) as exc:
        push_scene(
            client, text=SCENE, project="Crescent", scene_id="scn-001",
            title="Scene 1", max_chars=200,
        )
    assert "piece 3" in str(exc.value)
    assert "412" in str(exc.value)


def test_main_requires_api_and_project(tmp_path, monkeypatch):
    monkeypatch.delenv("WRITING_API_BASE", raising=False)
    monkeypatch.delenv("DEFAULT_PROJECT_NAME", raising=False)
    scene = tmp_path / "scene.txt"
    scene.write_text("Short.", encoding="utf-8")
    assert main(["--file", str(scene), "--scene-id", "scn-001"]) == 2
