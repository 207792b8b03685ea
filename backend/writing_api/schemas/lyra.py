"""Lyra Helper Schemas — batch ingest, paste-save and command bodies.

Invariants:
    - IngestRequest.docs items validated individually by the service, so one bad
      item yields a per-item error instead of failing the batch
    - PasteSave.payload reuses the document create shape
"""

from pydantic import AliasChoices, Field

from writing_api.core.domain_types import DocMode, WriteMode
from writing_api.schemas.common import ApiModel, ProjectRef


class IngestRequest(ProjectRef):
    docs: list[dict] = Field(default_factory=list)


class PastePayload(ApiModel):
    doc_type: str | None = Field(
        None, max_length=100, validation_alias=AliasChoices("doc_type", "docType", "type"),
    )
    title: str | None = Field(None, max_length=480)
    body_md: str = Field(
        "", validation_alias=AliasChoices("body_md", "bodyMd", "body", "content"),
    )
    tags: list[str] | None = None
    meta: dict | None = None


class PasteSave(ProjectRef):
    doc_mode: DocMode = Field(
        DocMode.CREATE, validation_alias=AliasChoices("doc_mode", "docMode"),
    )
    scene_write_mode: WriteMode = Field(
        WriteMode.OVERWRITE,
        validation_alias=AliasChoices("scene_write_mode", "sceneWriteMode"),
    )
    id: str | None = None
    payload: PastePayload = Field(default_factory=PastePayload)


class LyraCommand(ApiModel):
    command: str = Field(min_length=1)
    args: dict = Field(default_factory=dict)
