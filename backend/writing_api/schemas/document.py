"""Document Schemas — create/update bodies for documents.

Invariants:
    - title stripped, non-empty on create
    - meta: non-object values coerced to {}
    - tags: list of strings; a comma string is split
    - A client-chosen id never has the "-p<n>" shape reserved for part rows
    - Responses are the merged-document dicts built by services.document_service
"""

from pydantic import AliasChoices, Field, field_validator

from writing_api.core.chunking import looks_like_part_id
from writing_api.core.domain_types import WriteMode
from writing_api.schemas.common import ProjectRef, coerce_meta, coerce_tags

_DOC_TYPE = AliasChoices("doc_type", "docType", "type")
_BODY = AliasChoices("body_md", "bodyMd", "body", "content")


class DocumentCreate(ProjectRef):
    id: str | None = Field(None, max_length=200)
    doc_type: str = Field("doc", min_length=1, max_length=100, validation_alias=_DOC_TYPE)
    title: str = Field(min_length=1, max_length=480)
    body_md: str = Field("", validation_alias=_BODY)
    tags: list[str] = Field(default_factory=list)
    meta: dict = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def _id(cls, v: str | None) -> str | None:
        if v is not None and looks_like_part_id(v):
            raise ValueError("id cannot end with a part suffix (-p<n>)")
        return v

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty or whitespace")
        return v

    @field_validator("meta", mode="before")
    @classmethod
    def _meta(cls, v):
        return coerce_meta(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        return coerce_tags(v)


class DocumentUpdate(ProjectRef):
    """Partial update; omitted fields stay as stored."""
    doc_type: str | None = Field(None, min_length=1, max_length=100, validation_alias=_DOC_TYPE)
    title: str | None = Field(None, min_length=1, max_length=480)
    body_md: str | None = Field(None, validation_alias=_BODY)
    tags: list[str] | None = None
    meta: dict | None = None

    @field_validator("meta", mode="before")
    @classmethod
    def _meta(cls, v):
        return None if v is None else coerce_meta(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        return None if v is None else coerce_tags(v)


class UpdateByTitle(DocumentUpdate):
    """Locate a document by title (optionally case-insensitive) and update it."""
    title: str = Field(min_length=1, max_length=480)
    new_title: str | None = Field(
        None, max_length=480, validation_alias=AliasChoices("new_title", "newTitle"),
    )
    ci: bool = False
    mode: WriteMode = WriteMode.OVERWRITE
