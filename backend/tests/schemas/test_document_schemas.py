"""Tests for request schema aliases and coercion."""

import uuid

import pytest
from pydantic import ValidationError

from writing_api.core.domain_types import DocMode, WriteMode
from writing_api.schemas.document import DocumentCreate, DocumentUpdate, UpdateByTitle
from writing_api.schemas.lyra import PasteSave
from writing_api.schemas.project import ProjectConfirm, ProjectCreate


def test_document_create_aliases():
    project_id = uuid.uuid4()
    doc = DocumentCreate.model_validate({
        "projectId": str(project_id), "docType": "scene", "title": "  Dawn ",
        "content": "Body", "tags": "a, b", "meta": ["not", "a", "dict"],
    })
    assert doc.project_id == project_id
    assert doc.doc_type == "scene"
    assert doc.title == "Dawn"
    assert doc.body_md == "Body"
    assert doc.tags == ["a", "b"]
    assert doc.meta == {}


def test_document_create_defaults():
    doc = DocumentCreate.model_validate({"project": "Crescent", "title": "Dawn"})
    assert doc.project_name == "Crescent"
    assert doc.doc_type == "doc"
    assert doc.body_md == ""


def test_blank_title_rejected():
    with pytest.raises(ValidationError):
        DocumentCreate.model_validate({"title": "   "})


def test_document_update_leaves_omitted_fields_none():
    update = DocumentUpdate.model_validate({"bodyMd": "x"})
    assert update.body_md == "x"
    assert update.tags is None
    assert update.meta is None


def test_update_by_title_mode():
    body = UpdateByTitle.model_validate({"title": "Dawn", "newTitle": "Dusk", "mode": "append"})
    assert body.new_title == "Dusk"
    assert body.mode == WriteMode.APPEND
    with pytest.raises(ValidationError):
        UpdateByTitle.model_validate({"title": "Dawn", "mode": "prepend"})


def test_paste_save_camel_case():
    body = PasteSave.model_validate({
        "docMode": "upsert", "sceneWriteMode": "append", "payload": {"type": "scene"},
    })
    assert body.doc_mode == DocMode.UPSERT
    assert body.scene_write_mode == WriteMode.APPEND
    assert body.payload.doc_type == "scene"


def test_project_confirm_needs_identifier():
    assert ProjectConfirm.model_validate({"projectName": "Crescent"}).name == "Crescent"
    with pytest.raises(ValidationError):
        ProjectConfirm.model_validate({})


def test_project_create_strips_name():
    assert ProjectCreate.model_validate({"name": "  Crescent "}).name == "Crescent"


def test_document_create_rejects_part_shaped_id():
    with pytest.raises(ValidationError):
        DocumentCreate.model_validate({"project": "Crescent", "title": "Saga", "id": "saga-p2"})
    doc = DocumentCreate.model_validate({"project": "Crescent", "title": "Saga", "id": "saga-pilot"})
    assert doc.id == "saga-pilot"
