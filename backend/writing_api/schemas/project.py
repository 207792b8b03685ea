"""Project Schemas — create/update/confirm bodies and the public project shape.

Invariants:
    - ProjectCreate.name: stripped, non-empty
    - ProjectConfirm needs at least one of id / name / slug
    - ProjectResponse built from ORM rows (from_attributes)
"""

from datetime import datetime
from uuid import UUID

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator,
)

from writing_api.core.domain_types import ProjectKind
from writing_api.schemas.common import ApiModel


class ProjectCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    kind: ProjectKind = ProjectKind.BOOK
    parent_id: UUID | None = Field(
        None, validation_alias=AliasChoices("parent_id", "parentId"),
    )
    parent_name: str | None = Field(
        None, validation_alias=AliasChoices("parent_name", "parentName"),
    )
    description: str | None = None
    require_confirmation: bool = Field(
        True, validation_alias=AliasChoices("require_confirmation", "requireConfirmation"),
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class ProjectUpdate(ApiModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    kind: ProjectKind | None = None
    parent_id: UUID | None = Field(
        None, validation_alias=AliasChoices("parent_id", "parentId"),
    )
    description: str | None = None
    require_confirmation: bool | None = Field(
        None, validation_alias=AliasChoices("require_confirmation", "requireConfirmation"),
    )
    blocked: bool | None = None


class ProjectConfirm(ApiModel):
    """Confirm by id, name, or slug (first one given wins)."""
    id: UUID | None = None
    name: str | None = Field(
        None, validation_alias=AliasChoices("name", "project_name", "projectName"),
    )
    slug: str | None = None

    @model_validator(mode="after")
    def require_identifier(self):
        if not (self.id or self.name or self.slug):
            raise ValueError("one of id, name or slug is required")
        return self


class DefaultProjectSelect(ApiModel):
    project_id: UUID | None = Field(
        None, validation_alias=AliasChoices("project_id", "projectId", "id"),
    )
    project_name: str | None = Field(
        None, validation_alias=AliasChoices("project_name", "projectName", "name"),
    )

    @model_validator(mode="after")
    def require_identifier(self):
        if not (self.project_id or self.project_name):
            raise ValueError("project_id or project_name is required")
        return self


class ProjectResponse(BaseModel):
    """Public project shape."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    kind: str
    parent_id: UUID | None = None
    description: str | None = None
    confirmed: bool
    require_confirmation: bool
    blocked: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
