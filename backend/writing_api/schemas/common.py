"""Shared schema pieces — project reference fields and meta coercion."""

from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    """Base for request bodies: unknown fields ignored, field names usable directly."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ProjectRef(ApiModel):
    """Optional project reference carried by document write bodies."""
    project_id: UUID | None = Field(
        None, validation_alias=AliasChoices("project_id", "projectId"),
    )
    project_name: str | None = Field(
        None, validation_alias=AliasChoices("project_name", "projectName", "project"),
    )


def coerce_meta(value: object) -> object:
    """Non-object meta values become {}."""
    return value if isinstance(value, dict) else {}


def coerce_tags(value: object) -> object:
    """None → []; a comma string → list; anything else left to validation."""
    if value is None:
        return []
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    return value
