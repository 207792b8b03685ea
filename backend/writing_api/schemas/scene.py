"""Scene Schemas — /mw save-scene body.

Invariants:
    - structure.act required and non-empty
    - section/chapter/scene accept numbers or strings
"""

from pydantic import BaseModel, Field

from writing_api.schemas.common import ProjectRef


class SceneStructure(BaseModel):
    act: str = Field(min_length=1)
    section: int | str | None = None
    chapter: int | str | None = None
    scene: int | str | None = None


class SaveScene(ProjectRef):
    title: str = Field(min_length=1, max_length=480)
    structure: SceneStructure
    location: str | None = None
    start: str | None = None
    end: str | None = None
    tags: list[str] = Field(default_factory=list)
    notes_append: str | None = None
