"""RAG Schemas — question bodies for /ask and /ask-stream."""

from typing import Literal

from pydantic import BaseModel, Field

from writing_api.schemas.common import ProjectRef


class HistoryTurn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str = Field(max_length=50_000)


class AskRequest(ProjectRef):
    question: str = Field(min_length=1, max_length=10_000)
    history: list[HistoryTurn] = Field(default_factory=list)
    top_k: int | None = Field(None, ge=1, le=50)
