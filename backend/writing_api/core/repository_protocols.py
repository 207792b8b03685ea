"""Boundary Protocols — contracts between core/services and the shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - External clients reached only through these Protocol types
    - Implementations injected by the API layer (FastAPI dependencies)

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
"""

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager
from typing import Protocol
from uuid import UUID


class ProjectLike(Protocol):
    """Structural contract for project objects passed to the confirmation gate."""
    id: UUID
    name: str
    confirmed: bool
    require_confirmation: bool
    blocked: bool


class EmbeddingClientLike(Protocol):
    """Turns texts into vectors — implemented by infrastructure.embedding_client."""
    @property
    def enabled(self) -> bool: ...

    async def embed(self, texts: list[str]) -> list[list[float]]: ...


class ChatStreamLike(Protocol):
    """The streaming handle yielded by ChatClientLike.stream_message."""
    @property
    def text_stream(self) -> AsyncIterator[str]: ...


class ChatClientLike(Protocol):
    """Chat completion — implemented by infrastructure.anthropic_client."""
    async def create_message(
        self, *, model: str, max_tokens: int, system: str,
        messages: list[dict], temperature: float,
    ): ...

    def stream_message(
        self, *, model: str, max_tokens: int, system: str,
        messages: list[dict], temperature: float,
    ) -> AbstractAsyncContextManager[ChatStreamLike]: ...
