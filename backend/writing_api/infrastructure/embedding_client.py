"""Resilient Embedding Client — OpenAI-compatible /embeddings over httpx with retry and batching.

Invariants:
    - Output order matches input order (response items sorted by "index")
    - Inputs sent in batches of at most batch_size
    - 429 and 5xx retried with exponential backoff; other 4xx fail immediately
    - All failures mapped to EmbeddingAPIError (core/errors.py)
    - enabled is False without an API key; embed() then refuses to run

Design Decisions:
    - httpx.AsyncClient per call batch: no long-lived connection state to close on shutdown
    - Same backoff shape as the Anthropic wrapper (±25% jitter)
"""

import asyncio
import logging
import random

import httpx

from writing_api.core.errors import EmbeddingAPIError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class ResilientEmbeddingClient:
    """Embeds texts through an OpenAI-compatible embeddings endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "text-embedding-3-small",
        batch_size: int = 16,
        timeout_seconds: int = 60,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 20_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.url = base_url.rstrip("/") + "/embeddings"
        self.model = model
        self.batch_size = max(batch_size, 1)
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not self.enabled:
            raise EmbeddingAPIError("No embedding API key configured", "disabled")
        if not texts:
            return []
        vectors: list[list[float]] = []
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self.transport,
        ) as client:
            for start in range(0, len(texts), self.batch_size):
                batch = texts[start:start + self.batch_size]
                vectors.extend(await self._embed_batch(client, batch))
        return vectors

    async def _embed_batch(
        self, client: httpx.AsyncClient, batch: list[str],
    ) -> list[list[float]]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {"model": self.model, "input": batch}
        for attempt in range(self.max_retries + 1):
            try:
                response = await client.post(self.url, json=payload, headers=headers)
            except httpx.TimeoutException:
                await self._retry_or_raise("timeout", attempt)
                continue
            except httpx.TransportError as e:
                await self._retry_or_raise(f"connection_error: {e}", attempt)
                continue

            if response.status_code in _RETRYABLE_STATUS:
                await self._retry_or_raise(f"status {response.status_code}", attempt)
                continue
            if response.status_code >= 400:
                raise EmbeddingAPIError(
                    f"status {response.status_code}: {response.text[:200]}",
                    "client_error",
                )
            return self._parse(response, len(batch))
        raise EmbeddingAPIError("retries exhausted", "connection_error")

    def _parse(self, response: httpx.Response, expected: int) -> list[list[float]]:
        try:
            items = response.json()["data"]
            items = sorted(items, key=lambda item: item.get("index", 0))
            vectors = [[float(v) for v in item["embedding"]] for item in items]
        except (ValueError, KeyError, TypeError) as e:
            raise EmbeddingAPIError(f"unexpected payload: {e}", "bad_response")
        if len(vectors) != expected:
            raise EmbeddingAPIError(
                f"expected {expected} vectors, got {len(vectors)}", "bad_response",
            )
        return vectors

    async def _retry_or_raise(self, reason: str, attempt: int) -> None:
        if attempt >= self.max_retries:
            raise EmbeddingAPIError(
                f"failure after {self.max_retries} retries ({reason})",
                "connection_error",
            )
        delay = self._backoff(attempt)
        logger.warning(
            f"Embedding call failed ({reason}), retry after {delay}ms",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311
