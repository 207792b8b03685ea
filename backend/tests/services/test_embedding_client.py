"""ResilientEmbeddingClient — batching, ordering, retry and error mapping over httpx.

Invariants:
    - Texts sent in batches of batch_size, vectors returned in input order
    - 5xx retried, 4xx (except 429) fails immediately
    - No API key → disabled, embed() raises without any request
"""

import json

import httpx
import pytest

from writing_api.core.errors import EmbeddingAPIError
from writing_api.infrastructure.embedding_client import ResilientEmbeddingClient


def make_client(handler, **kwargs) -> ResilientEmbeddingClient:
    options = dict(
        api_key="sk-test", base_url="https://embed.test/v1/", batch_size=2,
        max_retries=2, base_delay_ms=0, max_delay_ms=0,
    )
    options.update(kwargs)
    return ResilientEmbeddingClient(transport=httpx.MockTransport(handler), **options)


def reversed_payload(request: httpx.Request) -> httpx.Response:
    """Embeddings whose first component is len(text); items listed in reverse order."""
    inputs = json.loads(request.content)["input"]
    data = [
        {"index": i, "embedding": [float(len(text)), 1.0]}
        for i, text in enumerate(inputs)
    ]
    return httpx.Response(200, json={"data": list(reversed(data))})


async def test_batches_and_keeps_order():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        assert request.url == "https://embed.test/v1/embeddings"
        assert request.headers["authorization"] == "Bearer sk-test"
        return reversed_payload(request)

    client = make_client(handler)
    vectors = await client.embed(["a", "bb", "ccc", "dddd", "eeeee"])
    assert [v[0] for v in vectors] == [1.0, 2.0, 3.0, 4.0, 5.0]
    assert [len(body["input"]) for body in seen] == [2, 2, 1]
    assert seen[0]["model"] == "text-embedding-3-small"


async def test_retries_server_errors():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(503)
        return reversed_payload(request)

    vectors = await make_client(handler).embed(["abc"])
    assert vectors == [[3.0, 1.0]]
    assert calls["n"] == 2


async def test_gives_up_after_max_retries():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return httpx.Response(500)

    with pytest.raises(EmbeddingAPIError) as exc:
        await make_client(handler).embed(["abc"])
    assert exc.value.api_error_type == "connection_error"
    assert calls["n"] == 3


async def test_client_error_not_retried():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return httpx.Response(400, json={"error": "bad model"})

    with pytest.raises(EmbeddingAPIError) as exc:
        await make_client(handler).embed(["abc"])
    assert exc.value.api_error_type == "client_error"
    assert calls["n"] == 1


async def test_vector_count_mismatch_is_bad_response():
    def handler(request):
        return httpx.Response(200, json={"data": []})

    with pytest.raises(EmbeddingAPIError) as exc:
        await make_client(handler).embed(["abc"])
    assert exc.value.api_error_type == "bad_response"


async def test_connection_errors_retried():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("refused", request=request)
        return reversed_payload(request)

    assert await make_client(handler).embed(["ab"]) == [[2.0, 1.0]]


async def test_disabled_without_key():
    def handler(request):
        raise AssertionError("no request expected")

    client = make_client(handler, api_key="")
    assert client.enabled is False
    with pytest.raises(EmbeddingAPIError):
        await client.embed(["abc"])


async def test_empty_input_makes_no_request():
    def handler(request):
        raise AssertionError("no request expected")

    assert await make_client(handler).embed([]) == []
