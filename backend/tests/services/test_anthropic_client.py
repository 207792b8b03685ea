"""ResilientAnthropicClient — retry and error mapping around AsyncAnthropic.

Invariants:
    - 5xx and connection errors retried up to max_retries
    - Rate limits honor Retry-After, then fail as rate_limit
    - Other 4xx errors fail at once as client_error
"""

import httpx
import pytest
from anthropic import (
    APIConnectionError, BadRequestError, InternalServerError, RateLimitError,
)

from writing_api.core.errors import LLMAPIError
from writing_api.infrastructure.anthropic_client import ResilientAnthropicClient

from tests.services.fakes import _Message

REQUEST = httpx.Request("POST", "https://api.anthropic.test/v1/messages")


def status_error(cls, status: int, headers: dict | None = None):
    response = httpx.Response(status, headers=headers or {}, request=REQUEST)
    return cls(f"HTTP {status}", response=response, body=None)


class ScriptedMessages:
    """messages.create replacement raising the scripted errors, then answering."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return _Message("ok")


def make_client(messages: ScriptedMessages, max_retries: int = 2) -> ResilientAnthropicClient:
    client = ResilientAnthropicClient(
        api_key="sk-ant-test", max_retries=max_retries, base_delay_ms=0, max_delay_ms=0,
    )
    client.client.messages = messages
    return client


async def _create(client):
    return await client.create_message(
        model="claude-test", max_tokens=10, system="s",
        messages=[{"role": "user", "content": "hi"}],
    )


async def test_transient_errors_retried():
    messages = ScriptedMessages(
        status_error(InternalServerError, 500), APIConnectionError(request=REQUEST),
    )
    response = await _create(make_client(messages))
    assert response.content[0].text == "ok"
    assert messages.calls == 3


async def test_transient_errors_exhaust_retries():
    messages = ScriptedMessages(*[status_error(InternalServerError, 500)] * 3)
    with pytest.raises(LLMAPIError) as exc:
        await _create(make_client(messages))
    assert exc.value.api_error_type == "connection_error"


async def test_rate_limit_reports_retry_after():
    messages = ScriptedMessages(status_error(RateLimitError, 429, {"retry-after": "0"}))
    with pytest.raises(LLMAPIError) as exc:
        await _create(make_client(messages, max_retries=0))
    assert exc.value.api_error_type == "rate_limit"
    assert exc.value.context.retry_after_ms == 0


async def test_client_error_not_retried():
    messages = ScriptedMessages(status_error(BadRequestError, 400))
    with pytest.raises(LLMAPIError) as exc:
        await _create(make_client(messages))
    assert exc.value.api_error_type == "client_error"
    assert messages.calls == 1
