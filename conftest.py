"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Iterable

import httpx
import pytest

from sparkle_chat.config import Configuration

UPSTREAM_BASE_URL = "https://upstream.test/v1"
TEST_API_KEY = "sk-test-key"


def sse_event(content: str | None = None, **delta) -> str:
    """One OpenAI-style ``data:`` line with a ``choices[0].delta``."""
    if content is not None:
        delta["content"] = content
    payload = {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }
    return f"data: {json.dumps(payload)}\n\n"


def sse_body(tokens: Iterable[str], done: bool = True) -> bytes:
    """A full upstream SSE body streaming ``tokens``."""
    body = sse_event(role="assistant")
    body += "".join(sse_event(token) for token in tokens)
    if done:
        body += "data: [DONE]\n\n"
    return body.encode("utf-8")


async def iter_chunks(data: bytes, size: int) -> AsyncIterator[bytes]:
    for start in range(0, len(data), size):
        yield data[start:start + size]


async def hang_after(first: bytes) -> AsyncIterator[bytes]:
    """Yield one chunk, then never finish."""
    yield first
    await asyncio.Event().wait()


def upstream_transport(
    body: bytes = b"",
    status_code: int = 200,
    content_type: str = "text/event-stream",
    chunk_size: int | None = None,
    seen: list[httpx.Request] | None = None,
) -> httpx.MockTransport:
    """Mock provider transport answering every request with ``body``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        content = iter_chunks(body, chunk_size) if chunk_size else body
        return httpx.Response(
            status_code, headers={"content-type": content_type}, content=content
        )

    return httpx.MockTransport(handler)


@pytest.fixture
def config_dict() -> dict:
    return {
        "llm": {
            "provider": "openai",
            "base_url": UPSTREAM_BASE_URL,
            "model": "gpt-4o-mini",
            "api_key_env": "OPENAI_API_KEY",
            "connect_timeout": 5.0,
            "read_timeout": 5.0,
        },
        "server": {
            "host": "127.0.0.1",
            "port": 8000,
            "chat_path": "/api/chat",
            "max_duration": 30,
        },
        "widget": {
            "endpoint": "http://sparkle.test/api/chat",
        },
    }


@pytest.fixture
def api_key(monkeypatch) -> str:
    monkeypatch.setenv("OPENAI_API_KEY", TEST_API_KEY)
    return TEST_API_KEY


@pytest.fixture
def configuration(config_dict, api_key) -> Configuration:
    return Configuration.from_dict(config_dict)

