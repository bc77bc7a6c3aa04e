#!/usr/bin/env python3
"""
Tests for the incremental reply renderer and the widget session.
"""

import asyncio
import json

import httpx
import pytest

from conftest import hang_after, iter_chunks, sse_body, upstream_transport
from sparkle_chat.config import DEFAULT_APOLOGY
from sparkle_chat.protocol import encode_finish, encode_text
from sparkle_chat.server import create_app
from sparkle_chat.widget import (
    ChatWidget,
    ConversationState,
    ReplyRenderer,
    TurnInProgressError,
    TurnStatus,
)

ENDPOINT = "http://sparkle.test/api/chat"


def wire(*deltas: str, finish: bool = True) -> bytes:
    body = "".join(encode_text(delta) for delta in deltas)
    if finish:
        body += encode_finish()
    return body.encode("utf-8")


def endpoint_client(
    body: bytes = b"",
    status_code: int = 200,
    chunk_size: int | None = None,
    seen: list | None = None,
    content=None,
) -> httpx.AsyncClient:
    """Client whose chat endpoint answers with a fixed data stream body."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if content is not None:
            stream = content
        elif chunk_size:
            stream = iter_chunks(body, chunk_size)
        else:
            stream = body
        return httpx.Response(
            status_code,
            headers={"content-type": "text/plain; charset=utf-8"},
            content=stream,
        )

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_renderer(client: httpx.AsyncClient) -> ReplyRenderer:
    return ReplyRenderer(client, ConversationState(), endpoint=ENDPOINT)


class TestReplyRenderer:
    """One turn against a mocked endpoint."""

    @pytest.mark.asyncio
    async def test_accumulates_deltas(self):
        renderer = make_renderer(endpoint_client(wire("Yes", ", we", " do.")))
        result = await renderer.send_message("Do you offer carpet cleaning?")

        assert result.content == "Yes, we do."
        assert result.status == TurnStatus.DONE
        assert result.finished

        user, assistant = renderer.state.messages
        assert user.role == "user"
        assert user.content == "Do you offer carpet cleaning?"
        assert assistant.role == "assistant"
        assert assistant.content == "Yes, we do."
        assert renderer.state.is_finalized(assistant.id)
        assert not renderer.state.is_loading

    @pytest.mark.asyncio
    async def test_publishes_after_every_delta(self):
        renderer = make_renderer(endpoint_client(wire("Yes", ", we", " do.")))
        snapshots = []

        def listener(state):
            if state.messages and state.messages[-1].role == "assistant":
                snapshots.append(state.messages[-1].content)

        renderer.state.subscribe(listener)
        await renderer.send_message("Hi")

        progress = [s for i, s in enumerate(snapshots) if i == 0 or s != snapshots[i - 1]]
        assert progress == ["", "Yes", "Yes, we", "Yes, we do."]

    @pytest.mark.asyncio
    async def test_user_message_appended_before_network(self):
        state_at_request = []
        renderer = None

        def handler(request: httpx.Request) -> httpx.Response:
            state_at_request.append([(m.role, m.content) for m in renderer.state.messages])
            return httpx.Response(200, content=wire("ok"))

        renderer = make_renderer(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        await renderer.send_message("Hello")
        assert state_at_request[0] == [("user", "Hello"), ("assistant", "")]

    @pytest.mark.asyncio
    async def test_request_carries_history_without_placeholder(self):
        seen = []
        renderer = make_renderer(endpoint_client(wire("First answer"), seen=seen))
        await renderer.send_message("First question")
        await renderer.send_message("Second question")

        body = json.loads(seen[1].content)
        assert body == {
            "messages": [
                {"role": "user", "content": "First question"},
                {"role": "assistant", "content": "First answer"},
                {"role": "user", "content": "Second question"},
            ]
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chunk_size", [1, 2, 3, 5, 11])
    async def test_chunk_boundaries(self, chunk_size):
        data = wire("Crème", " fraîche", ' "quoted"', "\n✨")
        renderer = make_renderer(endpoint_client(data, chunk_size=chunk_size))
        result = await renderer.send_message("x")
        assert result.content == 'Crème fraîche "quoted"\n✨'

    @pytest.mark.asyncio
    async def test_non_text_lines_ignored(self):
        data = b'2:[{"x":1}]\n' + wire("a") + b"garbage\n" + wire("b")
        renderer = make_renderer(endpoint_client(data))
        result = await renderer.send_message("x")
        assert result.content == "ab"

    @pytest.mark.asyncio
    async def test_stream_end_without_finish_line(self):
        renderer = make_renderer(endpoint_client(wire("partial", finish=False)))
        result = await renderer.send_message("x")
        assert result.status == TurnStatus.DONE
        assert result.content == "partial"
        assert not result.finished

    @pytest.mark.asyncio
    async def test_non_success_shows_apology(self):
        renderer = make_renderer(
            endpoint_client(b'{"error": "Failed to process chat request"}', status_code=502)
        )
        result = await renderer.send_message("x")
        assert result.status == TurnStatus.FAILED
        assert result.content == DEFAULT_APOLOGY
        assert renderer.state.messages[-1].content == DEFAULT_APOLOGY
        assert renderer.state.status == TurnStatus.FAILED
        assert not renderer.state.is_loading

    @pytest.mark.asyncio
    async def test_transport_error_is_contained(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        renderer = make_renderer(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        result = await renderer.send_message("x")
        assert result.status == TurnStatus.FAILED
        assert result.content == DEFAULT_APOLOGY

    @pytest.mark.asyncio
    async def test_status_transitions(self):
        renderer = make_renderer(endpoint_client(wire("ok")))
        statuses = []

        def listener(state):
            if not statuses or statuses[-1] != state.status:
                statuses.append(state.status)

        renderer.state.subscribe(listener)
        await renderer.send_message("x")
        assert statuses == [
            TurnStatus.IDLE,
            TurnStatus.SENDING,
            TurnStatus.STREAMING,
            TurnStatus.DONE,
        ]


class TestEndToEnd:
    """Renderer talking to the real endpoint with a mocked provider."""

    @pytest.mark.asyncio
    async def test_carpet_cleaning(self, configuration):
        upstream = httpx.AsyncClient(
            transport=upstream_transport(body=sse_body(["Yes", ", we", " do."]), chunk_size=7)
        )
        app = create_app(configuration, http_client=upstream)
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://sparkle.test"
        )
        renderer = ReplyRenderer(client, ConversationState(), endpoint="/api/chat")

        result = await renderer.send_message("Do you offer carpet cleaning?")
        await client.aclose()

        assert result.content == "Yes, we do."
        assert result.finished

    @pytest.mark.asyncio
    async def test_upstream_401_ends_in_apology(self, configuration):
        upstream = httpx.AsyncClient(
            transport=upstream_transport(
                status_code=401,
                content_type="application/json",
                body=b'{"error": {"message": "Incorrect API key provided"}}',
            )
        )
        app = create_app(configuration, http_client=upstream)
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://sparkle.test"
        )
        renderer = ReplyRenderer(client, ConversationState(), endpoint="/api/chat")

        result = await renderer.send_message("Do you offer carpet cleaning?")
        await client.aclose()

        assert result.status == TurnStatus.FAILED
        assert result.content == DEFAULT_APOLOGY


class TestChatWidget:
    """Submission gate and cancellation."""

    @pytest.mark.asyncio
    async def test_blank_input_ignored(self):
        widget = ChatWidget(make_renderer(endpoint_client(wire("x"))))
        assert widget.submit("   ") is None
        assert widget.state.messages == ()

    @pytest.mark.asyncio
    async def test_second_submit_while_busy(self):
        widget = ChatWidget(make_renderer(endpoint_client(wire("ok"))))
        task = widget.submit("first")
        with pytest.raises(TurnInProgressError):
            widget.submit("second")
        result = await task
        assert result.content == "ok"
        assert not widget.busy

    @pytest.mark.asyncio
    async def test_cancel_keeps_partial_reply(self):
        client = endpoint_client(content=hang_after(encode_text("Part").encode()))
        widget = ChatWidget(make_renderer(client))
        task = widget.submit("x")

        for _ in range(100):
            if widget.state.messages and widget.state.messages[-1].content == "Part":
                break
            await asyncio.sleep(0.01)

        assert widget.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assistant = widget.state.messages[-1]
        assert assistant.content == "Part"
        assert widget.state.is_finalized(assistant.id)
        assert widget.state.status == TurnStatus.CANCELLED
        assert not widget.state.is_loading
        assert not widget.cancel()

    @pytest.mark.asyncio
    async def test_from_config(self, configuration):
        widget = ChatWidget.from_config(configuration)
        assert widget.renderer.endpoint == "http://sparkle.test/api/chat"
        assert widget.renderer.apology_message == DEFAULT_APOLOGY
        assert widget.toggle() is True
        assert widget.state.is_open
        await widget.aclose()
