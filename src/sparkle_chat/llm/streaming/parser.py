"""
SSE parser for OpenAI-compatible chat-completion streams.

Turns raw response bytes into typed events. Malformed events are reported
as ERROR events instead of raising so callers can drop them and carry on.
"""

from __future__ import annotations

import json
import time
from collections.abc import AsyncGenerator, AsyncIterable
from typing import Any

from ...protocol import LineDecoder
from ..exceptions import MalformedEventError
from .models import RawSSEChunk, SSEEventType, StreamStats

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class StreamingParser:
    """Line-buffered SSE parser with per-stream statistics."""

    def __init__(self) -> None:
        self.stats = StreamStats()

    async def parse_sse_stream(
        self, chunks: AsyncIterable[bytes]
    ) -> AsyncGenerator[RawSSEChunk]:
        """
        Parse an upstream SSE byte stream into events.

        Stops right after the ``[DONE]`` sentinel; anything the provider sends
        after it is never read. If the byte stream ends first, ``stats``
        is marked incomplete.
        """
        decoder = LineDecoder()

        async for chunk_bytes in chunks:
            for line in decoder.feed(chunk_bytes):
                event = self._parse_line(line)
                if event is None:
                    continue
                yield event
                if event.event_type == SSEEventType.COMPLETION:
                    return

        for line in decoder.flush():
            event = self._parse_line(line)
            if event is None:
                continue
            yield event
            if event.event_type == SSEEventType.COMPLETION:
                return

        self.stats.incomplete = True

    def _parse_line(self, line: str) -> RawSSEChunk | None:
        """Parse one SSE line; blank and non-data lines yield None."""
        if not line.strip() or not line.startswith(DATA_PREFIX):
            return None

        timestamp = time.time()
        self.stats.update_timing(timestamp)
        data_content = line[len(DATA_PREFIX):]

        if data_content == DONE_SENTINEL:
            self.stats.finished = True
            return RawSSEChunk(
                event_type=SSEEventType.COMPLETION,
                data=None,
                raw_data=DONE_SENTINEL,
                timestamp=timestamp,
            )

        try:
            parsed_data = json.loads(data_content)
        except json.JSONDecodeError as e:
            return RawSSEChunk(
                event_type=SSEEventType.ERROR,
                data=None,
                raw_data=data_content,
                error=f"JSON decode error: {e}",
                timestamp=timestamp,
            )

        if not isinstance(parsed_data, dict):
            return RawSSEChunk(
                event_type=SSEEventType.ERROR,
                data=None,
                raw_data=data_content,
                error="Event payload is not a JSON object",
                timestamp=timestamp,
            )

        return RawSSEChunk(
            event_type=SSEEventType.CHUNK,
            data=parsed_data,
            raw_data=data_content,
            timestamp=timestamp,
        )

    def get_stats(self) -> StreamStats:
        return self.stats


def extract_delta_content(event: RawSSEChunk) -> str | None:
    """
    Pull ``choices[0].delta.content`` out of a chunk event.

    Returns None when the chunk carries no text (role-only or finish chunks).

    Raises:
        MalformedEventError: If the event does not have the completion chunk shape.
    """
    data: Any = event.data
    try:
        delta = data["choices"][0]["delta"]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedEventError(
            f"Missing choices[0].delta: {e!r}", raw_data=event.raw_data
        ) from e

    if not isinstance(delta, dict):
        raise MalformedEventError("delta is not an object", raw_data=event.raw_data)

    content = delta.get("content")
    if content is None:
        return None
    if not isinstance(content, str):
        raise MalformedEventError(
            "delta.content is not a string", raw_data=event.raw_data
        )
    return content or None
