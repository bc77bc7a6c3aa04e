"""
Line-oriented data stream protocol spoken between the endpoint and the widget.

Each line is ``<code>:<json>``:

    0:"Yes"                                        text delta
    d:{"type":"finish","finishReason":"stop"}      finish marker

Both sides decode their byte streams through :class:`LineDecoder`, which
buffers partial lines and split UTF-8 sequences across chunk boundaries.
"""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from enum import Enum

CONTENT_TYPE = "text/plain; charset=utf-8"
STREAM_HEADER = "X-Vercel-AI-Data-Stream"
STREAM_VERSION = "v1"

TEXT_PREFIX = "0:"
FINISH_PREFIX = "d:"


class PartType(Enum):
    """Kinds of data stream lines the widget understands."""
    TEXT = "text"
    FINISH = "finish"


@dataclass(frozen=True)
class DataStreamPart:
    """One decoded data stream line."""
    type: PartType
    text: str = ""
    finish_reason: str | None = None


def stream_headers() -> dict[str, str]:
    """Response headers that mark a body as a data stream."""
    return {"Content-Type": CONTENT_TYPE, STREAM_HEADER: STREAM_VERSION}


def encode_text(delta: str) -> str:
    """Encode one text delta as a ``0:`` line."""
    return f"{TEXT_PREFIX}{json.dumps(delta, ensure_ascii=False)}\n"


def encode_finish(reason: str = "stop") -> str:
    """Encode the terminal ``d:`` line."""
    payload = {"type": "finish", "finishReason": reason}
    return f"{FINISH_PREFIX}{json.dumps(payload, separators=(',', ':'))}\n"


def parse_line(line: str) -> DataStreamPart | None:
    """Decode a single data stream line.

    Returns None for blank lines, unknown prefixes and undecodable payloads.
    """
    if line.startswith(TEXT_PREFIX):
        try:
            text = json.loads(line[len(TEXT_PREFIX):])
        except json.JSONDecodeError:
            return None
        if not isinstance(text, str):
            return None
        return DataStreamPart(type=PartType.TEXT, text=text)

    if line.startswith(FINISH_PREFIX):
        try:
            payload = json.loads(line[len(FINISH_PREFIX):])
        except json.JSONDecodeError:
            return None
        if not isinstance(payload, dict) or payload.get("type") != "finish":
            return None
        return DataStreamPart(
            type=PartType.FINISH, finish_reason=payload.get("finishReason")
        )

    return None


class LineDecoder:
    """Incremental UTF-8 bytes to lines decoder.

    ``feed`` returns every line completed by the chunk; the unterminated
    tail is held until the next chunk or ``flush``.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        self._buffer += self._decoder.decode(chunk)
        if "\n" not in self._buffer:
            return []
        *lines, self._buffer = self._buffer.split("\n")
        return [line.removesuffix("\r") for line in lines]

    def flush(self) -> list[str]:
        """Return the final unterminated line, if any."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if not tail:
            return []
        return [tail.removesuffix("\r")]
