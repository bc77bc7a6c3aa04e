"""
Streaming functionality for the upstream client.

- SSE parsing
- Delta extraction
- Per-stream statistics
"""

from __future__ import annotations

from .models import RawSSEChunk, SSEEventType, StreamStats
from .parser import StreamingParser, extract_delta_content

__all__ = [
    "RawSSEChunk",
    "SSEEventType",
    "StreamStats",
    "StreamingParser",
    "extract_delta_content",
]
