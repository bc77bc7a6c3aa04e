"""
Streaming-specific dataclasses for upstream SSE handling.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SSEEventType(Enum):
    """Server-Sent Event types."""
    CHUNK = "chunk"
    COMPLETION = "completion"
    ERROR = "error"


@dataclass(frozen=True)
class RawSSEChunk:
    """Raw SSE event from the upstream response."""
    event_type: SSEEventType
    data: dict[str, Any] | None
    raw_data: str
    error: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class StreamStats:
    """Per-stream counters, one instance per reformatted stream."""
    total_events: int = 0
    content_events: int = 0
    dropped_events: int = 0
    finished: bool = False
    incomplete: bool = False
    first_event_time: float | None = None
    last_event_time: float | None = None

    def update_timing(self, timestamp: float) -> None:
        """Update timing information for latency tracking."""
        if self.first_event_time is None:
            self.first_event_time = timestamp
        self.last_event_time = timestamp
        self.total_events += 1

    @property
    def streaming_duration(self) -> float:
        if self.first_event_time is None or self.last_event_time is None:
            return 0.0
        return self.last_event_time - self.first_event_time
