"""
Upstream LLM integration.

- Streaming chat-completions client over httpx
- SSE parsing with explicit malformed-event handling
- Typed errors carrying provider diagnostics
"""

from __future__ import annotations

from .client import LLMClient
from .exceptions import LLMError, MalformedEventError, UpstreamError
from .models import (
    FinishReason,
    LLMMessage,
    LLMRequest,
    MessageRole,
    ProviderConfig,
    ProviderType,
)

__all__ = [
    "FinishReason",
    "LLMClient",
    "LLMError",
    "LLMMessage",
    "LLMRequest",
    "MalformedEventError",
    "MessageRole",
    "ProviderConfig",
    "ProviderType",
    "UpstreamError",
]
