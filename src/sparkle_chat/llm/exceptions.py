"""
Error types for upstream LLM operations.

- Provider-specific error information
- Upstream response bodies kept as diagnostic context
- Malformed stream event detection
"""

from __future__ import annotations


class LLMError(Exception):
    """Base LLM error with rich context."""

    def __init__(
        self,
        message: str,
        provider: str,
        model: str,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code


class UpstreamError(LLMError):
    """The provider answered with a non-success status or a non-stream body."""

    def __init__(
        self,
        message: str,
        body: str = "",
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.body = body


class MalformedEventError(LLMError):
    """A single streamed event could not be read as a completion chunk."""

    def __init__(
        self,
        message: str,
        raw_data: str = "",
        provider: str = "unknown",
        model: str = "unknown",
        **kwargs,
    ):
        super().__init__(message, provider, model, **kwargs)
        self.raw_data = raw_data
