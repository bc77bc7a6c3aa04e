"""Errors raised inside the chat widget."""

from __future__ import annotations


class ChatWidgetError(Exception):
    """Base widget error."""


class TransportError(ChatWidgetError):
    """The request to the chat endpoint failed or returned no usable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TurnInProgressError(ChatWidgetError):
    """A new turn was submitted while another one is still running."""
