"""Client-side chat widget: conversation state and the streaming reply renderer."""

from __future__ import annotations

from .exceptions import ChatWidgetError, TransportError, TurnInProgressError
from .renderer import ChatWidget, ReplyRenderer, TurnResult
from .state import ConversationState, TurnStatus

__all__ = [
    "ChatWidget",
    "ChatWidgetError",
    "ConversationState",
    "ReplyRenderer",
    "TransportError",
    "TurnInProgressError",
    "TurnResult",
    "TurnStatus",
]
