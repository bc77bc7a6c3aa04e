"""
Explicit UI state for one chat widget session.

All mutation goes through the transition methods below; subscribers are
notified synchronously after each one, in order.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from ..models import Message


class TurnStatus(Enum):
    """Lifecycle of a single turn."""
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


Listener = Callable[["ConversationState"], None]


class ConversationState:
    """Conversation, loading flag and open/closed flag of a widget session."""

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._finalized: set[str] = set()
        self._listeners: list[Listener] = []
        self.is_open = False
        self.is_loading = False
        self.status = TurnStatus.IDLE

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def get_message(self, message_id: str) -> Message:
        for message in self._messages:
            if message.id == message_id:
                return message
        raise KeyError(message_id)

    def append_message(self, message: Message) -> None:
        if any(existing.id == message.id for existing in self._messages):
            raise ValueError(f"Duplicate message id: {message.id}")
        self._messages.append(message)
        self._notify()

    def update_message(self, message_id: str, content: str) -> None:
        """Replace the content of a message that has not been finalized."""
        if message_id in self._finalized:
            raise ValueError(f"Message {message_id} is finalized")
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                self._messages[index] = message.model_copy(update={"content": content})
                self._notify()
                return
        raise KeyError(message_id)

    def finalize_message(self, message_id: str) -> None:
        self.get_message(message_id)
        self._finalized.add(message_id)

    def is_finalized(self, message_id: str) -> bool:
        return message_id in self._finalized

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading
        self._notify()

    def set_status(self, status: TurnStatus) -> None:
        self.status = status
        self._notify()

    def toggle_open(self) -> bool:
        self.is_open = not self.is_open
        self._notify()
        return self.is_open
