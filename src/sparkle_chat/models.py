# src/sparkle_chat/models.py
from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class MessagePart(BaseModel):
    """One segment of a multi-part message. Only text parts carry content."""
    model_config = ConfigDict(extra="allow")

    type: str
    text: str | None = None


class InboundMessage(BaseModel):
    """
    A message as posted to the chat endpoint.

    Content may arrive directly or as a list of typed parts.
    """
    model_config = ConfigDict(extra="ignore")

    role: Role
    content: str | None = None
    parts: list[MessagePart] | None = None

    def text(self) -> str:
        """Normalized content: direct content, else joined text parts, else ''."""
        if self.content:
            return self.content
        if self.parts:
            return "".join(
                part.text or "" for part in self.parts if part.type == "text"
            )
        return ""


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""
    messages: list[InboundMessage]


class Message(BaseModel):
    """
    A message in the widget's conversation.

    Frozen; updates replace the message in the conversation.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    content: str = ""

    @classmethod
    def create(cls, role: Role, content: str = "") -> Message:
        return cls(id=f"{role}-{uuid.uuid4().hex}", role=role, content=content)

    def to_wire(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ErrorBody(BaseModel):
    """JSON body of a failed endpoint response."""
    error: str = Field(..., description="Human-readable failure message")
