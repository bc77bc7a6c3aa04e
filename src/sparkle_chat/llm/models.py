"""
Core LLM dataclasses for the upstream chat-completions call.

- Provider configuration
- Message and request structures
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProviderType(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"


class MessageRole(Enum):
    """OpenAI-compatible message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class FinishReason(Enum):
    """Finish reasons reported in the data stream."""
    STOP = "stop"


@dataclass(frozen=True)
class LLMMessage:
    """OpenAI-compatible message structure."""
    role: MessageRole
    content: str

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class LLMRequest:
    """Streaming chat-completion request body."""
    model: str
    messages: list[LLMMessage]
    stream: bool = True

    def to_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [message.to_payload() for message in self.messages],
            "stream": self.stream,
        }


@dataclass(frozen=True)
class ProviderConfig:
    """Provider configuration."""
    provider: ProviderType
    base_url: str
    model: str

    # Connection settings
    max_connections: int = 100
    max_keepalive: int = 20
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    write_timeout: float = 10.0
    pool_timeout: float = 10.0

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> ProviderConfig:
        """Build a provider config from the ``llm`` section of config.yaml."""
        known = set(cls.__dataclass_fields__) - {"provider"}
        values = {key: value for key, value in config.items() if key in known}
        return cls(
            provider=ProviderType(config.get("provider", "openai")),
            **values,
        )
