"""
Chat Service for Sparkle chat.

This module handles the server side of a chat turn:
- Prepending the fixed system prompt to the posted conversation
- Opening one streaming completion request per turn
- Re-encoding the provider's SSE stream as data stream lines

Every call is independent: a ``ReformattedStream`` owns exactly one upstream
response and shares nothing with other turns.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, AsyncIterable, Sequence
from contextlib import aclosing

import httpx
import structlog

from .llm.client import LLMClient
from .llm.exceptions import MalformedEventError
from .llm.models import FinishReason, LLMMessage, LLMRequest, MessageRole
from .llm.streaming.models import SSEEventType
from .llm.streaming.parser import StreamingParser, extract_delta_content
from .logging_utils import log_operation, operation_context
from .models import InboundMessage
from .prompts import SYSTEM_PROMPT
from .protocol import encode_finish, encode_text

logger = structlog.get_logger(__name__)


async def reformat(
    chunks: AsyncIterable[bytes],
    parser: StreamingParser | None = None,
) -> AsyncGenerator[str]:
    """
    Translate an upstream SSE byte stream into data stream lines.

    Yields one ``0:`` line per non-empty delta and a single ``d:`` line when
    the provider sends ``[DONE]``. Malformed events are dropped. If the
    upstream closes without ``[DONE]`` the output just ends.
    """
    parser = parser or StreamingParser()

    async with aclosing(parser.parse_sse_stream(chunks)) as events:
        async for event in events:
            if event.event_type == SSEEventType.COMPLETION:
                yield encode_finish(FinishReason.STOP.value)
                return

            if event.event_type == SSEEventType.ERROR:
                parser.stats.dropped_events += 1
                logger.debug(
                    "Dropped malformed upstream event",
                    error=event.error,
                    raw_data=event.raw_data[:200],
                )
                continue

            try:
                content = extract_delta_content(event)
            except MalformedEventError as e:
                parser.stats.dropped_events += 1
                logger.debug(
                    "Dropped malformed upstream event",
                    error=str(e),
                    raw_data=e.raw_data[:200],
                )
                continue

            if content:
                parser.stats.content_events += 1
                yield encode_text(content)


class ReformattedStream:
    """An open upstream response together with its reformatting state."""

    def __init__(self, response: httpx.Response, request_id: str) -> None:
        self.response = response
        self.request_id = request_id
        self.parser = StreamingParser()
        self._closed = False

    @property
    def stats(self):
        return self.parser.get_stats()

    async def iter_lines(self) -> AsyncGenerator[str]:
        """
        Yield data stream lines, closing the upstream response at the end.

        A transport failure after the first byte was relayed cannot become an
        error response any more; it is logged and the output just ends.
        """
        try:
            async with operation_context(
                "relay_chat_stream", context={"request_id": self.request_id}
            ):
                async with aclosing(
                    reformat(self.response.aiter_bytes(), self.parser)
                ) as lines:
                    async for line in lines:
                        yield line
        except httpx.HTTPError as e:
            logger.warning(
                "Upstream stream failed mid-response",
                request_id=self.request_id,
                error_type=type(e).__name__,
                error_message=str(e),
            )
        finally:
            # Anything short of [DONE] counts as incomplete
            if not self.stats.finished:
                self.stats.incomplete = True
            await self.aclose()
            self._log_summary()

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            await self.response.aclose()

    def _log_summary(self) -> None:
        stats = self.stats
        log_data = {
            "request_id": self.request_id,
            "content_events": stats.content_events,
            "dropped_events": stats.dropped_events,
            "duration_s": round(stats.streaming_duration, 3),
        }
        if stats.incomplete:
            logger.warning("Upstream stream ended before [DONE]", **log_data)
        else:
            logger.info("Upstream stream finished", **log_data)


class ChatService:
    """
    Stream reformatter.

    1. Takes the posted conversation
    2. Puts the Sparkle system prompt in front of it
    3. Opens a streaming completion request
    4. Hands back a stream of data stream lines
    """

    def __init__(self, llm_client: LLMClient, system_prompt: str = SYSTEM_PROMPT):
        self.llm_client = llm_client
        self.system_prompt = system_prompt

    def build_messages(self, conversation: Sequence[InboundMessage]) -> list[LLMMessage]:
        """The system message followed by the normalized conversation."""
        messages = [LLMMessage(role=MessageRole.SYSTEM, content=self.system_prompt)]
        messages.extend(
            LLMMessage(role=MessageRole(message.role), content=message.text())
            for message in conversation
        )
        return messages

    @log_operation("open_chat_stream")
    async def open_stream(
        self, conversation: Sequence[InboundMessage]
    ) -> ReformattedStream:
        """
        Start one turn against the upstream provider.

        Raises:
            UpstreamError: The provider rejected the request.
        """
        request_id = uuid.uuid4().hex
        request = LLMRequest(
            model=self.llm_client.model,
            messages=self.build_messages(conversation),
        )
        logger.info(
            "Forwarding conversation upstream",
            request_id=request_id,
            message_count=len(request.messages),
            model=request.model,
        )
        response = await self.llm_client.open_stream(request)
        return ReformattedStream(response, request_id)
