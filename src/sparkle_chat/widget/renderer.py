"""
Incremental reply renderer.

Sends the conversation to the chat endpoint and folds the returned data
stream into the placeholder assistant message, one state update per delta.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from ..config import DEFAULT_APOLOGY, Configuration
from ..logging_utils import ContextualLogger
from ..models import Message
from ..protocol import LineDecoder, PartType, parse_line
from .exceptions import TransportError, TurnInProgressError
from .state import ConversationState, TurnStatus


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one turn."""
    user_message_id: str
    assistant_message_id: str
    content: str
    status: TurnStatus
    finished: bool = False  # the stream carried an explicit finish line


class ReplyRenderer:
    """Runs turns against the chat endpoint and renders replies into state."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        state: ConversationState,
        endpoint: str = "/api/chat",
        apology_message: str = DEFAULT_APOLOGY,
    ) -> None:
        self.client = client
        self.state = state
        self.endpoint = endpoint
        self.apology_message = apology_message
        self._log = ContextualLogger({"component": "reply_renderer"})

    async def send_message(self, text: str) -> TurnResult:
        """
        Run one turn for ``text``.

        Transport failures are contained: the placeholder shows the apology
        and the result has status FAILED. Cancellation keeps whatever text
        arrived, marks the turn CANCELLED and re-raises.
        """
        history = [message.to_wire() for message in self.state.messages]

        user_message = Message.create("user", text)
        self.state.append_message(user_message)
        self.state.set_loading(True)

        assistant_message = Message.create("assistant")
        self.state.append_message(assistant_message)
        assistant_id = assistant_message.id

        payload = {"messages": [*history, user_message.to_wire()]}
        log = self._log.bind(assistant_id=assistant_id)

        accumulated = ""
        finished = False
        status = TurnStatus.SENDING
        self.state.set_status(status)

        try:
            async with self.client.stream(
                "POST", self.endpoint, json=payload
            ) as response:
                if not response.is_success:
                    raise TransportError(
                        f"Chat endpoint returned {response.status_code}",
                        status_code=response.status_code,
                    )

                status = TurnStatus.STREAMING
                self.state.set_status(status)

                decoder = LineDecoder()
                async for chunk in response.aiter_bytes():
                    for line in decoder.feed(chunk):
                        accumulated, finished = self._apply_line(
                            line, assistant_id, accumulated, finished
                        )
                for line in decoder.flush():
                    accumulated, finished = self._apply_line(
                        line, assistant_id, accumulated, finished
                    )

            status = TurnStatus.DONE
            if not finished:
                log.warning("Reply stream ended without finish line")

        except (httpx.HTTPError, TransportError) as e:
            log.error(
                "Chat turn failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            accumulated = self.apology_message
            self.state.update_message(assistant_id, accumulated)
            status = TurnStatus.FAILED

        except asyncio.CancelledError:
            log.info("Chat turn cancelled", received_chars=len(accumulated))
            status = TurnStatus.CANCELLED
            raise

        finally:
            self.state.finalize_message(assistant_id)
            self.state.set_status(status)
            self.state.set_loading(False)

        return TurnResult(
            user_message_id=user_message.id,
            assistant_message_id=assistant_id,
            content=accumulated,
            status=status,
            finished=finished,
        )

    def _apply_line(
        self, line: str, assistant_id: str, accumulated: str, finished: bool
    ) -> tuple[str, bool]:
        part = parse_line(line)
        if part is None:
            return accumulated, finished
        if part.type == PartType.FINISH:
            return accumulated, True

        accumulated += part.text
        self.state.update_message(assistant_id, accumulated)
        return accumulated, finished


class ChatWidget:
    """
    One widget session: state, renderer and the in-flight turn.

    Only one turn runs at a time; ``cancel`` interrupts it.
    """

    def __init__(self, renderer: ReplyRenderer) -> None:
        self.renderer = renderer
        self.state = renderer.state
        self._task: asyncio.Task[TurnResult] | None = None

    @classmethod
    def from_config(
        cls, configuration: Configuration, client: httpx.AsyncClient | None = None
    ) -> ChatWidget:
        widget_config = configuration.get_widget_config()
        client = client or httpx.AsyncClient(timeout=widget_config["timeout"])
        renderer = ReplyRenderer(
            client,
            ConversationState(),
            endpoint=widget_config["endpoint"],
            apology_message=widget_config["apology_message"],
        )
        return cls(renderer)

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, text: str) -> asyncio.Task[TurnResult] | None:
        """
        Start a turn for ``text``.

        Blank input is ignored and returns None.

        Raises:
            TurnInProgressError: A turn is already running.
        """
        if not text.strip():
            return None
        if self.busy or self.state.is_loading:
            raise TurnInProgressError("A reply is still streaming")
        self._task = asyncio.create_task(self.renderer.send_message(text))
        return self._task

    def cancel(self) -> bool:
        """Cancel the in-flight turn; returns False if nothing was running."""
        if not self.busy:
            return False
        return self._task.cancel()

    def toggle(self) -> bool:
        return self.state.toggle_open()

    async def aclose(self) -> None:
        self.cancel()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        await self.renderer.client.aclose()
