"""
HTTP endpoint for the Sparkle chat widget.

``POST /api/chat`` accepts ``{"messages": [...]}`` and answers with the data
stream. Any failure before the stream starts becomes a JSON
``{"error": ...}`` response; the upstream status is always checked before
the first byte is sent.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from .chat_service import ChatService
from .config import Configuration
from .llm.client import LLMClient
from .logging_utils import ChatErrorHandler
from .models import ChatRequest, ErrorBody
from .protocol import CONTENT_TYPE, stream_headers

logger = structlog.get_logger(__name__)


async def relay_with_deadline(
    lines: AsyncGenerator[str], max_duration: float
) -> AsyncGenerator[str]:
    """
    Relay ``lines`` until they end or ``max_duration`` seconds have passed.

    On expiry the pending read is cancelled, which closes the upstream
    response, and the output simply ends.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + max_duration
    try:
        while True:
            remaining = max(deadline - loop.time(), 0)
            try:
                line = await asyncio.wait_for(anext(lines), timeout=remaining)
            except StopAsyncIteration:
                return
            except TimeoutError:
                logger.warning(
                    "Chat turn exceeded max duration, closing stream",
                    max_duration=max_duration,
                )
                return
            yield line
    finally:
        await lines.aclose()


def create_app(
    configuration: Configuration | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    ``http_client`` is used for upstream calls when given (tests pass one
    backed by ``httpx.MockTransport``); otherwise a pooled client is created
    here and closed when the app shuts down.
    """
    configuration = configuration or Configuration()
    llm_config = configuration.get_llm_config()
    server_config = configuration.get_server_config()
    chat_path = server_config.get("chat_path", "/api/chat")
    max_duration = float(server_config["max_duration"])

    llm_client = LLMClient(
        llm_config,
        api_key_provider=lambda: configuration.llm_api_key,
        http_client=http_client,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Chat endpoint ready",
            path=chat_path,
            model=llm_client.model,
            max_duration=max_duration,
        )
        try:
            yield
        finally:
            await llm_client.close()

    app = FastAPI(title="Sparkle Chat", lifespan=lifespan)
    app.state.chat_service = ChatService(llm_client)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("Rejected chat request", errors=exc.errors())
        return JSONResponse({"error": "Invalid chat request"}, status_code=400)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        return ChatErrorHandler.error_response(
            exc, "unhandled", context={"path": request.url.path}
        )

    @app.post(
        chat_path,
        response_class=StreamingResponse,
        responses={
            200: {"content": {CONTENT_TYPE: {}}},
            400: {"model": ErrorBody},
            500: {"model": ErrorBody},
            502: {"model": ErrorBody},
        },
    )
    async def chat(body: ChatRequest, request: Request):
        service: ChatService = request.app.state.chat_service
        try:
            stream = await service.open_stream(body.messages)
        except Exception as e:
            return ChatErrorHandler.error_response(
                e, "chat", context={"message_count": len(body.messages)}
            )

        return StreamingResponse(
            relay_with_deadline(stream.iter_lines(), max_duration),
            headers=stream_headers(),
            media_type=CONTENT_TYPE,
            background=BackgroundTask(stream.aclose),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
