"""
Direct HTTP client for the upstream chat-completions provider.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import structlog

from .exceptions import UpstreamError
from .models import LLMRequest, ProviderConfig

HTTP_OK = 200
STREAM_CONTENT_TYPES = ("text/event-stream", "stream")

logger = structlog.get_logger(__name__)


class LLMClient:
    """HTTP client for streaming completion requests.

    The API key is resolved through ``api_key_provider`` on every request.
    """

    def __init__(
        self,
        config: dict[str, Any],
        api_key_provider: Callable[[], str],
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        required_keys = ["base_url", "model"]
        for key in required_keys:
            if key not in config:
                raise ValueError(
                    f"Required LLM configuration parameter '{key}' not found. "
                    "All LLM parameters must be explicitly configured."
                )

        self.provider_config = ProviderConfig.from_dict(config)
        self.api_key_provider = api_key_provider
        self._owns_client = http_client is None
        self.client: httpx.AsyncClient = http_client or self._build_client()

    def _build_client(self) -> httpx.AsyncClient:
        cfg = self.provider_config
        return httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=cfg.connect_timeout,
                read=cfg.read_timeout,
                write=cfg.write_timeout,
                pool=cfg.pool_timeout,
            ),
            limits=httpx.Limits(
                max_connections=cfg.max_connections,
                max_keepalive_connections=cfg.max_keepalive,
            ),
        )

    @property
    def model(self) -> str:
        return self.provider_config.model

    @property
    def completions_url(self) -> str:
        return f"{self.provider_config.base_url.rstrip('/')}/chat/completions"

    async def open_stream(self, request: LLMRequest) -> httpx.Response:
        """
        Send a streaming completion request and return the open response.

        The status and content type are checked before returning, so callers
        never start relaying a stream that the provider has already failed.
        The caller owns the returned response and must ``aclose`` it.

        Raises:
            UpstreamError: Non-success status or a non-streaming body.
            ValueError: The API key is not configured.
        """
        headers = {"Authorization": f"Bearer {self.api_key_provider()}"}
        http_request = self.client.build_request(
            "POST", self.completions_url, json=request.to_payload(), headers=headers
        )
        response = await self.client.send(http_request, stream=True)
        logger.debug(
            "Upstream responded",
            status_code=response.status_code,
            model=self.model,
        )

        if response.status_code != HTTP_OK:
            try:
                error_text = (await response.aread()).decode("utf-8", "replace")
            finally:
                await response.aclose()
            raise UpstreamError(
                f"Streaming API error {response.status_code}",
                body=error_text,
                provider=self.provider_config.provider.value,
                model=self.model,
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "")
        if not any(t in content_type for t in STREAM_CONTENT_TYPES):
            await response.aclose()
            raise UpstreamError(
                f"Expected streaming response, got content-type: {content_type}",
                provider=self.provider_config.provider.value,
                model=self.model,
                status_code=response.status_code,
            )

        return response

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()
