"""Model provider protocol and the Anthropic implementation."""

import logging
from typing import Any, Protocol

import httpx
from anthropic import AsyncAnthropic
from pydantic import BaseModel, Field

from ..models import ContentBlock, Usage

logger = logging.getLogger(__name__)

# Long generations with extended thinking can take minutes
REQUEST_TIMEOUT_SECONDS = 600.0
CONNECT_TIMEOUT_SECONDS = 10.0


class ModelResponse(BaseModel):
    """One assistant turn as returned by a provider."""

    id: str
    model: str
    content: list[ContentBlock] = Field(default_factory=list)
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: Usage = Field(default_factory=Usage)


class ModelProvider(Protocol):
    """Protocol for model providers."""

    async def create_message(self, params: dict[str, Any]) -> ModelResponse:
        """Send one request and return the assistant turn."""
        ...


class AnthropicProvider:
    """Provider backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        stream: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self.stream = stream
        self._transport = transport
        self._client: AsyncAnthropic | None = None

    def _get_client(self) -> AsyncAnthropic:
        """Get or create the API client."""
        if self._client is None:
            # Retries are handled by with_retry so backoff stays cancellable
            self._client = AsyncAnthropic(
                api_key=self._api_key,
                base_url=self._base_url,
                max_retries=0,
                http_client=httpx.AsyncClient(
                    timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS, connect=CONNECT_TIMEOUT_SECONDS),
                    transport=self._transport,
                ),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.close()
            self._client = None

    async def create_message(self, params: dict[str, Any]) -> ModelResponse:
        client = self._get_client()
        logger.debug("Requesting %s with %d messages", params.get("model"), len(params.get("messages", [])))
        if self.stream:
            async with client.messages.stream(**params) as stream:
                message = await stream.get_final_message()
        else:
            message = await client.messages.create(**params)
        return ModelResponse.model_validate(message.model_dump())
