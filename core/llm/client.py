"""
Model-call wrapper.

ModelClient turns a wire-normalized transcript into one assistant message.
It retries transient failures, charges every completed call to the
session's CostTracker and converts every failure into an assistant message
flagged as an API error, so callers never see an exception.
"""

import asyncio
import logging
import time
from typing import Any, Sequence

import anthropic

from config.defaults import VERIFY_API_KEY_MAX_RETRIES
from config.main_config import GlobalConfig

from ..abort import AbortSignal, race_abort
from ..constants import PRODUCT_NAME
from ..cost_tracker import CostTracker
from ..messages import create_assistant_message, create_user_message, new_uuid
from ..models import APIAssistantMessage, AssistantMessage, UserMessage
from ..normalization import normalize_content_from_api
from ..tools import Tool
from .convert import (
    messages_to_params,
    prompt_caching_enabled,
    system_to_params,
    tool_to_param,
)
from .costs import calculate_cost
from .errors import get_assistant_message_from_error
from .provider import AnthropicProvider, ModelProvider, ModelResponse
from .retry import SleepFn, with_retry

logger = logging.getLogger(__name__)

MAIN_QUERY_TEMPERATURE = 1
IDENTITY_PROMPT = f"You are {PRODUCT_NAME}, a command line assistant for software engineering tasks."


class ModelClient:
    """
    Session-scoped wrapper around a model provider.

    Args:
        provider: Provider that performs the network call
        cost_tracker: Session accumulator charged for every completed call
        config: Global config supplying model names and token limits
        sleep: Backoff sleep function, in seconds
    """

    def __init__(
        self,
        provider: ModelProvider,
        cost_tracker: CostTracker,
        config: GlobalConfig | None = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.provider = provider
        self.cost_tracker = cost_tracker
        self.config = config or GlobalConfig()
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: GlobalConfig, cost_tracker: CostTracker) -> "ModelClient":
        provider = AnthropicProvider(
            api_key=config.api_key,
            base_url=config.base_url,
            stream=config.stream,
        )
        return cls(provider, cost_tracker, config)

    def model_for(self, tier: str) -> str:
        return self.config.small_model if tier == "small" else self.config.large_model

    async def query(
        self,
        messages: Sequence[UserMessage | AssistantMessage],
        system_prompt: Sequence[str],
        max_thinking_tokens: int = 0,
        tools: Sequence[Tool] = (),
        signal: AbortSignal | None = None,
        *,
        dangerously_skip_permissions: bool = False,
        model_tier: str = "large",
        prepend_identity: bool = True,
        enable_prompt_caching: bool = True,
        max_retries: int | None = None,
    ) -> AssistantMessage:
        """
        Obtain one assistant turn.

        Args:
            messages: Wire-normalized transcript
            system_prompt: System prompt sections, context already appended
            max_thinking_tokens: Extended thinking budget; 0 disables thinking
            tools: Tool catalog offered to the model
            signal: Abort signal; cancels the request and any backoff sleep
            dangerously_skip_permissions: Forwarded to tool prompts
            model_tier: "large" or "small"
            prepend_identity: Put the product identity line first
            enable_prompt_caching: Add cache breakpoints when caching is enabled
            max_retries: Override for the retry ceiling

        Returns:
            The assistant message, or a synthetic API-error message on failure
        """
        try:
            return await self._query(
                messages,
                system_prompt,
                max_thinking_tokens,
                tools,
                signal,
                dangerously_skip_permissions=dangerously_skip_permissions,
                model_tier=model_tier,
                prepend_identity=prepend_identity,
                enable_prompt_caching=enable_prompt_caching,
                max_retries=max_retries,
            )
        except asyncio.CancelledError:
            raise
        except Exception as error:
            logger.error("Model call failed: %s", error)
            return get_assistant_message_from_error(error)

    async def _query(
        self,
        messages: Sequence[UserMessage | AssistantMessage],
        system_prompt: Sequence[str],
        max_thinking_tokens: int,
        tools: Sequence[Tool],
        signal: AbortSignal | None,
        *,
        dangerously_skip_permissions: bool,
        model_tier: str,
        prepend_identity: bool,
        enable_prompt_caching: bool,
        max_retries: int | None,
    ) -> AssistantMessage:
        caching = enable_prompt_caching and prompt_caching_enabled()
        system = [IDENTITY_PROMPT, *system_prompt] if prepend_identity else list(system_prompt)
        tool_params = await asyncio.gather(
            *(tool_to_param(tool, dangerously_skip_permissions) for tool in tools)
        )

        params: dict[str, Any] = {
            "model": self.model_for(model_tier),
            "max_tokens": self.config.max_tokens,
            "messages": messages_to_params(messages, caching),
            "system": system_to_params(system, caching),
            "temperature": MAIN_QUERY_TEMPERATURE,
        }
        if tool_params:
            params["tools"] = list(tool_params)
        if max_thinking_tokens > 0:
            params["thinking"] = {"type": "enabled", "budget_tokens": max_thinking_tokens}
            params["max_tokens"] = max(self.config.max_tokens, max_thinking_tokens + 1)

        start = time.monotonic()
        attempt_start = start

        async def attempt(attempt_number: int) -> ModelResponse:
            nonlocal attempt_start
            attempt_start = time.monotonic()
            if attempt_number > 1:
                logger.debug("Model call attempt %d", attempt_number)
            return await race_abort(self.provider.create_message(params), signal)

        response = await with_retry(
            attempt, max_retries=max_retries, signal=signal, sleep=self._sleep
        )

        end = time.monotonic()
        duration_ms = (end - attempt_start) * 1000
        duration_including_retries_ms = (end - start) * 1000
        cost = calculate_cost(response.usage, model_tier)
        self.cost_tracker.add(cost, duration_including_retries_ms)

        return AssistantMessage(
            uuid=new_uuid(),
            cost_usd=cost,
            duration_ms=duration_ms,
            message=APIAssistantMessage(
                id=response.id,
                model=response.model,
                content=normalize_content_from_api(response.content),
                stop_reason=response.stop_reason,
                stop_sequence=response.stop_sequence,
                usage=response.usage,
            ),
        )

    async def query_small(
        self,
        user_prompt: str,
        system_prompt: Sequence[str] = (),
        assistant_prompt: str | None = None,
        signal: AbortSignal | None = None,
        enable_prompt_caching: bool = False,
    ) -> AssistantMessage:
        """Single-shot call to the small tier, without tools or thinking."""
        messages: list[UserMessage | AssistantMessage] = [create_user_message(user_prompt)]
        if assistant_prompt:
            messages.append(create_assistant_message(assistant_prompt))
        return await self.query(
            messages,
            system_prompt,
            signal=signal,
            model_tier="small",
            prepend_identity=False,
            enable_prompt_caching=enable_prompt_caching,
        )

    async def verify_api_key(self) -> bool:
        """
        Check that the configured credentials are accepted.

        Returns:
            False if the provider rejects the key, True otherwise

        Raises:
            anthropic.APIError: For failures other than authentication
        """
        params = {
            "model": self.config.small_model,
            "max_tokens": 1,
            "messages": [{"role": "user", "content": "test"}],
            "temperature": 0,
        }
        try:
            await with_retry(
                lambda attempt: self.provider.create_message(params),
                max_retries=VERIFY_API_KEY_MAX_RETRIES,
                sleep=self._sleep,
            )
        except anthropic.AuthenticationError:
            return False
        return True
