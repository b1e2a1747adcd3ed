"""Model-call wrapper: provider access, retries, error classification and cost."""

from .client import MAIN_QUERY_TEMPERATURE, ModelClient
from .convert import format_system_prompt_with_context
from .costs import calculate_cost
from .errors import (
    API_ERROR_MESSAGE_PREFIX,
    CREDIT_BALANCE_TOO_LOW_ERROR_MESSAGE,
    INVALID_API_KEY_ERROR_MESSAGE,
    PROMPT_TOO_LONG_ERROR_MESSAGE,
    get_assistant_message_from_error,
)
from .provider import AnthropicProvider, ModelProvider, ModelResponse
from .retry import get_retry_delay, should_retry, with_retry

__all__ = [
    "ModelClient",
    "MAIN_QUERY_TEMPERATURE",
    "ModelProvider",
    "ModelResponse",
    "AnthropicProvider",
    "format_system_prompt_with_context",
    "calculate_cost",
    "should_retry",
    "get_retry_delay",
    "with_retry",
    "get_assistant_message_from_error",
    "API_ERROR_MESSAGE_PREFIX",
    "PROMPT_TOO_LONG_ERROR_MESSAGE",
    "CREDIT_BALANCE_TOO_LOW_ERROR_MESSAGE",
    "INVALID_API_KEY_ERROR_MESSAGE",
]
