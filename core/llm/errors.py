"""User-facing classification of failed model calls."""

import anthropic

from ..exceptions import AbortError
from ..messages import create_assistant_api_error_message
from ..models import AssistantMessage

API_ERROR_MESSAGE_PREFIX = "API Error"
PROMPT_TOO_LONG_ERROR_MESSAGE = "Prompt is too long"
CREDIT_BALANCE_TOO_LOW_ERROR_MESSAGE = "Credit balance is too low"
INVALID_API_KEY_ERROR_MESSAGE = "Invalid API key · Please run /login"
ABORTED_ERROR_MESSAGE = f"{API_ERROR_MESSAGE_PREFIX}: Request was aborted."


def _error_text(error: BaseException) -> str:
    if isinstance(error, anthropic.APIError):
        return error.message
    return str(error)


def get_assistant_message_from_error(error: BaseException) -> AssistantMessage:
    """
    Convert a terminal model-call failure into a synthetic assistant message.

    Args:
        error: The exception that ended the call

    Returns:
        Assistant message flagged as an API error
    """
    if isinstance(error, AbortError):
        return create_assistant_api_error_message(ABORTED_ERROR_MESSAGE)

    text = _error_text(error)
    if "prompt is too long" in text.lower():
        return create_assistant_api_error_message(PROMPT_TOO_LONG_ERROR_MESSAGE)
    if "Your credit balance is too low" in text:
        return create_assistant_api_error_message(CREDIT_BALANCE_TOO_LOW_ERROR_MESSAGE)
    if "x-api-key" in text.lower() or isinstance(error, anthropic.AuthenticationError):
        return create_assistant_api_error_message(INVALID_API_KEY_ERROR_MESSAGE)
    if text:
        return create_assistant_api_error_message(f"{API_ERROR_MESSAGE_PREFIX}: {text}")
    return create_assistant_api_error_message(API_ERROR_MESSAGE_PREFIX)
