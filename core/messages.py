"""
Message factories.

Every message that enters a transcript is built here, so that synthetic
assistant turns, tool results and progress snapshots share one shape.
"""

from typing import Any, Sequence

from .constants import CANCEL_MESSAGE, NO_CONTENT_MESSAGE, SYNTHETIC_MODEL
from .models import (
    APIAssistantMessage,
    AssistantMessage,
    ContentBlock,
    FullToolUseResult,
    Message,
    ProgressMessage,
    TextBlock,
    ToolResultBlock,
    Usage,
    UserMessage,
    UserMessageOptions,
    UserMessageParam,
    gen_id,
)


def new_uuid() -> str:
    return gen_id("msg_")


def _base_assistant_message(
    content: list[ContentBlock], is_api_error_message: bool
) -> AssistantMessage:
    return AssistantMessage(
        uuid=new_uuid(),
        cost_usd=0.0,
        duration_ms=0.0,
        is_api_error_message=is_api_error_message,
        message=APIAssistantMessage(
            id=new_uuid(),
            model=SYNTHETIC_MODEL,
            content=content,
            stop_reason="stop_sequence",
            usage=Usage(),
        ),
    )


def create_assistant_message(content: str) -> AssistantMessage:
    """Build a synthetic assistant turn carrying a single text block."""
    return _base_assistant_message(
        [TextBlock(text=content or NO_CONTENT_MESSAGE)],
        is_api_error_message=False,
    )


def create_assistant_api_error_message(content: str) -> AssistantMessage:
    """Build a synthetic assistant turn that reports a failed model call."""
    return _base_assistant_message(
        [TextBlock(text=content or NO_CONTENT_MESSAGE)],
        is_api_error_message=True,
    )


def create_user_message(
    content: str | Sequence[ContentBlock],
    tool_use_result: FullToolUseResult | None = None,
    options: UserMessageOptions | None = None,
) -> UserMessage:
    if not isinstance(content, str):
        content = list(content)
    return UserMessage(
        uuid=new_uuid(),
        message=UserMessageParam(content=content),
        tool_use_result=tool_use_result,
        options=options,
    )


def create_tool_result_message(
    tool_use_id: str,
    content: str | list[Any],
    is_error: bool = False,
    data: Any = None,
) -> UserMessage:
    """
    Wrap a single tool_result block in a user message.

    Args:
        tool_use_id: ID of the tool_use block being answered
        content: Assistant-facing rendering of the result
        is_error: Whether the tool failed
        data: Raw tool output, kept for local consumers only

    Returns:
        The terminal message for this tool use
    """
    block = ToolResultBlock(
        tool_use_id=tool_use_id,
        content=content,
        is_error=True if is_error else None,
    )
    tool_use_result = None
    if not is_error:
        tool_use_result = FullToolUseResult(data=data, result_for_assistant=content)
    return create_user_message([block], tool_use_result=tool_use_result)


def create_tool_result_stop_message(tool_use_id: str) -> ToolResultBlock:
    return ToolResultBlock(
        tool_use_id=tool_use_id,
        content=CANCEL_MESSAGE,
        is_error=True,
    )


def create_progress_message(
    tool_use_id: str,
    sibling_tool_use_ids: set[str] | frozenset[str],
    content: AssistantMessage,
    normalized_messages: list[Message],
    tools: list[Any],
) -> ProgressMessage:
    return ProgressMessage(
        uuid=new_uuid(),
        tool_use_id=tool_use_id,
        sibling_tool_use_ids=frozenset(sibling_tool_use_ids),
        content=content,
        normalized_messages=list(normalized_messages),
        tools=list(tools),
    )
