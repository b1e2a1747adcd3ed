"""
Tool invocation pipeline.

Every tool use goes through the same steps, each of which may end it with
an error result: schema validation, input normalization, semantic
validation, permission check and execution. Whatever happens, exactly one
terminal tool-result message is produced per tool use.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator

from pydantic import BaseModel, ValidationError

from .constants import ERROR_HEAD_TAIL_LENGTH, MAX_ERROR_LENGTH
from .exceptions import AbortError, ToolNotFoundError
from .messages import (
    create_progress_message,
    create_tool_result_message,
    create_tool_result_stop_message,
    create_user_message,
)
from .models import AssistantMessage, Message, ToolUseBlock
from .tools import CanUseToolFn, Tool, ToolResult, ToolUseContext, find_tool

logger = logging.getLogger(__name__)


def _as_text(value) -> str | None:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value
    return None


def format_error(error: BaseException) -> str:
    """
    Render an exception for the model, including captured process output.

    Messages longer than MAX_ERROR_LENGTH keep their head and tail around an
    elision marker.
    """
    parts = [
        str(error) or type(error).__name__,
        _as_text(getattr(error, "stderr", None)),
        _as_text(getattr(error, "stdout", None)),
    ]
    full = "\n".join(part for part in parts if part)
    if len(full) <= MAX_ERROR_LENGTH:
        return full
    head = full[:ERROR_HEAD_TAIL_LENGTH]
    tail = full[-ERROR_HEAD_TAIL_LENGTH:]
    return (
        f"{head}\n\n... [{len(full) - MAX_ERROR_LENGTH} characters truncated] ...\n\n{tail}"
    )


def _stop_message(tool_use_id: str) -> Message:
    return create_user_message([create_tool_result_stop_message(tool_use_id)])


async def run_tool_use(
    tool_use: ToolUseBlock,
    sibling_tool_use_ids: set[str],
    assistant_message: AssistantMessage,
    can_use_tool: CanUseToolFn,
    context: ToolUseContext,
    should_skip_permission_check: bool = False,
) -> AsyncIterator[Message]:
    """
    Run one tool use from an assistant turn.

    Args:
        tool_use: The tool_use block to execute
        sibling_tool_use_ids: IDs of every tool use in the same turn
        assistant_message: The turn that requested the tool
        can_use_tool: Permission check callback
        context: Execution context of the current query
        should_skip_permission_check: Waive the permission check for this turn

    Yields:
        Progress messages followed by exactly one tool-result message
    """
    tool = find_tool(context.options.tools, tool_use.name)
    if tool is None:
        error = ToolNotFoundError(tool_use.name)
        logger.warning("Model requested unknown tool: %s", tool_use.name)
        yield create_tool_result_message(tool_use.id, f"Error: {error}", is_error=True)
        return

    resolved = False
    try:
        if context.signal.aborted:
            resolved = True
            yield _stop_message(tool_use.id)
            return

        async for message in check_permissions_and_call_tool(
            tool,
            tool_use.id,
            sibling_tool_use_ids,
            tool_use.input,
            context,
            can_use_tool,
            assistant_message,
            should_skip_permission_check,
        ):
            if message.type == "user":
                resolved = True
            yield message
    except Exception as error:
        logger.exception("Unexpected failure running tool %s", tool.name)
        if not resolved:
            yield create_tool_result_message(tool_use.id, format_error(error), is_error=True)


async def check_permissions_and_call_tool(
    tool: Tool,
    tool_use_id: str,
    sibling_tool_use_ids: set[str],
    raw_input: dict,
    context: ToolUseContext,
    can_use_tool: CanUseToolFn,
    assistant_message: AssistantMessage,
    should_skip_permission_check: bool = False,
) -> AsyncIterator[Message]:
    """Validate, authorize and execute one tool call."""
    try:
        parsed: BaseModel = tool.input_model.model_validate(raw_input)
    except ValidationError as error:
        logger.info("Invalid input for %s: %s", tool.name, error)
        yield create_tool_result_message(
            tool_use_id, f"InputValidationError: {error}", is_error=True
        )
        return

    input = tool.normalize_input(parsed, context)

    validation = await tool.validate_input(input, context)
    if not validation.result:
        yield create_tool_result_message(tool_use_id, validation.message, is_error=True)
        return

    if not (should_skip_permission_check or context.options.dangerously_skip_permissions):
        try:
            permission = await can_use_tool(
                tool, input, context.for_tool_use(tool_use_id), assistant_message
            )
        except AbortError:
            yield _stop_message(tool_use_id)
            return
        if not permission.approved:
            yield create_tool_result_message(
                tool_use_id, permission.reason or "", is_error=True
            )
            return

    try:
        async with aclosing(tool.call(input, context, can_use_tool)) as events:
            async for event in events:
                if isinstance(event, ToolResult):
                    yield create_tool_result_message(
                        tool_use_id, event.result_for_assistant, data=event.data
                    )
                    return
                yield create_progress_message(
                    tool_use_id,
                    sibling_tool_use_ids,
                    event.content,
                    event.normalized_messages,
                    event.tools,
                )
    except AbortError:
        yield _stop_message(tool_use_id)
        return
    except Exception as error:
        formatted = format_error(error)
        logger.error("Tool %s failed: %s", tool.name, formatted)
        yield create_tool_result_message(tool_use_id, formatted, is_error=True)
        return

    logger.error("Tool %s finished without a result", tool.name)
    yield create_tool_result_message(
        tool_use_id, f"Error: {tool.name} produced no result", is_error=True
    )
