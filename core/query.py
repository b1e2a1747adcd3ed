"""
Query loop.

`query` drives a conversation until the model stops asking for tools: it
requests an assistant turn, yields it, runs the requested tools, yields
their messages, appends the ordered results to the transcript and goes
round again. Cancellation is checked before each model call, after it
returns and after each tool batch, and always ends the loop with a
synthetic interrupt message rather than an exception.
"""

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Sequence

from .constants import INTERRUPT_MESSAGE, INTERRUPT_MESSAGE_FOR_TOOL_USE
from .exceptions import InvalidOperationError
from .llm.convert import format_system_prompt_with_context
from .messages import create_assistant_message
from .models import AssistantMessage, Message, ToolUseBlock, UserMessage
from .normalization import get_tool_use_id, normalize_messages_for_api
from .scheduler import is_read_only_batch, run_tools_concurrently, run_tools_serially
from .tools import CanUseToolFn, ToolUseContext

logger = logging.getLogger(__name__)


@dataclass
class BinaryFeedbackResult:
    """A judge's pick between two candidate turns."""

    message: AssistantMessage | None
    should_skip_permission_check: bool = False


BinaryFeedbackFn = Callable[[AssistantMessage, AssistantMessage], Awaitable[BinaryFeedbackResult]]


async def query_with_binary_feedback(
    context: ToolUseContext,
    get_assistant_response: Callable[[], Awaitable[AssistantMessage]],
    get_binary_feedback_response: BinaryFeedbackFn | None = None,
) -> BinaryFeedbackResult:
    """
    Obtain one assistant turn, optionally picking between two candidates.

    Without a judge a single response is requested. With one, two are
    requested concurrently; a failed candidate loses automatically, and an
    abort during the calls yields a result with no message.
    """
    if get_binary_feedback_response is None:
        return BinaryFeedbackResult(message=await get_assistant_response())

    first, second = await asyncio.gather(get_assistant_response(), get_assistant_response())
    if context.signal.aborted:
        return BinaryFeedbackResult(message=None)
    if second.is_api_error_message:
        return BinaryFeedbackResult(message=first)
    if first.is_api_error_message:
        return BinaryFeedbackResult(message=second)
    return await get_binary_feedback_response(first, second)


def order_tool_results(
    results: Sequence[UserMessage], tool_uses: Sequence[ToolUseBlock]
) -> list[UserMessage]:
    """Sort tool results into the order their tool uses were requested."""
    position = {tool_use.id: index for index, tool_use in enumerate(tool_uses)}
    return sorted(
        results,
        key=lambda message: position.get(get_tool_use_id(message), len(position)),
    )


async def query(
    messages: Sequence[Message],
    system_prompt: Sequence[str],
    context: dict[str, str],
    can_use_tool: CanUseToolFn,
    tool_use_context: ToolUseContext,
    get_binary_feedback_response: BinaryFeedbackFn | None = None,
) -> AsyncIterator[Message]:
    """
    Run the conversation until no further tools are requested.

    Args:
        messages: Transcript so far, ending with the user's prompt
        system_prompt: Base system prompt sections
        context: Context map appended to the system prompt
        can_use_tool: Permission check callback
        tool_use_context: Shared execution context, including the abort controller
        get_binary_feedback_response: Optional judge for comparison mode

    Yields:
        Assistant turns, progress messages and tool results as they happen

    Raises:
        InvalidOperationError: If the context has no model client
    """
    client = tool_use_context.options.model_client
    if client is None:
        raise InvalidOperationError("query requires a model client")

    signal = tool_use_context.signal
    full_system_prompt = format_system_prompt_with_context(system_prompt, context)
    transcript: list[Message] = list(messages)

    async def get_assistant_response() -> AssistantMessage:
        return await client.query(
            normalize_messages_for_api(transcript),
            full_system_prompt,
            tool_use_context.options.max_thinking_tokens,
            tool_use_context.options.tools,
            signal,
            dangerously_skip_permissions=tool_use_context.options.dangerously_skip_permissions,
        )

    turn = 0
    while True:
        turn += 1
        if signal.aborted:
            yield create_assistant_message(INTERRUPT_MESSAGE)
            return

        result = await query_with_binary_feedback(
            tool_use_context, get_assistant_response, get_binary_feedback_response
        )
        if result.message is None or signal.aborted:
            logger.info("Query interrupted during model call (turn %d)", turn)
            yield create_assistant_message(INTERRUPT_MESSAGE)
            return

        assistant_message = result.message
        tool_use_context.message_id = assistant_message.message.id
        yield assistant_message

        tool_uses = [
            block for block in assistant_message.message.content if isinstance(block, ToolUseBlock)
        ]
        if not tool_uses:
            return

        run_tools = (
            run_tools_concurrently
            if is_read_only_batch(tool_uses, tool_use_context)
            else run_tools_serially
        )
        logger.debug(
            "Turn %d: running %d tool(s) %s",
            turn,
            len(tool_uses),
            "concurrently" if run_tools is run_tools_concurrently else "serially",
        )

        tool_results: list[UserMessage] = []
        async with aclosing(
            run_tools(
                tool_uses,
                assistant_message,
                can_use_tool,
                tool_use_context,
                result.should_skip_permission_check,
            )
        ) as tool_messages:
            async for message in tool_messages:
                yield message
                if isinstance(message, UserMessage):
                    tool_results.append(message)

        if signal.aborted:
            logger.info("Query interrupted during tool use (turn %d)", turn)
            yield create_assistant_message(INTERRUPT_MESSAGE_FOR_TOOL_USE)
            return

        transcript = [
            *transcript,
            assistant_message,
            *order_tool_results(tool_results, tool_uses),
        ]
