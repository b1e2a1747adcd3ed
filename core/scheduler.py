"""
Concurrency scheduler for tool batches.

A batch whose tools are all read-only runs concurrently, up to
MAX_TOOL_USE_CONCURRENCY at a time, and messages are delivered in completion
order. Any mutating tool forces the whole batch to run serially in request
order.
"""

import asyncio
import logging
from typing import AsyncIterator, Sequence, TypeVar

from .constants import MAX_TOOL_USE_CONCURRENCY
from .models import AssistantMessage, Message, ToolUseBlock
from .tool_runner import run_tool_use
from .tools import CanUseToolFn, ToolUseContext, find_tool

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DONE = object()


async def merge_async_iterators(
    iterators: Sequence[AsyncIterator[T]],
    max_concurrency: int = MAX_TOOL_USE_CONCURRENCY,
) -> AsyncIterator[T]:
    """
    Interleave several async iterators, yielding items as they arrive.

    At most `max_concurrency` iterators are drained at once. An iterator
    that raises is logged and dropped; its siblings keep running.

    Args:
        iterators: Iterators to drain
        max_concurrency: Maximum number drained at once

    Yields:
        Items in arrival order
    """
    queue: asyncio.Queue = asyncio.Queue()
    semaphore = asyncio.Semaphore(max_concurrency)

    async def drain(iterator: AsyncIterator[T]) -> None:
        try:
            async with semaphore:
                async for item in iterator:
                    await queue.put(item)
        except Exception:
            logger.exception("Concurrent iterator failed")
        finally:
            await queue.put(_DONE)

    tasks = [asyncio.create_task(drain(iterator)) for iterator in iterators]
    remaining = len(tasks)
    try:
        while remaining:
            item = await queue.get()
            if item is _DONE:
                remaining -= 1
                continue
            yield item
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def is_read_only_batch(tool_uses: Sequence[ToolUseBlock], context: ToolUseContext) -> bool:
    """True when every requested tool exists and is declared read-only."""
    for tool_use in tool_uses:
        tool = find_tool(context.options.tools, tool_use.name)
        if tool is None or not tool.is_read_only():
            return False
    return True


async def run_tools_concurrently(
    tool_uses: Sequence[ToolUseBlock],
    assistant_message: AssistantMessage,
    can_use_tool: CanUseToolFn,
    context: ToolUseContext,
    should_skip_permission_check: bool = False,
) -> AsyncIterator[Message]:
    sibling_ids = {tool_use.id for tool_use in tool_uses}
    runs = [
        run_tool_use(
            tool_use,
            sibling_ids,
            assistant_message,
            can_use_tool,
            context,
            should_skip_permission_check,
        )
        for tool_use in tool_uses
    ]
    async for message in merge_async_iterators(runs, MAX_TOOL_USE_CONCURRENCY):
        yield message


async def run_tools_serially(
    tool_uses: Sequence[ToolUseBlock],
    assistant_message: AssistantMessage,
    can_use_tool: CanUseToolFn,
    context: ToolUseContext,
    should_skip_permission_check: bool = False,
) -> AsyncIterator[Message]:
    sibling_ids = {tool_use.id for tool_use in tool_uses}
    for tool_use in tool_uses:
        async for message in run_tool_use(
            tool_use,
            sibling_ids,
            assistant_message,
            can_use_tool,
            context,
            should_skip_permission_check,
        ):
            yield message
