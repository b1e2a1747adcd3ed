"""Translation between transcript messages and provider request parameters."""

import os
from typing import Any, Sequence

from ..models import (
    AssistantMessage,
    RedactedThinkingBlock,
    ThinkingBlock,
    UserMessage,
)
from ..tools import Tool

CACHE_CONTROL = {"type": "ephemeral"}
CONTEXT_INTRO = "\nAs you answer the user's questions, you can use the following context:\n"

# Only the most recent messages carry cache breakpoints
CACHED_TAIL_MESSAGES = 2


def prompt_caching_enabled() -> bool:
    return not os.environ.get("DISABLE_PROMPT_CACHING")


def format_system_prompt_with_context(
    system_prompt: Sequence[str], context: dict[str, str]
) -> list[str]:
    """
    Append context entries to a system prompt as `<context>` tags.

    Args:
        system_prompt: Base system prompt sections
        context: Key to text mapping (git status, directory listing, ...)

    Returns:
        New list of sections; unchanged when context is empty
    """
    if not context:
        return list(system_prompt)
    return [
        *system_prompt,
        CONTEXT_INTRO,
        *(f'<context name="{key}">{value}</context>' for key, value in context.items()),
    ]


def user_message_to_param(message: UserMessage, add_cache: bool) -> dict[str, Any]:
    content = message.message.content
    if isinstance(content, str):
        if not add_cache:
            return {"role": "user", "content": content}
        return {
            "role": "user",
            "content": [{"type": "text", "text": content, "cache_control": CACHE_CONTROL}],
        }

    blocks = [block.model_dump(exclude_none=True) for block in content]
    if add_cache and blocks:
        blocks[-1] = {**blocks[-1], "cache_control": CACHE_CONTROL}
    return {"role": "user", "content": blocks}


def assistant_message_to_param(message: AssistantMessage, add_cache: bool) -> dict[str, Any]:
    content = message.message.content
    blocks = [block.model_dump(exclude_none=True) for block in content]
    if (
        add_cache
        and blocks
        and not isinstance(content[-1], (ThinkingBlock, RedactedThinkingBlock))
    ):
        blocks[-1] = {**blocks[-1], "cache_control": CACHE_CONTROL}
    return {"role": "assistant", "content": blocks}


def messages_to_params(
    messages: Sequence[UserMessage | AssistantMessage], enable_caching: bool
) -> list[dict[str, Any]]:
    """Convert wire-normalized messages, marking cache breakpoints on the tail."""
    params = []
    for index, message in enumerate(messages):
        add_cache = enable_caching and index >= len(messages) - CACHED_TAIL_MESSAGES
        if isinstance(message, UserMessage):
            params.append(user_message_to_param(message, add_cache))
        else:
            params.append(assistant_message_to_param(message, add_cache))
    return params


def split_system_prompt_prefix(system_prompt: Sequence[str]) -> list[str]:
    """Collapse a system prompt into its first section and everything after it."""
    first = system_prompt[0] if system_prompt else ""
    rest = "\n".join(system_prompt[1:])
    return [text for text in (first, rest) if text]


def system_to_params(system_prompt: Sequence[str], enable_caching: bool) -> list[dict[str, Any]]:
    """At most two blocks, so system and message breakpoints stay within four."""
    blocks = []
    for text in split_system_prompt_prefix(system_prompt):
        block: dict[str, Any] = {"type": "text", "text": text}
        if enable_caching:
            block["cache_control"] = CACHE_CONTROL
        blocks.append(block)
    return blocks


async def tool_to_param(tool: Tool, dangerously_skip_permissions: bool) -> dict[str, Any]:
    return {
        "name": tool.name,
        "description": await tool.prompt(dangerously_skip_permissions=dangerously_skip_permissions),
        "input_schema": tool.input_json_schema(),
    }
