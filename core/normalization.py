"""
Transcript normalization.

Two passes serve two consumers and are kept apart:

- Display normalization (`normalize_messages`) splits multi-block messages
  into one message per block, then `reorder_messages` places every tool
  result or progress snapshot right after its tool use.
- Wire normalization (`normalize_messages_for_api`) drops progress messages
  and merges consecutive tool-result user messages into one user turn.

All functions return new lists; input messages are never mutated.
"""

import re
from typing import Iterable, Sequence

from .constants import INTERRUPT_MESSAGE_FOR_TOOL_USE, NO_CONTENT_MESSAGE
from .messages import new_uuid
from .models import (
    AssistantMessage,
    ContentBlock,
    Message,
    ProgressMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)

# Tags the model uses for scratch analysis that should not be shown verbatim
STRIPPED_TAGS = ("commit_analysis", "context", "function_analysis", "pr_analysis")
_STRIPPED_TAGS_RE = re.compile(
    r"<(" + "|".join(STRIPPED_TAGS) + r")>.*?</\1>\n?", re.DOTALL
)


def _first_block(message: Message) -> ContentBlock | None:
    if isinstance(message, ProgressMessage):
        return None
    content = message.message.content
    if isinstance(content, str) or not content:
        return None
    return content[0]


def _tool_use_block(message: Message) -> ToolUseBlock | None:
    if not isinstance(message, AssistantMessage):
        return None
    block = _first_block(message)
    return block if isinstance(block, ToolUseBlock) else None


def _tool_result_block(message: Message) -> ToolResultBlock | None:
    if not isinstance(message, UserMessage):
        return None
    block = _first_block(message)
    return block if isinstance(block, ToolResultBlock) else None


def is_tool_result_message(message: Message) -> bool:
    return _tool_result_block(message) is not None


def normalize_messages(messages: Iterable[Message]) -> list[Message]:
    """
    Split every multi-block message into single-block messages.

    An assistant message with N blocks becomes N messages, each with a fresh
    uuid, the same duration and 1/N of the cost. Progress messages and
    plain-string content pass through unchanged.

    Args:
        messages: Transcript in arrival order

    Returns:
        New display-normalized list
    """
    result: list[Message] = []
    for message in messages:
        if isinstance(message, ProgressMessage):
            result.append(message)
            continue
        content = message.message.content
        if isinstance(content, str) or len(content) <= 1:
            result.append(message)
            continue

        if isinstance(message, AssistantMessage):
            share = message.cost_usd / len(content)
            for block in content:
                result.append(
                    message.model_copy(
                        update={
                            "uuid": new_uuid(),
                            "cost_usd": share,
                            "message": message.message.model_copy(
                                update={"content": [block]}
                            ),
                        }
                    )
                )
        else:
            for block in content:
                result.append(
                    message.model_copy(
                        update={
                            "uuid": new_uuid(),
                            "message": message.message.model_copy(
                                update={"content": [block]}
                            ),
                        }
                    )
                )
    return result


def reorder_messages(messages: Sequence[Message]) -> list[Message]:
    """
    Move tool results and progress snapshots next to their tool use.

    A newer progress message for a tool use replaces the previous one in
    place. A tool result lands after the current progress message for its
    id, or directly after the tool use when there is none.

    Args:
        messages: Display-normalized messages

    Returns:
        New reordered list
    """
    ordered: list[Message] = []
    tool_uses: dict[str, Message] = {}

    def index_of(target: Message) -> int:
        for i, candidate in enumerate(ordered):
            if candidate is target:
                return i
        return -1

    def find_progress(tool_use_id: str) -> int:
        for i, candidate in enumerate(ordered):
            if (
                isinstance(candidate, ProgressMessage)
                and candidate.tool_use_id == tool_use_id
            ):
                return i
        return -1

    for message in messages:
        tool_use = _tool_use_block(message)
        if tool_use is not None:
            tool_uses[tool_use.id] = message

        if isinstance(message, ProgressMessage):
            existing = find_progress(message.tool_use_id)
            if existing != -1:
                ordered[existing] = message
                continue
            origin = tool_uses.get(message.tool_use_id)
            if origin is not None:
                ordered.insert(index_of(origin) + 1, message)
                continue

        result_block = _tool_result_block(message)
        if result_block is not None:
            progress = find_progress(result_block.tool_use_id)
            if progress != -1:
                ordered.insert(progress + 1, message)
                continue
            origin = tool_uses.get(result_block.tool_use_id)
            if origin is not None:
                ordered.insert(index_of(origin) + 1, message)
                continue

        ordered.append(message)
    return ordered


def normalize_messages_for_api(
    messages: Iterable[Message],
) -> list[UserMessage | AssistantMessage]:
    """
    Prepare a transcript for submission to the model.

    Progress messages are dropped and consecutive tool-result user messages
    are merged into one. Applying this to its own output is a no-op.
    """
    result: list[UserMessage | AssistantMessage] = []
    for message in messages:
        if isinstance(message, ProgressMessage):
            continue
        if isinstance(message, AssistantMessage) or not is_tool_result_message(message):
            result.append(message)
            continue

        last = result[-1] if result else None
        if last is None or not is_tool_result_message(last):
            result.append(message)
            continue

        merged_content = [*last.message.content, *message.message.content]
        result[-1] = last.model_copy(
            update={"message": last.message.model_copy(update={"content": merged_content})}
        )
    return result


def normalize_content_from_api(blocks: Sequence[ContentBlock]) -> list[ContentBlock]:
    """Drop blank text blocks; an empty response becomes a placeholder block."""
    filtered = [
        block
        for block in blocks
        if not isinstance(block, TextBlock) or block.text.strip()
    ]
    if not filtered:
        return [TextBlock(text=NO_CONTENT_MESSAGE)]
    return filtered


def _tool_result_ids(messages: Sequence[Message]) -> dict[str, bool]:
    """Map each answered tool_use id to its error flag."""
    results: dict[str, bool] = {}
    for message in messages:
        block = _tool_result_block(message)
        if block is not None:
            results[block.tool_use_id] = bool(block.is_error)
    return results


def _unresolved_in_order(messages: Sequence[Message]) -> list[str]:
    resolved = _tool_result_ids(messages)
    unresolved: list[str] = []
    for message in messages:
        block = _tool_use_block(message)
        if block is not None and block.id not in resolved and block.id not in unresolved:
            unresolved.append(block.id)
    return unresolved


def get_unresolved_tool_use_ids(messages: Sequence[Message]) -> set[str]:
    return set(_unresolved_in_order(messages))


def get_in_progress_tool_use_ids(messages: Sequence[Message]) -> set[str]:
    """
    Tool uses that should show a spinner.

    This is a display heuristic: the earliest unresolved tool use counts as
    running, as does any unresolved tool use that has emitted progress.
    """
    unresolved = _unresolved_in_order(messages)
    if not unresolved:
        return set()
    with_progress = {
        message.tool_use_id
        for message in messages
        if isinstance(message, ProgressMessage)
    }
    in_progress = {unresolved[0]}
    in_progress.update(tool_use_id for tool_use_id in unresolved if tool_use_id in with_progress)
    return in_progress


def get_errored_tool_use_messages(messages: Sequence[Message]) -> list[AssistantMessage]:
    """Tool-use messages whose result came back flagged as an error."""
    results = _tool_result_ids(messages)
    errored: list[AssistantMessage] = []
    for message in messages:
        block = _tool_use_block(message)
        if block is not None and results.get(block.id):
            errored.append(message)
    return errored


def get_tool_use_id(message: Message) -> str | None:
    if isinstance(message, ProgressMessage):
        return message.tool_use_id
    tool_use = _tool_use_block(message)
    if tool_use is not None:
        return tool_use.id
    result = _tool_result_block(message)
    if result is not None:
        return result.tool_use_id
    return None


def get_last_assistant_message_id(messages: Sequence[Message]) -> str | None:
    for message in reversed(messages):
        if isinstance(message, AssistantMessage):
            return message.message.id
    return None


def is_not_empty_message(message: Message) -> bool:
    if isinstance(message, ProgressMessage):
        return True
    content = message.message.content
    if isinstance(content, str):
        return bool(content.strip())
    if not content:
        return False
    if len(content) > 1:
        return True
    block = content[0]
    if not isinstance(block, TextBlock):
        return True
    return (
        bool(block.text.strip())
        and block.text != NO_CONTENT_MESSAGE
        and block.text != INTERRUPT_MESSAGE_FOR_TOOL_USE
    )


def extract_tag(text: str, tag_name: str) -> str | None:
    """Return the body of the first `<tag_name>` element in text, if any."""
    if not text.strip() or not tag_name.strip():
        return None
    pattern = re.compile(
        rf"<{re.escape(tag_name)}(?:\s[^>]*)?>(.*?)</{re.escape(tag_name)}>",
        re.DOTALL,
    )
    match = pattern.search(text)
    return match.group(1) if match else None


def strip_system_messages(content: str) -> str:
    return _STRIPPED_TAGS_RE.sub("", content).strip()
