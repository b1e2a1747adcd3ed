"""
Plain-text rendering of transcript messages for the terminal.

Output follows display order rather than arrival order, so results of
tools that ran concurrently still appear under their own tool use.
"""

import json
import sys
from typing import TextIO

from core.constants import INTERRUPT_MESSAGE, INTERRUPT_MESSAGE_FOR_TOOL_USE
from core.models import (
    AssistantMessage,
    Message,
    ProgressMessage,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)
from core.normalization import (
    get_errored_tool_use_messages,
    get_in_progress_tool_use_ids,
    get_unresolved_tool_use_ids,
    normalize_messages,
    reorder_messages,
    strip_system_messages,
)
from core.tools import Tool, find_tool

MAX_RESULT_LINES = 4

TOOL_USE_MARKER = "⏺"
ERROR_MARKER = "✗"
RUNNING_MARKER = "◌"
PENDING_MARKER = "·"
RESULT_MARKER = "  ⎿  "
RESULT_INDENT = "     "


def _summarize(content, verbose: bool) -> str:
    if isinstance(content, list):
        content = "\n".join(
            block.text if isinstance(block, TextBlock) else f"[{block.type}]" for block in content
        )
    lines = str(content).rstrip().split("\n")
    if verbose or len(lines) <= MAX_RESULT_LINES:
        return "\n".join(lines)
    hidden = len(lines) - MAX_RESULT_LINES
    return "\n".join(lines[:MAX_RESULT_LINES]) + f"\n... (+{hidden} lines)"


def _tool_use_of(message: Message) -> ToolUseBlock | None:
    if isinstance(message, AssistantMessage):
        for block in message.message.content:
            if isinstance(block, ToolUseBlock):
                return block
    return None


class MessageRenderer:
    """
    Writes one query's messages to a text stream.

    Incoming messages are split to one block each and reordered so every
    tool result sits under its tool use. Output is held at the first tool
    use that has neither finished nor started running; a running tool use
    is written with its latest progress and nothing after it is written
    until its result arrives.
    """

    def __init__(self, tools: list[Tool], verbose: bool = False, out: TextIO | None = None):
        self.tools = tools
        self.verbose = verbose
        self.out = out or sys.stdout
        self.reset()

    def reset(self) -> None:
        """Forget the previous query's messages."""
        self._messages: list[Message] = []
        self._written = 0
        self._running: set[str] = set()
        self._latest_progress: dict[str, ProgressMessage] = {}

    def _write(self, text: str) -> None:
        self.out.write(text + "\n")
        self.out.flush()

    def tool_use_line(self, block: ToolUseBlock, marker: str = TOOL_USE_MARKER) -> str:
        tool = find_tool(self.tools, block.name)
        if tool is None:
            return f"{marker} {block.name}({json.dumps(block.input)})"
        try:
            summary = tool.render_tool_use_message(
                tool.input_model.model_validate(block.input), verbose=self.verbose
            )
        except ValueError:
            summary = json.dumps(block.input)
        return f"{marker} {block.name}({summary})"

    def render(self, message: Message) -> None:
        self._messages.append(message)
        if isinstance(message, ProgressMessage):
            self._latest_progress[message.tool_use_id] = message
            if message.tool_use_id in self._running:
                self.render_progress(message)
        self._flush(final=False)

    def finish(self) -> None:
        """Write everything still held back, unfinished tool uses included."""
        self._flush(final=True)

    def _flush(self, final: bool) -> None:
        normalized = normalize_messages(self._messages)
        unresolved = get_unresolved_tool_use_ids(normalized)
        in_progress = get_in_progress_tool_use_ids(normalized)
        errored = {
            block.id
            for message in get_errored_tool_use_messages(normalized)
            for block in message.message.content
            if isinstance(block, ToolUseBlock)
        }
        view = [
            message
            for message in reorder_messages(normalized)
            if not isinstance(message, ProgressMessage)
        ]

        while self._written < len(view):
            if not final and self._running & unresolved:
                return
            message = view[self._written]
            block = _tool_use_of(message)
            if block is None:
                self._written += 1
                self.render_message(message)
                continue

            if block.id not in unresolved:
                marker = ERROR_MARKER if block.id in errored else TOOL_USE_MARKER
            elif block.id in in_progress:
                marker = RUNNING_MARKER
            elif final:
                marker = PENDING_MARKER
            else:
                return
            self._written += 1
            self._write(self.tool_use_line(block, marker))
            if block.id in unresolved and block.id in in_progress:
                self._running.add(block.id)
                progress = self._latest_progress.get(block.id)
                if progress is not None:
                    self.render_progress(progress)

    def render_message(self, message: Message) -> None:
        if isinstance(message, AssistantMessage):
            self.render_assistant(message)
        elif isinstance(message, UserMessage):
            self.render_user(message)

    def render_progress(self, message: ProgressMessage) -> None:
        for block in message.content.message.content:
            if isinstance(block, ToolUseBlock):
                self._write(RESULT_INDENT + self.tool_use_line(block))
            elif isinstance(block, TextBlock):
                self._write(RESULT_MARKER + block.text)

    def render_assistant(self, message: AssistantMessage) -> None:
        for block in message.message.content:
            if isinstance(block, TextBlock):
                text = strip_system_messages(block.text).strip()
                if not text:
                    continue
                if text in (INTERRUPT_MESSAGE, INTERRUPT_MESSAGE_FOR_TOOL_USE):
                    self._write(f"{RESULT_MARKER}Interrupted by user")
                elif message.is_api_error_message:
                    self._write(f"{TOOL_USE_MARKER} {text}")
                else:
                    self._write(text)
            elif isinstance(block, ThinkingBlock) and self.verbose:
                self._write(f"✻ Thinking…\n{block.thinking}")
            elif isinstance(block, ToolUseBlock):
                self._write(self.tool_use_line(block))

    def render_user(self, message: UserMessage) -> None:
        content = message.message.content
        if isinstance(content, str):
            return
        for block in content:
            if not isinstance(block, ToolResultBlock):
                continue
            summary = _summarize(block.content, self.verbose)
            prefix = "Error: " if block.is_error and not summary.startswith("Error") else ""
            lines = f"{prefix}{summary}".split("\n")
            self._write(RESULT_MARKER + lines[0])
            for line in lines[1:]:
                self._write(RESULT_INDENT + line)
