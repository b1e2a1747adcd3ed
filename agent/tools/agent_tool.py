"""
Sub-agent tool.

Launches a nested query restricted to read-only tools and reports the
sub-agent's tool uses as progress, finishing with its final text.
"""

import logging
import os
import time

from pydantic import BaseModel, Field

from core.constants import PRODUCT_NAME
from core.cost_tracker import format_duration
from core.messages import create_assistant_message, create_user_message
from core.models import AssistantMessage, Message, TextBlock, ToolUseBlock
from core.normalization import normalize_messages
from core.query import query
from core.tools import Tool, ToolProgress, ToolResult, ToolUseContext, ToolUseOptions

logger = logging.getLogger(__name__)

PROMPT = f"""Launch a new agent that has access to read-only tools. When you are searching for a keyword or file and are not confident that you will find the right match on the first try, use the Agent tool to perform the search for you.

Usage notes:
1. Launch multiple agents concurrently whenever possible, to maximize performance; to do that, use a single message with multiple tool uses
2. When the agent is done, it will return a single message back to you. The result returned by the agent is not visible to the user. To show the user the result, you should send a text message back to the user with a concise summary of the result.
3. Each agent invocation is stateless. Your prompt should contain a highly detailed task description for the agent to perform autonomously.
4. The agent's outputs should generally be trusted
5. The agent cannot modify files or run {PRODUCT_NAME}'s write tools, so it is best suited to research tasks"""


class AgentInput(BaseModel):
    prompt: str = Field(description="The task for the agent to perform")


def _tool_use_count(messages: list[Message]) -> int:
    return sum(
        1
        for message in messages
        if isinstance(message, AssistantMessage)
        for block in message.message.content
        if isinstance(block, ToolUseBlock)
    )


class AgentTool(Tool):
    name = "Agent"
    input_model = AgentInput

    async def description(self) -> str:
        return "Launch a new task"

    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        return PROMPT

    def is_read_only(self) -> bool:
        return True

    def needs_permissions(self, input: BaseModel) -> bool:
        return False

    async def call(self, input: AgentInput, context: ToolUseContext, can_use_tool=None):
        # Deferred to avoid a cycle with the tool registry
        from agent.context import ContextProvider
        from agent.prompts import get_agent_prompt
        from agent.tools import get_read_only_tools

        start = time.monotonic()
        cwd = context.options.cwd or os.getcwd()
        tools = [tool for tool in await get_read_only_tools() if tool.name != self.name]
        messages: list[Message] = [create_user_message(input.prompt)]
        system_prompt = await get_agent_prompt(cwd)
        agent_context = await ContextProvider(cwd).get_context()

        sub_context = ToolUseContext(
            abort_controller=context.abort_controller,
            options=ToolUseOptions(
                tools=tools,
                model_client=context.options.model_client,
                dangerously_skip_permissions=context.options.dangerously_skip_permissions,
                max_thinking_tokens=context.options.max_thinking_tokens,
                verbose=context.options.verbose,
                cwd=cwd,
                is_sub_agent=True,
            ),
            read_file_timestamps=context.read_file_timestamps,
        )

        async for message in query(messages, system_prompt, agent_context, can_use_tool, sub_context):
            messages.append(message)
            if not isinstance(message, AssistantMessage):
                continue
            normalized = normalize_messages(messages)
            for block in message.message.content:
                if not isinstance(block, ToolUseBlock):
                    continue
                content = next(
                    (
                        m
                        for m in normalized
                        if isinstance(m, AssistantMessage)
                        and any(
                            isinstance(b, ToolUseBlock) and b.id == block.id
                            for b in m.message.content
                        )
                    ),
                    message,
                )
                yield ToolProgress(content=content, normalized_messages=normalized, tools=tools)

        last = next((m for m in reversed(messages) if isinstance(m, AssistantMessage)), None)
        if last is None:
            raise RuntimeError("Agent finished without a response")
        text_blocks = [block for block in last.message.content if isinstance(block, TextBlock)]

        usage = last.message.usage
        tokens = (
            usage.input_tokens
            + usage.output_tokens
            + (usage.cache_read_input_tokens or 0)
            + (usage.cache_creation_input_tokens or 0)
        )
        tool_uses = _tool_use_count(messages)
        summary = (
            f"Done ({tool_uses} tool use{'' if tool_uses == 1 else 's'} · "
            f"{tokens} tokens · {format_duration((time.monotonic() - start) * 1000)})"
        )
        logger.info("Sub-agent %s", summary)
        yield ToolProgress(
            content=create_assistant_message(summary),
            normalized_messages=normalize_messages(messages),
            tools=tools,
        )
        yield ToolResult(data=text_blocks, result_for_assistant=text_blocks)
