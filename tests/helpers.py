"""Fakes shared by the test suite: scripted model provider, recording tools, in-memory config."""
import asyncio
from typing import Any

import anthropic
import httpx
from pydantic import BaseModel

from config.project_config import ProjectConfig
from core.abort import AbortController, race_abort
from core.llm import ModelClient, ModelResponse
from core.messages import create_assistant_message
from core.models import TextBlock, ToolUseBlock, Usage
from core.permissions import PermissionResult
from core.tools import Tool, ToolProgress, ToolResult, ToolUseContext, ToolUseOptions

API_URL = "https://api.anthropic.com/v1/messages"


def make_response(
    *blocks,
    usage: Usage | None = None,
    response_id: str = "msg_test",
) -> ModelResponse:
    """Build a provider response from strings (text) and content blocks."""
    content = [TextBlock(text=b) if isinstance(b, str) else b for b in blocks]
    return ModelResponse(
        id=response_id,
        model="test-model",
        content=content,
        stop_reason="tool_use" if any(isinstance(b, ToolUseBlock) for b in content) else "end_turn",
        usage=usage or Usage(input_tokens=10, output_tokens=5),
    )


def tool_use(tool_use_id: str, name: str, **input: Any) -> ToolUseBlock:
    return ToolUseBlock(id=tool_use_id, name=name, input=input)


def status_error(
    status: int,
    message: str = "error",
    headers: dict[str, str] | None = None,
    body: Any = None,
) -> anthropic.APIStatusError:
    """Build the SDK exception matching an HTTP status."""
    response = httpx.Response(status, headers=headers or {}, request=httpx.Request("POST", API_URL))
    error_class = {
        401: anthropic.AuthenticationError,
        429: anthropic.RateLimitError,
        500: anthropic.InternalServerError,
    }.get(status, anthropic.APIStatusError)
    return error_class(message, response=response, body=body)


def connection_error() -> anthropic.APIConnectionError:
    return anthropic.APIConnectionError(request=httpx.Request("POST", API_URL))


class FakeProvider:
    """Provider that replays scripted responses or raises scripted errors."""

    def __init__(self, script: list[Any] | None = None, delay: float = 0.0):
        self.script = list(script or [])
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def create_message(self, params: dict[str, Any]) -> ModelResponse:
        self.calls.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.script:
            raise AssertionError("FakeProvider script exhausted")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(params)
        return item


async def no_sleep(seconds: float) -> None:
    return None


class EchoInput(BaseModel):
    value: str = ""
    delay: float = 0.0
    fail: bool = False


class RecordingTool(Tool):
    """Tool that echoes its input and records start/end events into a shared log."""

    input_model = EchoInput

    def __init__(
        self,
        name: str = "Echo",
        read_only: bool = True,
        log: list[tuple[str, str]] | None = None,
        progress: bool = False,
    ):
        self.name = name
        self.read_only = read_only
        self.log = log if log is not None else []
        self.progress = progress

    async def description(self) -> str:
        return f"{self.name} test tool"

    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        return f"{self.name} echoes its value"

    def is_read_only(self) -> bool:
        return self.read_only

    async def call(self, input: EchoInput, context: ToolUseContext, can_use_tool=None):
        self.log.append(("start", input.value))
        try:
            if self.progress:
                yield ToolProgress(content=create_assistant_message(f"working on {input.value}"))
            if input.delay:
                await asyncio.sleep(input.delay)
            if input.fail:
                raise RuntimeError(f"{input.value} failed")
            yield ToolResult(data=input.value, result_for_assistant=f"echo: {input.value}")
        finally:
            self.log.append(("end", input.value))


class AbortingTool(RecordingTool):
    """Tool that trips the query's abort controller while running."""

    async def call(self, input: EchoInput, context: ToolUseContext, can_use_tool=None):
        self.log.append(("start", input.value))
        context.abort_controller.abort("test abort")
        context.signal.throw_if_aborted()
        yield ToolResult(data=None, result_for_assistant="unreachable")


class WaitingTool(RecordingTool):
    """Tool that sleeps for its delay unless the query is aborted first."""

    async def call(self, input: EchoInput, context: ToolUseContext, can_use_tool=None):
        self.log.append(("start", input.value))
        await race_abort(asyncio.sleep(input.delay), context.signal)
        yield ToolResult(data=input.value, result_for_assistant=f"waited: {input.value}")


async def allow_all(tool, input, context, assistant_message=None) -> PermissionResult:
    return PermissionResult.allow()


async def deny_all(tool, input, context, assistant_message=None) -> PermissionResult:
    return PermissionResult.deny("nope")


def make_context(
    tools: list[Tool],
    client: ModelClient | None = None,
    cwd: str | None = None,
    dangerously_skip_permissions: bool = False,
) -> ToolUseContext:
    return ToolUseContext(
        abort_controller=AbortController(),
        options=ToolUseOptions(
            tools=tools,
            model_client=client,
            cwd=cwd,
            dangerously_skip_permissions=dangerously_skip_permissions,
        ),
    )


class InMemoryProjectConfig:
    """Load/save callables over a ProjectConfig kept in memory."""

    def __init__(self, project_config: ProjectConfig | None = None):
        self.project_config = project_config or ProjectConfig()
        self.saves = 0

    def load(self) -> ProjectConfig:
        return self.project_config

    def save(self, project_config: ProjectConfig) -> None:
        self.project_config = project_config
        self.saves += 1


async def run_tool(tool: Tool, input: BaseModel, context: ToolUseContext) -> ToolResult:
    """Call a tool directly and return its terminal result."""
    result = None
    async for event in tool.call(input, context):
        if isinstance(event, ToolResult):
            result = event
    assert result is not None, f"{tool.name} produced no result"
    return result
