"""
Tool contract consumed by the conversation engine.

A tool declares its input schema as a pydantic model and its capabilities
as methods and class attributes. The permission engine and the scheduler
only ever ask a tool about itself; they never compare tool identities.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Literal

from pydantic import BaseModel

from .abort import AbortController
from .models import AssistantMessage, Message

if TYPE_CHECKING:
    from .llm.client import ModelClient
    from .permissions.models import PermissionResult


class PermissionScope(str, Enum):
    """Where an approval for a tool is remembered."""

    PROJECT = "project"  # persisted permission key in the project config
    SESSION = "session"  # in-memory write grant for this process only


class ValidationResult(BaseModel):
    result: bool
    message: str = ""
    meta: dict[str, Any] | None = None


@dataclass
class ToolProgress:
    """Partial output from a running tool, shown live and never sent to the model."""

    content: AssistantMessage
    normalized_messages: list[Message] = field(default_factory=list)
    tools: list["Tool"] = field(default_factory=list)
    type: Literal["progress"] = "progress"


@dataclass
class ToolResult:
    """Terminal output of a tool call."""

    data: Any
    result_for_assistant: str | list[Any]
    type: Literal["result"] = "result"


ToolEvent = ToolProgress | ToolResult


@dataclass
class ToolUseOptions:
    tools: list["Tool"]
    model_client: "ModelClient | None" = None
    dangerously_skip_permissions: bool = False
    max_thinking_tokens: int = 0
    verbose: bool = False
    cwd: str | None = None
    is_sub_agent: bool = False


@dataclass
class ToolUseContext:
    """Execution context shared by every tool call in one query."""

    abort_controller: AbortController
    options: ToolUseOptions
    read_file_timestamps: dict[str, float] = field(default_factory=dict)
    message_id: str | None = None
    # Only set on the copy handed to a single tool use
    tool_use_id: str | None = None

    @property
    def signal(self):
        return self.abort_controller.signal

    def for_tool_use(self, tool_use_id: str) -> "ToolUseContext":
        return replace(self, tool_use_id=tool_use_id)


CanUseToolFn = Callable[
    ["Tool", BaseModel, ToolUseContext, AssistantMessage],
    Awaitable["PermissionResult"],
]


class Tool(ABC):
    """Base class for tools the model can call."""

    name: str
    input_model: type[BaseModel]
    supports_prefix_permissions: bool = False
    permission_scope: PermissionScope = PermissionScope.PROJECT

    @abstractmethod
    async def description(self) -> str:
        """Short description shown to the user."""

    @abstractmethod
    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        """Description sent to the model alongside the input schema."""

    @abstractmethod
    def is_read_only(self) -> bool:
        """Whether the tool is free of side effects and may run concurrently."""

    async def is_enabled(self) -> bool:
        return True

    def input_json_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema()

    def needs_permissions(self, input: BaseModel) -> bool:
        return not self.is_read_only()

    def normalize_input(self, input: BaseModel, context: ToolUseContext) -> BaseModel:
        return input

    async def validate_input(
        self, input: BaseModel, context: ToolUseContext
    ) -> ValidationResult:
        return ValidationResult(result=True)

    def permission_key(self, input: BaseModel, prefix: str | None = None) -> str:
        """Key stored in the project's allowed tools when approval is persisted."""
        return self.name

    def permission_command(self, input: BaseModel) -> str | None:
        """Command line checked against prefix approvals, for prefix-permission tools."""
        return None

    def permission_path(self, input: BaseModel) -> str | None:
        """File system path a session-scoped write approval must cover."""
        return None

    def render_tool_use_message(self, input: BaseModel, verbose: bool = False) -> str:
        return ", ".join(
            f"{key}: {value!r}" for key, value in input.model_dump(exclude_none=True).items()
        )

    @abstractmethod
    def call(
        self,
        input: BaseModel,
        context: ToolUseContext,
        can_use_tool: CanUseToolFn | None = None,
    ) -> AsyncIterator[ToolEvent]:
        """Run the tool, yielding progress events and one result."""


def find_tool(tools: list[Tool], name: str) -> Tool | None:
    for tool in tools:
        if tool.name == name:
            return tool
    return None
