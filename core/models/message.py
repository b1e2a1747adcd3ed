"""Message models.

A transcript is a list of three message variants. User and assistant
messages wrap a provider-shaped payload; progress messages are local-only
snapshots of a running tool and never reach the model.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .content import ContentBlock
from .usage import Usage


class FullToolUseResult(BaseModel):
    """Raw tool output kept beside the tool_result block for local consumers."""

    model_config = ConfigDict(frozen=True)

    data: Any = None
    result_for_assistant: str | list[ContentBlock] = ""


class UserMessageOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_note_request: bool = False
    note_context: str | None = None


class UserMessageParam(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user"] = "user"
    content: str | list[ContentBlock]


class APIAssistantMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["message"] = "message"
    role: Literal["assistant"] = "assistant"
    model: str
    content: list[ContentBlock] = Field(default_factory=list)
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: Usage = Field(default_factory=Usage)


class UserMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["user"] = "user"
    uuid: str
    message: UserMessageParam
    tool_use_result: FullToolUseResult | None = None
    options: UserMessageOptions | None = None


class AssistantMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["assistant"] = "assistant"
    uuid: str
    cost_usd: float = 0.0
    duration_ms: float = 0.0
    message: APIAssistantMessage
    is_api_error_message: bool = False


class ProgressMessage(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: Literal["progress"] = "progress"
    uuid: str
    content: AssistantMessage
    normalized_messages: list[Any] = Field(default_factory=list)
    sibling_tool_use_ids: frozenset[str] = frozenset()
    tools: list[Any] = Field(default_factory=list)
    tool_use_id: str


Message = UserMessage | AssistantMessage | ProgressMessage
