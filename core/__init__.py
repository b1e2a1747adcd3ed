"""
Core conversation engine.

This package contains the transport-agnostic engine: message model,
normalization, tool contract and invocation pipeline, scheduler, query loop,
model-call wrapper and permission engine. The cli package provides the
terminal front end around these operations.
"""

from .abort import AbortController, AbortSignal
from .cost_tracker import CostTracker, format_cost
from .exceptions import (
    AbortError,
    ConfigError,
    CoreError,
    InvalidOperationError,
    ToolNotFoundError,
)
from .messages import (
    create_assistant_api_error_message,
    create_assistant_message,
    create_progress_message,
    create_tool_result_message,
    create_tool_result_stop_message,
    create_user_message,
)
from .models import (
    AssistantMessage,
    ContentBlock,
    Message,
    ProgressMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
    gen_id,
)
from .normalization import (
    get_errored_tool_use_messages,
    get_in_progress_tool_use_ids,
    get_unresolved_tool_use_ids,
    normalize_messages,
    normalize_messages_for_api,
    reorder_messages,
)
from .query import BinaryFeedbackResult, query, query_with_binary_feedback
from .scheduler import run_tools_concurrently, run_tools_serially
from .tool_runner import format_error, run_tool_use
from .tools import (
    PermissionScope,
    Tool,
    ToolProgress,
    ToolResult,
    ToolUseContext,
    ToolUseOptions,
    ValidationResult,
)

__all__ = [
    # Exceptions
    "CoreError",
    "AbortError",
    "ConfigError",
    "InvalidOperationError",
    "ToolNotFoundError",
    # Cancellation
    "AbortController",
    "AbortSignal",
    # Cost
    "CostTracker",
    "format_cost",
    # Models
    "Message",
    "UserMessage",
    "AssistantMessage",
    "ProgressMessage",
    "ContentBlock",
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "gen_id",
    # Message factories
    "create_user_message",
    "create_assistant_message",
    "create_assistant_api_error_message",
    "create_progress_message",
    "create_tool_result_message",
    "create_tool_result_stop_message",
    # Normalization
    "normalize_messages",
    "normalize_messages_for_api",
    "reorder_messages",
    "get_unresolved_tool_use_ids",
    "get_in_progress_tool_use_ids",
    "get_errored_tool_use_messages",
    # Tools
    "Tool",
    "ToolProgress",
    "ToolResult",
    "ToolUseContext",
    "ToolUseOptions",
    "ValidationResult",
    "PermissionScope",
    # Engine
    "query",
    "query_with_binary_feedback",
    "BinaryFeedbackResult",
    "run_tool_use",
    "run_tools_concurrently",
    "run_tools_serially",
    "format_error",
]
