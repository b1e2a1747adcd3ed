"""
Domain models for the conversation engine.

These are the core data structures used throughout the application.
"""

from .content import (
    ContentBlock,
    ImageBlock,
    ImageSource,
    RedactedThinkingBlock,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from .message import (
    APIAssistantMessage,
    AssistantMessage,
    FullToolUseResult,
    Message,
    ProgressMessage,
    UserMessage,
    UserMessageOptions,
    UserMessageParam,
)
from .usage import Usage
from .utils import gen_id

__all__ = [
    # Utils
    "gen_id",
    # Content blocks
    "ContentBlock",
    "TextBlock",
    "ImageBlock",
    "ImageSource",
    "ToolUseBlock",
    "ToolResultBlock",
    "ThinkingBlock",
    "RedactedThinkingBlock",
    # Provider payloads
    "Usage",
    "UserMessageParam",
    "APIAssistantMessage",
    # Message models
    "FullToolUseResult",
    "UserMessageOptions",
    "UserMessage",
    "AssistantMessage",
    "ProgressMessage",
    "Message",
]
