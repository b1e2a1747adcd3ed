"""Permission system models."""

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class PermissionResult(BaseModel):
    """Outcome of a permission check for one tool use."""

    approved: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> "PermissionResult":
        return cls(approved=True)

    @classmethod
    def deny(cls, reason: str) -> "PermissionResult":
        return cls(approved=False, reason=reason)


class CommandPrefixResult(BaseModel):
    """Classifier verdict for a single shell command."""

    command_prefix: str | None = None
    command_injection_detected: bool = False


class CommandSubcommandPrefixResult(CommandPrefixResult):
    """Classifier verdict for a full command plus each of its sub-commands."""

    subcommand_prefixes: dict[str, CommandPrefixResult] = Field(default_factory=dict)


class Action(str, Enum):
    """User action in response to permission request."""

    APPROVE_ONCE = "once"
    APPROVE_ALWAYS = "always"
    APPROVE_PREFIX = "prefix"
    DENY = "deny"


class PermissionRequest(BaseModel):
    """Permission request shown to the user for a sensitive tool use."""

    tool_name: str
    tool_use_id: str | None = None
    description: str
    details: dict[str, Any] = Field(default_factory=dict)
    suggested_prefix: str | None = None
    is_dangerous: bool = False
    warning: str | None = None
    requested_at: float = Field(default_factory=time.time)


class PermissionResponse(BaseModel):
    """User response to a permission request."""

    action: Action
    created_at: float = Field(default_factory=time.time)
