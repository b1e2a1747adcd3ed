"""
Permission engine for tool uses.

Decides whether a tool use may run without asking, derives and persists
approval keys, and analyses shell commands by prefix.
"""

from .checker import PermissionChecker, permission_denied_message
from .commands import split_command
from .dangerous import is_dangerous_bash_command
from .interactive import InteractivePermissionChecker
from .models import (
    Action,
    CommandPrefixResult,
    CommandSubcommandPrefixResult,
    PermissionRequest,
    PermissionResponse,
    PermissionResult,
)
from .patterns import (
    SAFE_COMMANDS,
    command_has_exact_match_permission,
    command_has_permission,
    exact_permission_key,
    prefix_permission_key,
)
from .prefix import LLMPrefixClassifier, PrefixClassifier
from .store import PermissionStore

__all__ = [
    # Models
    "Action",
    "PermissionResult",
    "PermissionRequest",
    "PermissionResponse",
    "CommandPrefixResult",
    "CommandSubcommandPrefixResult",
    # Functions
    "split_command",
    "is_dangerous_bash_command",
    "permission_denied_message",
    "prefix_permission_key",
    "exact_permission_key",
    "command_has_exact_match_permission",
    "command_has_permission",
    "SAFE_COMMANDS",
    # Classes
    "PermissionChecker",
    "InteractivePermissionChecker",
    "PermissionStore",
    "PrefixClassifier",
    "LLMPrefixClassifier",
]
