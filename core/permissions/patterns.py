"""Permission key derivation and matching for prefix-permission tools."""

from typing import Iterable

# Read-only commands that never need approval
SAFE_COMMANDS = frozenset(
    {
        "git status",
        "git diff",
        "git log",
        "git branch",
        "pwd",
        "tree",
        "date",
        "which",
    }
)


def prefix_permission_key(tool_name: str, prefix: str) -> str:
    """Key approving every command that starts with `prefix`: `Bash(git diff:*)`."""
    return f"{tool_name}({prefix}:*)"


def exact_permission_key(tool_name: str, command: str) -> str:
    """Key approving exactly one command: `Bash(npm test)`."""
    return f"{tool_name}({command})"


def command_has_exact_match_permission(
    tool_name: str, command: str, allowed_tools: Iterable[str]
) -> bool:
    """
    Check a full command against the safe list and exact approvals.

    A stored prefix key equal to the whole command counts as exact.
    """
    allowed = set(allowed_tools)
    if command in SAFE_COMMANDS:
        return True
    if exact_permission_key(tool_name, command) in allowed:
        return True
    return prefix_permission_key(tool_name, command) in allowed


def command_has_permission(
    tool_name: str,
    command: str,
    prefix: str | None,
    allowed_tools: Iterable[str],
) -> bool:
    allowed = set(allowed_tools)
    if command_has_exact_match_permission(tool_name, command, allowed):
        return True
    return prefix is not None and prefix_permission_key(tool_name, prefix) in allowed
