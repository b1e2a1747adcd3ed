"""Permission checker implementation."""

import logging
import os

from pydantic import BaseModel

from ..constants import PRODUCT_NAME
from ..exceptions import AbortError
from ..models import AssistantMessage
from ..tools import PermissionScope, Tool, ToolUseContext
from .commands import split_command
from .models import PermissionResult
from .patterns import command_has_exact_match_permission, command_has_permission
from .prefix import PrefixClassifier
from .store import PermissionStore

logger = logging.getLogger(__name__)

PERMISSION_CHECK_ERROR = "Error checking permissions"


def permission_denied_message(tool: Tool) -> str:
    return (
        f"{PRODUCT_NAME} requested permissions to use {tool.name}, "
        "but you haven't granted it yet."
    )


class PermissionChecker:
    """
    Automatic permission checker for tool uses.

    Decides from stored approvals alone and never prompts; see
    InteractivePermissionChecker for the prompting variant.
    """

    def __init__(self, store: PermissionStore, prefix_classifier: PrefixClassifier):
        """
        Initialize the permission checker.

        Args:
            store: Permission store with persisted and session approvals
            prefix_classifier: Classifier for shell command prefixes
        """
        self.store = store
        self.prefix_classifier = prefix_classifier
        self._bypass_warned = False

    async def __call__(
        self,
        tool: Tool,
        input: BaseModel,
        context: ToolUseContext,
        assistant_message: AssistantMessage | None = None,
    ) -> PermissionResult:
        return await self.has_permissions_to_use_tool(tool, input, context, assistant_message)

    async def has_permissions_to_use_tool(
        self,
        tool: Tool,
        input: BaseModel,
        context: ToolUseContext,
        assistant_message: AssistantMessage | None = None,
    ) -> PermissionResult:
        """
        Decide whether a tool use may run without asking the user.

        Args:
            tool: Tool being invoked
            input: Resolved (validated and normalized) input
            context: Execution context of the current query
            assistant_message: Assistant turn that requested the tool

        Returns:
            Approval, or denial with a user-facing reason

        Raises:
            AbortError: If the query was cancelled
        """
        if context.options.dangerously_skip_permissions:
            if not self._bypass_warned:
                logger.warning("⚠️  BYPASS MODE ACTIVE: all tool permission checks are skipped")
                self._bypass_warned = True
            return PermissionResult.allow()

        context.signal.throw_if_aborted()

        try:
            if not tool.needs_permissions(input):
                return PermissionResult.allow()
        except Exception:
            logger.exception("Error checking permissions for %s", tool.name)
            return PermissionResult.deny(PERMISSION_CHECK_ERROR)

        allowed_tools = self.store.allowed_tools()

        if tool.supports_prefix_permissions:
            if tool.name in allowed_tools:
                return PermissionResult.allow()
            command = tool.permission_command(input) or ""
            return await self.bash_tool_has_permission(tool, command, context, allowed_tools)

        if tool.permission_scope is PermissionScope.SESSION:
            if self.store.has_write_permission(tool.permission_path(input)):
                return PermissionResult.allow()
            return PermissionResult.deny(permission_denied_message(tool))

        if tool.permission_key(input) in allowed_tools:
            return PermissionResult.allow()
        return PermissionResult.deny(permission_denied_message(tool))

    async def bash_tool_has_permission(
        self,
        tool: Tool,
        command: str,
        context: ToolUseContext,
        allowed_tools: list[str],
    ) -> PermissionResult:
        """
        Apply the shell command approval algorithm.

        Exact and safe-list matches approve immediately. Otherwise the
        classifier is consulted; a failed classification denies, a suspected
        injection only accepts exact matches, and a compound command needs
        every sub-command individually approved.

        Raises:
            AbortError: If the query was cancelled during classification
        """
        denied = PermissionResult.deny(permission_denied_message(tool))

        if command_has_exact_match_permission(tool.name, command, allowed_tools):
            return PermissionResult.allow()

        cwd = context.options.cwd or os.getcwd()
        subcommands = [sub for sub in split_command(command) if sub != f"cd {cwd}"]

        try:
            prefix_result = await self.prefix_classifier(command, context.signal)
        except AbortError:
            raise
        except Exception:
            logger.exception("Prefix classification raised for %r", command)
            prefix_result = None

        if context.signal.aborted:
            raise AbortError("Permission check aborted")

        if prefix_result is None:
            return denied

        if prefix_result.command_injection_detected:
            if command_has_exact_match_permission(tool.name, command, allowed_tools):
                return PermissionResult.allow()
            return denied

        if len(subcommands) < 2:
            if command_has_permission(
                tool.name, command, prefix_result.command_prefix, allowed_tools
            ):
                return PermissionResult.allow()
            return denied

        for subcommand in subcommands:
            sub_result = prefix_result.subcommand_prefixes.get(subcommand)
            if sub_result is None or sub_result.command_injection_detected:
                return denied
            if not command_has_permission(
                tool.name, subcommand, sub_result.command_prefix, allowed_tools
            ):
                return denied
        return PermissionResult.allow()

    async def suggest_prefix(
        self, tool: Tool, input: BaseModel, context: ToolUseContext
    ) -> str | None:
        """Prefix worth offering for persistent approval, if any."""
        if not tool.supports_prefix_permissions:
            return None
        command = tool.permission_command(input) or ""
        if len(split_command(command)) > 1:
            return None
        try:
            result = await self.prefix_classifier(command, context.signal)
        except AbortError:
            raise
        except Exception:
            logger.exception("Prefix classification raised for %r", command)
            return None
        if result is None or result.command_injection_detected:
            return None
        return result.command_prefix
