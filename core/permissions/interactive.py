"""Interactive approval on top of the automatic permission checker."""

import logging
from typing import Awaitable, Callable

from pydantic import BaseModel

from ..abort import race_abort
from ..constants import REJECT_MESSAGE
from ..models import AssistantMessage
from ..tools import Tool, ToolUseContext
from .checker import PermissionChecker
from .dangerous import is_dangerous_bash_command
from .models import Action, PermissionRequest, PermissionResponse, PermissionResult
from .store import PermissionStore

logger = logging.getLogger(__name__)

AskFn = Callable[[PermissionRequest], Awaitable[PermissionResponse]]


class InteractivePermissionChecker:
    """
    Permission checker that asks the user when stored approvals do not cover a call.

    The wait for the user's answer is an unbounded suspension that only the
    query's abort signal can interrupt.
    """

    def __init__(self, checker: PermissionChecker, store: PermissionStore, ask: AskFn):
        """
        Initialize the interactive checker.

        Args:
            checker: Automatic checker consulted first
            store: Store that persists "always" answers
            ask: Callback that presents a request and returns the user's answer
        """
        self.checker = checker
        self.store = store
        self.ask = ask

    async def build_request(
        self,
        tool: Tool,
        input: BaseModel,
        context: ToolUseContext,
    ) -> PermissionRequest:
        command = tool.permission_command(input)
        is_dangerous, warning = (False, "")
        if command:
            is_dangerous, warning = is_dangerous_bash_command(command)
        return PermissionRequest(
            tool_name=tool.name,
            tool_use_id=context.tool_use_id,
            description=tool.render_tool_use_message(input, verbose=True),
            details=input.model_dump(exclude_none=True),
            suggested_prefix=await self.checker.suggest_prefix(tool, input, context),
            is_dangerous=is_dangerous,
            warning=warning or None,
        )

    async def __call__(
        self,
        tool: Tool,
        input: BaseModel,
        context: ToolUseContext,
        assistant_message: AssistantMessage | None = None,
    ) -> PermissionResult:
        result = await self.checker(tool, input, context, assistant_message)
        if result.approved:
            return result

        request = await self.build_request(tool, input, context)
        response = await race_abort(self.ask(request), context.signal)
        logger.debug("Permission response for %s: %s", tool.name, response.action.value)

        if response.action == Action.APPROVE_ONCE:
            return PermissionResult.allow()
        if response.action == Action.APPROVE_ALWAYS:
            self.store.save_permission(tool, input, None)
            return PermissionResult.allow()
        if response.action == Action.APPROVE_PREFIX:
            if request.suggested_prefix is None:
                logger.warning("Prefix approval requested without a prefix for %s", tool.name)
            self.store.save_permission(tool, input, request.suggested_prefix)
            return PermissionResult.allow()
        return PermissionResult.deny(REJECT_MESSAGE)
