"""
Interactive session state.

A Session owns everything that lives for one run of the program: the
transcript, the cost tracker, the model client and the permission engine.
"""

import asyncio
import logging
import os
import signal
from dataclasses import dataclass, field
from typing import Callable

from agent.context import ContextProvider
from agent.prompts import get_system_prompt
from agent.tools import get_tools
from config.defaults import DEFAULT_MAX_THINKING_TOKENS
from config.history import add_to_history
from config.loader import get_current_project_config, save_current_project_config
from config.main_config import GlobalConfig
from core.abort import AbortController
from core.cost_tracker import CostTracker
from core.llm import AnthropicProvider, ModelClient
from core.messages import create_user_message, new_uuid
from core.models import Message
from core.permissions import (
    InteractivePermissionChecker,
    LLMPrefixClassifier,
    PermissionChecker,
    PermissionStore,
)
from core.permissions.interactive import AskFn
from core.query import query
from core.tools import ToolUseContext, ToolUseOptions

from .logging_config import log_timing

logger = logging.getLogger(__name__)


@dataclass
class Session:
    cwd: str
    config: GlobalConfig
    dangerously_skip_permissions: bool = False
    verbose: bool = False
    max_thinking_tokens: int = DEFAULT_MAX_THINKING_TOKENS
    ask: AskFn | None = None
    client: ModelClient | None = None
    session_id: str = field(default_factory=new_uuid)
    cost_tracker: CostTracker = field(default_factory=CostTracker)
    messages: list[Message] = field(default_factory=list)
    read_file_timestamps: dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if self.client is None:
            self.client = ModelClient.from_config(self.config, self.cost_tracker)
        self.store = PermissionStore(original_cwd=self.cwd)
        self.checker = PermissionChecker(self.store, LLMPrefixClassifier(self.client))
        self.can_use_tool = (
            InteractivePermissionChecker(self.checker, self.store, self.ask)
            if self.ask is not None
            else self.checker
        )
        self.context_provider = ContextProvider(self.cwd)
        self._controller: AbortController | None = None

    def abort(self) -> None:
        """Cancel the in-flight query, if any."""
        if self._controller is not None:
            self._controller.abort("Interrupted by user")

    def _install_interrupt_handler(self) -> bool:
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGINT, self.abort)
        except (NotImplementedError, RuntimeError):
            return False
        return True

    async def run_prompt(self, prompt: str, on_message: Callable[[Message], None]) -> list[Message]:
        """
        Run one user prompt to completion.

        Args:
            prompt: The user's input
            on_message: Called with every message as it is produced

        Returns:
            Messages produced by this turn, the user prompt included
        """
        add_to_history(prompt, self.cwd)
        tools = await get_tools()
        with log_timing(logger, "Context assembly"):
            system_prompt, context = await asyncio.gather(
                get_system_prompt(self.cwd, self.config.large_model),
                self.context_provider.get_context(),
            )

        user_message = create_user_message(prompt)
        self.messages.append(user_message)
        produced: list[Message] = [user_message]

        self._controller = AbortController()
        tool_use_context = ToolUseContext(
            abort_controller=self._controller,
            options=ToolUseOptions(
                tools=tools,
                model_client=self.client,
                dangerously_skip_permissions=self.dangerously_skip_permissions,
                max_thinking_tokens=self.max_thinking_tokens,
                verbose=self.verbose,
                cwd=self.cwd,
            ),
            read_file_timestamps=self.read_file_timestamps,
        )

        handler_installed = self._install_interrupt_handler()
        try:
            async for message in query(
                list(self.messages), system_prompt, context, self.can_use_tool, tool_use_context
            ):
                if message.type != "progress":
                    self.messages.append(message)
                produced.append(message)
                on_message(message)
        finally:
            if handler_installed:
                asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
            self._controller = None
        return produced

    def save_costs(self) -> None:
        """Record this session's totals on the project config."""
        project_config = get_current_project_config(self.cwd)
        save_current_project_config(
            self.cost_tracker.save_to_project(project_config, self.session_id), self.cwd
        )
        logger.info("Saved session %s costs for %s", self.session_id, os.path.abspath(self.cwd))

    async def close(self) -> None:
        provider = self.client.provider
        if isinstance(provider, AnthropicProvider):
            await provider.close()
