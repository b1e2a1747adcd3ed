"""Permission storage: persisted project approvals plus session write grants."""

import logging
import os
from typing import Callable

from pydantic import BaseModel

from config.loader import get_current_project_config, save_current_project_config
from config.project_config import ProjectConfig

from ..tools import PermissionScope, Tool

logger = logging.getLogger(__name__)


class PermissionStore:
    """
    Storage for permission approvals.

    Project-scoped approvals are permission keys persisted in the project
    config, kept sorted and deduplicated. Write approvals for file-editing
    tools live only in memory for the current session.
    """

    def __init__(
        self,
        load_project_config: Callable[[], ProjectConfig] | None = None,
        save_project_config: Callable[[ProjectConfig], None] | None = None,
        original_cwd: str | None = None,
    ):
        """
        Initialize the permission store.

        Args:
            load_project_config: Reads the current project config
            save_project_config: Persists an updated project config
            original_cwd: Directory the session started in
        """
        self.original_cwd = os.path.abspath(original_cwd or os.getcwd())
        self._load = load_project_config or (
            lambda: get_current_project_config(self.original_cwd)
        )
        self._save = save_project_config or (
            lambda config: save_current_project_config(config, self.original_cwd)
        )
        # Resolved directories the session may write under
        self._session_write_dirs: set[str] = set()

    def allowed_tools(self) -> list[str]:
        return list(self._load().allowed_tools)

    def add_allowed_tool(self, key: str) -> bool:
        """
        Persist a permission key.

        Returns:
            True if the key was new
        """
        project_config = self._load()
        if key in project_config.allowed_tools:
            return False
        allowed = sorted({*project_config.allowed_tools, key})
        self._save(project_config.model_copy(update={"allowed_tools": allowed}))
        logger.info("Saved permission: %s", key)
        return True

    def remove_allowed_tool(self, key: str) -> bool:
        project_config = self._load()
        if key not in project_config.allowed_tools:
            return False
        allowed = [k for k in project_config.allowed_tools if k != key]
        self._save(project_config.model_copy(update={"allowed_tools": allowed}))
        logger.info("Removed permission: %s", key)
        return True

    def grant_write_permission_for_original_dir(self) -> None:
        directory = os.path.realpath(self.original_cwd)
        self._session_write_dirs.add(directory)
        logger.info("Granted session write permission for %s", directory)

    def has_write_permission(self, path: str | None) -> bool:
        if path is None:
            return False
        target = os.path.realpath(path)
        for directory in self._session_write_dirs:
            if target == directory or target.startswith(directory + os.sep):
                return True
        return False

    def save_permission(self, tool: Tool, input: BaseModel, prefix: str | None) -> None:
        """
        Remember an approval for a tool use.

        Session-scoped tools get an in-memory write grant; every other tool
        gets its permission key persisted.

        Args:
            tool: The approved tool
            input: Resolved input of the approved call
            prefix: Command prefix to approve, for prefix-permission tools
        """
        if tool.permission_scope is PermissionScope.SESSION:
            self.grant_write_permission_for_original_dir()
            return
        self.add_allowed_tool(tool.permission_key(input, prefix))
