"""Directory listing tool producing an indented tree."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

from core.constants import MAX_LS_ENTRIES
from core.tools import Tool, ToolResult, ToolUseContext

SKIPPED_DIRS = {"__pycache__", "node_modules"}

TRUNCATED_NOTE = (
    f"There are more than {MAX_LS_ENTRIES} files in the directory. Use the LS tool "
    "(passing a specific path), Bash tool, and other tools to explore nested "
    f"directories. The first {MAX_LS_ENTRIES} files and directories are included below:\n\n"
)

PROMPT = "Lists files and directories in a given path. The path parameter must be an absolute path, not a relative path. You should generally prefer the GlobTool and GrepTool tools, if you know which directories to search."


class LSInput(BaseModel):
    path: str = Field(description="The absolute path to the directory to list (must be absolute, not relative)")


def _skip(name: str) -> bool:
    return name.startswith(".") or name in SKIPPED_DIRS


def list_directory(root: Path, max_entries: int = MAX_LS_ENTRIES) -> tuple[list[str], bool]:
    """
    Walk a directory breadth-first, skipping hidden and cache directories.

    Returns:
        Relative paths (directories end with a separator) and whether the
        walk stopped at max_entries
    """
    results: list[str] = []
    queue = [root]
    while queue:
        directory = queue.pop(0)
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError:
            continue
        for entry in entries:
            if _skip(entry.name):
                continue
            relative = os.path.relpath(entry.path, root)
            if entry.is_dir(follow_symlinks=False):
                results.append(relative + os.sep)
                queue.append(Path(entry.path))
            else:
                results.append(relative)
            if len(results) >= max_entries:
                return results, True
    return results, False


def render_tree(root: Path, paths: list[str]) -> str:
    """Render relative paths as a `- name` tree under root."""
    lines = [f"- {root}{os.sep}"]
    for path in sorted(paths):
        trimmed = path.rstrip(os.sep)
        depth = trimmed.count(os.sep) + 1
        name = os.path.basename(trimmed) + (os.sep if path.endswith(os.sep) else "")
        lines.append(f"{'  ' * depth}- {name}")
    return "\n".join(lines)


class LSTool(Tool):
    name = "LS"
    input_model = LSInput

    async def description(self) -> str:
        return "Lists files and directories in a given path"

    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        return PROMPT

    def is_read_only(self) -> bool:
        return True

    async def call(self, input: LSInput, context: ToolUseContext, can_use_tool=None):
        root = Path(input.path)
        if not root.is_absolute():
            root = Path(context.options.cwd or os.getcwd()) / root
        paths, truncated = list_directory(root)
        tree = render_tree(root, paths)
        rendered = f"{TRUNCATED_NOTE}{tree}" if truncated else tree
        yield ToolResult(data=tree, result_for_assistant=rendered)
