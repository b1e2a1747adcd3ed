"""Glob file search tool."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

from core.constants import MAX_GLOB_RESULTS
from core.tools import Tool, ToolResult, ToolUseContext

TRUNCATED_NOTE = "(Results are truncated. Consider using a more specific path or pattern.)"

PROMPT = """- Fast file pattern matching tool that works with any codebase size
- Supports glob patterns like "**/*.js" or "src/**/*.ts"
- Returns matching file paths sorted by modification time
- Use this tool when you need to find files by name patterns"""


class GlobInput(BaseModel):
    pattern: str = Field(description="The glob pattern to match files against")
    path: str | None = Field(
        default=None,
        description="The directory to search in. Defaults to the current working directory.",
    )


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


class GlobTool(Tool):
    name = "GlobTool"
    input_model = GlobInput

    async def description(self) -> str:
        return "Find files by name pattern"

    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        return PROMPT

    def is_read_only(self) -> bool:
        return True

    async def call(self, input: GlobInput, context: ToolUseContext, can_use_tool=None):
        root = Path(input.path or context.options.cwd or os.getcwd())
        matches = sorted(
            (path for path in root.glob(input.pattern) if path.is_file()),
            key=_mtime,
            reverse=True,
        )
        truncated = len(matches) > MAX_GLOB_RESULTS
        filenames = [str(path) for path in matches[:MAX_GLOB_RESULTS]]

        if not filenames:
            rendered = "No files found"
        else:
            rendered = "\n".join(filenames)
            if truncated:
                rendered += f"\n{TRUNCATED_NOTE}"
        yield ToolResult(
            data={"filenames": filenames, "num_files": len(filenames), "truncated": truncated},
            result_for_assistant=rendered,
        )
