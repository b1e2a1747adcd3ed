"""
Content search tool backed by ripgrep.

Returns the files whose contents match a regular expression, most recently
modified first.
"""

import asyncio
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

from core.abort import race_abort
from core.constants import DEFAULT_GREP_TIMEOUT_SECONDS, MAX_GLOB_RESULTS
from core.exceptions import AbortError
from core.tools import Tool, ToolResult, ToolUseContext

logger = logging.getLogger(__name__)

RG_PATH = "rg"  # Assume ripgrep is in PATH

PROMPT = """- Fast content search tool that works with any codebase size
- Searches file contents using regular expressions
- Supports full regex syntax (eg. "log.*Error", "function\\s+\\w+", etc.)
- Filter files by pattern with the include parameter (eg. "*.js", "*.{ts,tsx}")
- Returns matching file paths sorted by modification time
- Use this tool when you need to find files containing specific patterns"""


class GrepInput(BaseModel):
    pattern: str = Field(description="The regular expression pattern to search for in file contents")
    path: str | None = Field(
        default=None,
        description="The directory to search in. Defaults to the current working directory.",
    )
    include: str | None = Field(
        default=None,
        description='File pattern to include in the search (e.g. "*.js", "*.{ts,tsx}")',
    )


def build_rg_args(input: GrepInput, search_path: str) -> list[str]:
    args = [
        RG_PATH,
        "--files-with-matches",
        "--ignore-case",
        "--hidden",
        "--glob=!.git/*",  # Exclude .git directory
    ]
    if input.include:
        args.append(f"--glob={input.include}")
    args.extend(["--regexp", input.pattern, search_path])
    return args


def _mtime(path: str) -> float:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return 0.0


class GrepTool(Tool):
    name = "GrepTool"
    input_model = GrepInput

    async def description(self) -> str:
        return "Search file contents with regular expressions"

    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        return PROMPT

    def is_read_only(self) -> bool:
        return True

    async def call(self, input: GrepInput, context: ToolUseContext, can_use_tool=None):
        search_path = input.path or context.options.cwd or os.getcwd()
        process = await asyncio.create_subprocess_exec(
            *build_rg_args(input, search_path),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=context.options.cwd or os.getcwd(),
        )
        try:
            async with asyncio.timeout(DEFAULT_GREP_TIMEOUT_SECONDS):
                stdout, stderr = await race_abort(process.communicate(), context.signal)
        except (TimeoutError, AbortError):
            process.kill()
            await process.wait()
            raise

        # Exit code 1 means no matches
        if process.returncode not in (0, 1):
            raise RuntimeError(
                f"ripgrep failed with exit code {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )

        files = [line for line in stdout.decode("utf-8", errors="replace").splitlines() if line]
        files.sort(key=_mtime, reverse=True)
        truncated = len(files) > MAX_GLOB_RESULTS
        files = [str(Path(search_path, f)) if not os.path.isabs(f) else f for f in files[:MAX_GLOB_RESULTS]]

        if not files:
            rendered = "No files found"
        else:
            rendered = f"Found {len(files)} file{'s' if len(files) != 1 else ''}\n" + "\n".join(files)
            if truncated:
                rendered += "\n(Results are truncated. Consider using a more specific path or pattern.)"
        yield ToolResult(
            data={"filenames": files, "num_files": len(files), "truncated": truncated},
            result_for_assistant=rendered,
        )
