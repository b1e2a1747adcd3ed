"""File read tool with line numbers, paging and long-line truncation."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

from core.constants import DEFAULT_READ_LIMIT, MAX_FILE_READ_BYTES, MAX_LINE_LENGTH
from core.tools import Tool, ToolResult, ToolUseContext, ValidationResult

from .file_time import mark_read, normalize_path

BINARY_EXTENSIONS = {
    ".exe", ".dll", ".so", ".dylib", ".bin", ".o", ".a", ".class", ".jar",
    ".zip", ".tar", ".gz", ".bz2", ".xz", ".7z", ".rar",
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".pdf",
    ".mp3", ".mp4", ".wav", ".mov", ".avi", ".woff", ".woff2", ".ttf",
    ".pyc", ".sqlite", ".db",
}

# Share of control bytes above which a file is treated as binary
BINARY_CONTROL_RATIO = 0.30
BINARY_SNIFF_BYTES = 4096

PROMPT = f"""Reads a file from the local filesystem. The file_path parameter must be an absolute path, not a relative path. By default, it reads up to {DEFAULT_READ_LIMIT} lines starting from the beginning of the file. You can optionally specify a line offset and limit (especially handy for long files), but it's recommended to read the whole file by not providing these parameters. Any lines longer than {MAX_LINE_LENGTH} characters will be truncated."""


class FileReadInput(BaseModel):
    file_path: str = Field(description="The absolute path to the file to read")
    offset: int | None = Field(
        default=None,
        ge=1,
        description="The line number to start reading from. Only provide if the file is too large to read at once",
    )
    limit: int | None = Field(
        default=None,
        gt=0,
        description="The number of lines to read. Only provide if the file is too large to read at once.",
    )


def is_binary_file(path: Path) -> bool:
    if path.suffix.lower() in BINARY_EXTENSIONS:
        return True
    try:
        with open(path, "rb") as f:
            chunk = f.read(BINARY_SNIFF_BYTES)
    except OSError:
        return False
    if b"\x00" in chunk:
        return True
    if not chunk:
        return False
    control = sum(1 for byte in chunk if byte < 32 and byte not in (9, 10, 13))
    return control / len(chunk) > BINARY_CONTROL_RATIO


def truncate_long_lines(lines: list[str], max_line_length: int = MAX_LINE_LENGTH) -> list[str]:
    return [
        line[:max_line_length] + "..." if len(line) > max_line_length else line
        for line in lines
    ]


def add_line_numbers(lines: list[str], start_line: int) -> str:
    return "\n".join(f"{start_line + i:6d}\t{line}" for i, line in enumerate(lines))


class FileReadTool(Tool):
    name = "View"
    input_model = FileReadInput

    async def description(self) -> str:
        return "Read a file from the local filesystem."

    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        return PROMPT

    def is_read_only(self) -> bool:
        return True

    def render_tool_use_message(self, input: FileReadInput, verbose: bool = False) -> str:
        parts = [f"file_path: {input.file_path}"]
        if input.offset is not None:
            parts.append(f"offset: {input.offset}")
        if input.limit is not None:
            parts.append(f"limit: {input.limit}")
        return ", ".join(parts)

    async def validate_input(
        self, input: FileReadInput, context: ToolUseContext
    ) -> ValidationResult:
        path = Path(normalize_path(input.file_path, context.options.cwd))
        if not path.exists():
            return ValidationResult(result=False, message="File does not exist.")
        if not path.is_file():
            return ValidationResult(result=False, message=f"Not a file: {input.file_path}")
        if is_binary_file(path):
            return ValidationResult(
                result=False,
                message=f"Cannot read binary file: {input.file_path}",
            )
        size = path.stat().st_size
        if size > MAX_FILE_READ_BYTES and input.offset is None and input.limit is None:
            return ValidationResult(
                result=False,
                message=(
                    f"File content ({size // 1024}KB) exceeds maximum allowed size "
                    f"({MAX_FILE_READ_BYTES // 1024}KB). Please use offset and limit "
                    "parameters to read specific portions of the file."
                ),
                meta={"file_size": size},
            )
        return ValidationResult(result=True)

    async def call(self, input: FileReadInput, context: ToolUseContext, can_use_tool=None):
        file_path = normalize_path(input.file_path, context.options.cwd)
        text = Path(file_path).read_text(encoding="utf-8", errors="replace")
        all_lines = text.splitlines()

        start_line = input.offset or 1
        limit = input.limit or DEFAULT_READ_LIMIT
        selected = truncate_long_lines(all_lines[start_line - 1 : start_line - 1 + limit])
        mark_read(context.read_file_timestamps, file_path)

        data = {
            "file_path": file_path,
            "content": "\n".join(selected),
            "start_line": start_line,
            "num_lines": len(selected),
            "total_lines": len(all_lines),
        }
        rendered = add_line_numbers(selected, start_line) if selected else "(empty file)"
        end_line = start_line - 1 + len(selected)
        if end_line < len(all_lines):
            rendered += (
                f"\n\n(File has {len(all_lines) - end_line} more lines. "
                f"Use 'offset' to read beyond line {end_line})"
            )
        yield ToolResult(data=data, result_for_assistant=rendered)
