"""
File edit tool performing a single exact string replacement.

An empty old_string creates a new file. Edits need a session write grant
and a fresh read of the file.
"""

import difflib
from pathlib import Path

from pydantic import BaseModel, Field

from core.tools import PermissionScope, Tool, ToolResult, ToolUseContext, ValidationResult

from .file_time import check_not_modified, mark_read, normalize_path

# Lines of context shown around an edit
SNIPPET_CONTEXT_LINES = 4

ERROR_SAME_OLD_NEW = "No changes to make: old_string and new_string are exactly the same."
ERROR_FILE_EXISTS = "Cannot create new file - file already exists."
ERROR_FILE_NOT_FOUND = "File does not exist."
ERROR_OLD_STRING_NOT_FOUND = "String to replace not found in file."
ERROR_OLD_STRING_MULTIPLE = (
    "Found {count} matches of the string to replace. For safety, this tool only "
    "supports replacing exactly one occurrence at a time. Add more lines of "
    "context to your edit and try again."
)

PROMPT = """This is a tool for editing files. It replaces exactly one occurrence of old_string with new_string.

Before using this tool, use the View tool to understand the file's contents and context.

1. old_string must match the file contents exactly, including all whitespace and indentation.
2. old_string must uniquely identify the location: include 3-5 lines of context before and after the change.
3. To create a new file, use an empty old_string and the new file's contents as new_string."""


class FileEditInput(BaseModel):
    file_path: str = Field(description="The absolute path to the file to modify")
    old_string: str = Field(description="The text to replace")
    new_string: str = Field(description="The text to replace it with")


def make_snippet(content: str, new_string: str, start: int) -> tuple[str, int]:
    """Lines around the replaced region, and the 1-based number of the first one."""
    lines = content.splitlines()
    first_changed = content[:start].count("\n")
    last_changed = first_changed + new_string.count("\n")
    begin = max(0, first_changed - SNIPPET_CONTEXT_LINES)
    end = min(len(lines), last_changed + SNIPPET_CONTEXT_LINES + 1)
    return "\n".join(lines[begin:end]), begin + 1


class FileEditTool(Tool):
    name = "Edit"
    input_model = FileEditInput
    permission_scope = PermissionScope.SESSION

    async def description(self) -> str:
        return "A tool for editing files"

    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        return PROMPT

    def is_read_only(self) -> bool:
        return False

    def needs_permissions(self, input: FileEditInput) -> bool:
        return True

    def permission_path(self, input: FileEditInput) -> str:
        return input.file_path

    def normalize_input(self, input: FileEditInput, context: ToolUseContext) -> FileEditInput:
        return input.model_copy(
            update={"file_path": normalize_path(input.file_path, context.options.cwd)}
        )

    def render_tool_use_message(self, input: FileEditInput, verbose: bool = False) -> str:
        return f"file_path: {input.file_path}"

    async def validate_input(
        self, input: FileEditInput, context: ToolUseContext
    ) -> ValidationResult:
        if input.old_string == input.new_string:
            return ValidationResult(result=False, message=ERROR_SAME_OLD_NEW)

        path = Path(input.file_path)
        if not input.old_string:
            if path.exists():
                return ValidationResult(result=False, message=ERROR_FILE_EXISTS)
            return ValidationResult(result=True)
        if not path.is_file():
            return ValidationResult(result=False, message=ERROR_FILE_NOT_FOUND)

        problem = check_not_modified(context.read_file_timestamps, input.file_path)
        if problem:
            return ValidationResult(result=False, message=problem)

        count = path.read_text(encoding="utf-8").count(input.old_string)
        if count == 0:
            return ValidationResult(result=False, message=ERROR_OLD_STRING_NOT_FOUND)
        if count > 1:
            return ValidationResult(
                result=False,
                message=ERROR_OLD_STRING_MULTIPLE.format(count=count),
                meta={"count": count},
            )
        return ValidationResult(result=True)

    async def call(self, input: FileEditInput, context: ToolUseContext, can_use_tool=None):
        path = Path(input.file_path)
        if input.old_string:
            original = path.read_text(encoding="utf-8")
            start = original.index(input.old_string)
            updated = original.replace(input.old_string, input.new_string, 1)
        else:
            original, start, updated = "", 0, input.new_string
            path.parent.mkdir(parents=True, exist_ok=True)

        path.write_text(updated, encoding="utf-8")
        mark_read(context.read_file_timestamps, input.file_path)

        diff = "".join(
            difflib.unified_diff(
                original.splitlines(keepends=True),
                updated.splitlines(keepends=True),
                fromfile=input.file_path,
                tofile=input.file_path,
            )
        )
        snippet, first_line = make_snippet(updated, input.new_string, start)
        numbered = "\n".join(
            f"{first_line + i:6d}\t{line}" for i, line in enumerate(snippet.splitlines())
        )
        message = (
            f"The file {input.file_path} has been updated. Here's the result of running "
            f"`cat -n` on a snippet of the edited file:\n{numbered}"
        )
        yield ToolResult(
            data={"file_path": input.file_path, "diff": diff},
            result_for_assistant=message,
        )
