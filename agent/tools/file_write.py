"""File write tool. Requires a session write grant and read-before-write."""

from pathlib import Path

from pydantic import BaseModel, Field

from core.tools import PermissionScope, Tool, ToolResult, ToolUseContext, ValidationResult

from .file_time import check_not_modified, mark_read, normalize_path

PROMPT = """Write a file to the local filesystem. Overwrites the existing file if there is one.

Before using this tool:
1. Use the View tool to understand the file's contents and context
2. Directory Verification (only applicable when creating new files):
   - Use the LS tool to verify the parent directory exists and is the correct location"""


class FileWriteInput(BaseModel):
    file_path: str = Field(description="The absolute path to the file to write (must be absolute, not relative)")
    content: str = Field(description="The content to write to the file")


class FileWriteTool(Tool):
    name = "Replace"
    input_model = FileWriteInput
    permission_scope = PermissionScope.SESSION

    async def description(self) -> str:
        return "Write a file to the local filesystem."

    async def prompt(self, dangerously_skip_permissions: bool = False) -> str:
        return PROMPT

    def is_read_only(self) -> bool:
        return False

    def needs_permissions(self, input: FileWriteInput) -> bool:
        return True

    def permission_path(self, input: FileWriteInput) -> str:
        return input.file_path

    def normalize_input(self, input: FileWriteInput, context: ToolUseContext) -> FileWriteInput:
        return input.model_copy(
            update={"file_path": normalize_path(input.file_path, context.options.cwd)}
        )

    def render_tool_use_message(self, input: FileWriteInput, verbose: bool = False) -> str:
        return f"file_path: {input.file_path}"

    async def validate_input(
        self, input: FileWriteInput, context: ToolUseContext
    ) -> ValidationResult:
        problem = check_not_modified(context.read_file_timestamps, input.file_path)
        if problem:
            return ValidationResult(result=False, message=problem)
        return ValidationResult(result=True)

    async def call(self, input: FileWriteInput, context: ToolUseContext, can_use_tool=None):
        path = Path(input.file_path)
        existed = path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(input.content, encoding="utf-8")
        mark_read(context.read_file_timestamps, input.file_path)

        if existed:
            message = f"The file {input.file_path} has been updated."
        else:
            message = f"File created successfully at: {input.file_path}"
        data = {
            "type": "update" if existed else "create",
            "file_path": input.file_path,
            "num_lines": input.content.count("\n") + 1,
        }
        yield ToolResult(data=data, result_for_assistant=message)
