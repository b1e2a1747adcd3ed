"""
Tests for the View, Replace and Edit file tools.

Covers line-numbered reads, paging, binary detection and the
read-before-write rule shared by the write and edit tools.
"""

import os
from pathlib import Path

import pytest

from agent.tools.file_edit import (
    ERROR_FILE_EXISTS,
    ERROR_FILE_NOT_FOUND,
    ERROR_OLD_STRING_NOT_FOUND,
    ERROR_SAME_OLD_NEW,
    FileEditInput,
    FileEditTool,
)
from agent.tools.file_read import FileReadInput, FileReadTool, add_line_numbers, truncate_long_lines
from agent.tools.file_time import check_not_modified, mark_read, normalize_path
from agent.tools.file_write import FileWriteInput, FileWriteTool
from core.tools import PermissionScope

from helpers import make_context, run_tool


@pytest.fixture
def context(tmp_path):
    return make_context([], cwd=str(tmp_path))


@pytest.fixture
def source_file(tmp_path) -> Path:
    path = tmp_path / "app.py"
    path.write_text("def main():\n    print('hi')\n\nmain()\n")
    return path


def touch_later(path: Path) -> None:
    """Move a file's mtime into the future, as an outside edit would."""
    later = path.stat().st_mtime + 10
    os.utime(path, (later, later))


class TestFileTime:
    """Tests for read timestamp tracking."""

    def test_relative_paths_resolved(self, tmp_path):
        assert normalize_path("a.txt", str(tmp_path)) == os.path.realpath(tmp_path / "a.txt")

    def test_new_file_is_writable(self, tmp_path):
        assert check_not_modified({}, str(tmp_path / "missing.txt")) is None

    def test_unread_file_rejected(self, source_file):
        assert "has not been read" in check_not_modified({}, str(source_file))

    def test_modified_after_read_rejected(self, source_file):
        timestamps: dict[str, float] = {}
        mark_read(timestamps, str(source_file))
        assert check_not_modified(timestamps, str(source_file)) is None
        touch_later(source_file)
        assert "modified since read" in check_not_modified(timestamps, str(source_file))


class TestFileRead:
    """Tests for the View tool."""

    async def test_numbered_lines(self, source_file, context):
        """Output is cat -n style and the read is recorded."""
        result = await run_tool(FileReadTool(), FileReadInput(file_path=str(source_file)), context)
        assert result.result_for_assistant.splitlines()[0] == "     1\tdef main():"
        assert result.data["total_lines"] == 4
        assert normalize_path(str(source_file)) in context.read_file_timestamps

    async def test_offset_and_limit(self, tmp_path, context):
        path = tmp_path / "long.txt"
        path.write_text("\n".join(f"line {i}" for i in range(1, 11)))
        result = await run_tool(
            FileReadTool(), FileReadInput(file_path=str(path), offset=3, limit=2), context
        )
        assert result.data["content"] == "line 3\nline 4"
        assert "File has 6 more lines" in result.result_for_assistant

    async def test_missing_file(self, tmp_path, context):
        validation = await FileReadTool().validate_input(
            FileReadInput(file_path=str(tmp_path / "nope.txt")), context
        )
        assert not validation.result
        assert validation.message == "File does not exist."

    async def test_binary_file(self, tmp_path, context):
        path = tmp_path / "blob.dat"
        path.write_bytes(b"\x00\x01\x02binary")
        validation = await FileReadTool().validate_input(FileReadInput(file_path=str(path)), context)
        assert not validation.result
        assert "binary" in validation.message

    async def test_empty_file(self, tmp_path, context):
        path = tmp_path / "empty.txt"
        path.write_text("")
        result = await run_tool(FileReadTool(), FileReadInput(file_path=str(path)), context)
        assert result.result_for_assistant == "(empty file)"

    def test_long_lines_truncated(self):
        assert truncate_long_lines(["x" * 10], max_line_length=4) == ["xxxx..."]

    def test_line_number_width(self):
        assert add_line_numbers(["a", "b"], 99) == "    99\ta\n   100\tb"


class TestFileWrite:
    """Tests for the Replace tool."""

    def test_session_scoped_permission(self, source_file):
        tool = FileWriteTool()
        assert tool.permission_scope is PermissionScope.SESSION
        assert tool.permission_path(FileWriteInput(file_path=str(source_file), content="")) == str(source_file)

    async def test_create_new_file(self, tmp_path, context):
        path = tmp_path / "pkg" / "new.py"
        tool = FileWriteTool()
        input = FileWriteInput(file_path=str(path), content="x = 1\n")
        assert (await tool.validate_input(input, context)).result
        result = await run_tool(tool, input, context)
        assert path.read_text() == "x = 1\n"
        assert result.data["type"] == "create"
        assert result.result_for_assistant.startswith("File created successfully")

    async def test_existing_file_requires_read(self, source_file, context):
        """Overwriting needs a prior read."""
        tool = FileWriteTool()
        input = tool.normalize_input(FileWriteInput(file_path=str(source_file), content="new"), context)
        assert not (await tool.validate_input(input, context)).result

        await run_tool(FileReadTool(), FileReadInput(file_path=str(source_file)), context)
        assert (await tool.validate_input(input, context)).result
        result = await run_tool(tool, input, context)
        assert source_file.read_text() == "new"
        assert result.data["type"] == "update"

    async def test_stale_read_rejected(self, source_file, context):
        tool = FileWriteTool()
        await run_tool(FileReadTool(), FileReadInput(file_path=str(source_file)), context)
        touch_later(source_file)
        input = tool.normalize_input(FileWriteInput(file_path=str(source_file), content="new"), context)
        validation = await tool.validate_input(input, context)
        assert not validation.result
        assert "modified since read" in validation.message


class TestFileEdit:
    """Tests for the Edit tool."""

    async def read_first(self, path, context):
        await run_tool(FileReadTool(), FileReadInput(file_path=str(path)), context)

    def edit_input(self, context, path, old, new):
        return FileEditTool().normalize_input(
            FileEditInput(file_path=str(path), old_string=old, new_string=new), context
        )

    async def validate(self, context, path, old, new):
        return await FileEditTool().validate_input(self.edit_input(context, path, old, new), context)

    async def test_same_strings(self, source_file, context):
        validation = await self.validate(context, source_file, "main", "main")
        assert validation.message == ERROR_SAME_OLD_NEW

    async def test_missing_file(self, tmp_path, context):
        validation = await self.validate(context, tmp_path / "gone.py", "a", "b")
        assert validation.message == ERROR_FILE_NOT_FOUND

    async def test_create_requires_absent_file(self, source_file, context):
        validation = await self.validate(context, source_file, "", "content")
        assert validation.message == ERROR_FILE_EXISTS

    async def test_requires_read(self, source_file, context):
        validation = await self.validate(context, source_file, "print('hi')", "print('bye')")
        assert "has not been read" in validation.message

    async def test_string_not_found(self, source_file, context):
        await self.read_first(source_file, context)
        validation = await self.validate(context, source_file, "absent", "x")
        assert validation.message == ERROR_OLD_STRING_NOT_FOUND

    async def test_multiple_matches(self, source_file, context):
        """Ambiguous edits are refused with the match count."""
        await self.read_first(source_file, context)
        validation = await self.validate(context, source_file, "main", "run")
        assert not validation.result
        assert validation.meta == {"count": 2}

    async def test_replaces_one_occurrence(self, source_file, context):
        await self.read_first(source_file, context)
        input = self.edit_input(context, source_file, "print('hi')", "print('bye')")
        assert (await FileEditTool().validate_input(input, context)).result
        result = await run_tool(FileEditTool(), input, context)
        assert source_file.read_text() == "def main():\n    print('bye')\n\nmain()\n"
        assert "-    print('hi')" in result.data["diff"]
        assert "     2\t    print('bye')" in result.result_for_assistant

    async def test_create_file(self, tmp_path, context):
        path = tmp_path / "fresh.txt"
        input = self.edit_input(context, path, "", "hello\n")
        assert (await FileEditTool().validate_input(input, context)).result
        await run_tool(FileEditTool(), input, context)
        assert path.read_text() == "hello\n"
