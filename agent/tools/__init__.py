"""Built-in tools offered to the model."""

from .agent_tool import AgentTool
from .bash import BashTool
from .file_edit import FileEditTool
from .file_read import FileReadTool
from .file_write import FileWriteTool
from .glob import GlobTool
from .grep import GrepTool
from .ls import LSTool, list_directory, render_tree


def get_all_tools():
    return [
        AgentTool(),
        BashTool(),
        GlobTool(),
        GrepTool(),
        LSTool(),
        FileReadTool(),
        FileEditTool(),
        FileWriteTool(),
    ]


async def get_tools():
    """Enabled tools, in catalog order."""
    return [tool for tool in get_all_tools() if await tool.is_enabled()]


async def get_read_only_tools():
    return [tool for tool in await get_tools() if tool.is_read_only()]


__all__ = [
    # Tools
    "AgentTool",
    "BashTool",
    "FileEditTool",
    "FileReadTool",
    "FileWriteTool",
    "GlobTool",
    "GrepTool",
    "LSTool",
    # Registry
    "get_all_tools",
    "get_read_only_tools",
    "get_tools",
    # Helpers
    "list_directory",
    "render_tree",
]
