"""
Assistant built on the conversation engine.

Exports the built-in tools, the system prompts and context map assembly.
"""
from .context import ContextProvider, get_git_status
from .prompts import get_agent_prompt, get_env_info, get_system_prompt
from .tools import (
    AgentTool,
    BashTool,
    FileEditTool,
    FileReadTool,
    FileWriteTool,
    GlobTool,
    GrepTool,
    LSTool,
    get_all_tools,
    get_read_only_tools,
    get_tools,
)

__all__ = [
    # Context
    "ContextProvider",
    "get_git_status",
    # Prompts
    "get_agent_prompt",
    "get_env_info",
    "get_system_prompt",
    # Tools
    "AgentTool",
    "BashTool",
    "FileEditTool",
    "FileReadTool",
    "FileWriteTool",
    "GlobTool",
    "GrepTool",
    "LSTool",
    "get_all_tools",
    "get_read_only_tools",
    "get_tools",
]
