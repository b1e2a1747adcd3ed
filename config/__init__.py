"""
Configuration module for the assistant.

Exports the configuration models and persistence helpers used throughout the application.
"""

from .defaults import DEFAULT_LARGE_MODEL, DEFAULT_MAX_TOKENS, DEFAULT_SMALL_MODEL
from .history import add_to_history, get_history
from .loader import (
    get_config_path,
    get_current_project_config,
    get_working_directory,
    load_config_file,
    load_global_config,
    merge_configs,
    save_current_project_config,
    save_global_config,
    strip_jsonc_comments,
)
from .main_config import GlobalConfig
from .markdown_loader import (
    AGENTS_MD_FILENAME,
    find_markdown_file,
    load_project_instructions,
)
from .project_config import ProjectConfig

__all__ = [
    # Constants
    "DEFAULT_LARGE_MODEL",
    "DEFAULT_SMALL_MODEL",
    "DEFAULT_MAX_TOKENS",
    "AGENTS_MD_FILENAME",
    # Config models
    "GlobalConfig",
    "ProjectConfig",
    # Loader functions
    "get_config_path",
    "load_global_config",
    "save_global_config",
    "get_current_project_config",
    "save_current_project_config",
    "get_working_directory",
    "load_config_file",
    "merge_configs",
    "strip_jsonc_comments",
    # History
    "get_history",
    "add_to_history",
    # Markdown loader functions
    "load_project_instructions",
    "find_markdown_file",
]
