"""Configuration loading and persistence."""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from core.exceptions import ConfigError

from .defaults import CONFIG_PATH_ENV, GLOBAL_CONFIG_FILENAME
from .main_config import GlobalConfig
from .project_config import ProjectConfig

logger = logging.getLogger(__name__)


def strip_jsonc_comments(content: str) -> str:
    """
    Strip comments from JSONC content to convert to valid JSON.

    Handles:
    - Single-line comments: // comment
    - Multi-line comments: /* comment */

    Args:
        content: JSONC content string

    Returns:
        JSON string with comments removed
    """
    content = re.sub(r"(^|\s)//.*?$", r"\1", content, flags=re.MULTILINE)
    content = re.sub(r"/\*.*?\*/", "", content, flags=re.DOTALL)
    return content


def load_config_file(path: Path) -> dict[str, Any] | None:
    """
    Load a config file from the given path.

    Supports both .json and .jsonc files with comment stripping.

    Args:
        path: Path to the config file

    Returns:
        Parsed config dictionary or None if the file doesn't exist or is unreadable
    """
    if not path.exists():
        return None

    try:
        content = path.read_text(encoding="utf-8")
        if path.suffix == ".jsonc":
            content = strip_jsonc_comments(content)
        data = json.loads(content)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to load config from %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: top level is not an object", path)
        return None
    return data


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two configuration dictionaries.

    Args:
        base: Base configuration
        override: Override configuration (takes precedence)

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def get_config_path() -> Path:
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / GLOBAL_CONFIG_FILENAME


def get_working_directory() -> str:
    """
    Get the working directory from environment or default to cwd.

    Returns:
        The working directory path as a string
    """
    return os.environ.get("WORKING_DIR", os.getcwd())


def load_global_config(path: Path | None = None) -> GlobalConfig:
    """
    Load the global config, falling back to defaults.

    A missing file yields defaults silently; a corrupt or invalid one yields
    defaults with a warning so that a bad edit never blocks startup.
    """
    path = path or get_config_path()
    data = load_config_file(path)
    if data is None:
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(merge_configs(GlobalConfig().model_dump(), data))
    except ValidationError as e:
        logger.warning("Invalid config at %s, using defaults: %s", path, e)
        return GlobalConfig()


def save_global_config(config: GlobalConfig, path: Path | None = None) -> None:
    """
    Write the global config atomically.

    Raises:
        ConfigError: If the file cannot be written
    """
    path = path or get_config_path()
    payload = json.dumps(config.model_dump(mode="json"), indent=2)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, path)
    except OSError as e:
        raise ConfigError(f"Failed to save config to {path}: {e}") from e


def _project_key(cwd: str | None) -> str:
    return os.path.abspath(cwd or get_working_directory())


def get_current_project_config(cwd: str | None = None) -> ProjectConfig:
    config = load_global_config()
    return config.projects.get(_project_key(cwd)) or ProjectConfig()


def save_current_project_config(project_config: ProjectConfig, cwd: str | None = None) -> None:
    config = load_global_config()
    projects = {**config.projects, _project_key(cwd): project_config}
    save_global_config(config.model_copy(update={"projects": projects}))
