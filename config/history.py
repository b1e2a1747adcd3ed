"""Prompt history, stored per project."""

from core.constants import MAX_HISTORY_ITEMS

from .loader import get_current_project_config, save_current_project_config


def get_history(cwd: str | None = None) -> list[str]:
    return list(get_current_project_config(cwd).history)


def add_to_history(command: str, cwd: str | None = None) -> None:
    """Record a prompt, most recent first, skipping immediate repeats."""
    project_config = get_current_project_config(cwd)
    history = project_config.history
    if history and history[0] == command:
        return
    updated = [command, *history][:MAX_HISTORY_ITEMS]
    save_current_project_config(project_config.model_copy(update={"history": updated}), cwd)
