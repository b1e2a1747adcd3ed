"""Project instruction file loading for system prompt customization.

Searches for KESTREL.md or AGENTS.md starting from a working directory and
traversing up to the filesystem root.
"""

import logging
from pathlib import Path

from core.constants import PROJECT_FILE

logger = logging.getLogger(__name__)

AGENTS_MD_FILENAME = "AGENTS.md"

# File names to search for, in priority order
INSTRUCTION_FILENAMES = (PROJECT_FILE, AGENTS_MD_FILENAME)


def find_markdown_file(starting_dir: Path) -> Path | None:
    """
    Search for an instruction file starting from the given directory
    and traversing up to the filesystem root.

    KESTREL.md takes priority over AGENTS.md if both exist in the same directory.

    Args:
        starting_dir: Directory to start searching from

    Returns:
        Path to the found file, or None if no file exists
    """
    current = starting_dir.resolve()

    while True:
        for name in INSTRUCTION_FILENAMES:
            candidate = current / name
            if candidate.is_file():
                return candidate

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_markdown_file(path: Path) -> str:
    """
    Load content from a markdown file.

    Args:
        path: Path to the markdown file

    Returns:
        File content as string, or empty string on error
    """
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Failed to load markdown file from %s: %s", path, e)
        return ""


def load_project_instructions(working_dir: str) -> str:
    """
    Load the nearest instruction file for a working directory.

    Args:
        working_dir: Directory to start searching from

    Returns:
        File content, or empty string if no file is found
    """
    path = find_markdown_file(Path(working_dir))
    if path is None:
        return ""
    return load_markdown_file(path)
