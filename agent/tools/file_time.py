"""
File time tracking for read-before-write enforcement.

The per-query `read_file_timestamps` map on the tool context records each
file's modification time when it was last read. Write and edit tools refuse
to touch an existing file that has not been read, or that changed on disk
since it was read.
"""

import os


def normalize_path(file_path: str, cwd: str | None = None) -> str:
    """
    Resolve a file path to its canonical absolute form.

    Args:
        file_path: Path to normalize (relative or absolute)
        cwd: Base directory for relative paths

    Returns:
        Canonical absolute path
    """
    if not os.path.isabs(file_path):
        file_path = os.path.join(cwd or os.getcwd(), file_path)
    try:
        return os.path.realpath(file_path)
    except (OSError, RuntimeError):
        return os.path.abspath(file_path)


def mark_read(timestamps: dict[str, float], file_path: str) -> None:
    """Record the file's current modification time as its last read."""
    try:
        timestamps[file_path] = os.stat(file_path).st_mtime
    except OSError:
        timestamps[file_path] = 0.0


def check_not_modified(timestamps: dict[str, float], file_path: str) -> str | None:
    """
    Check that an existing file was read and has not changed since.

    Args:
        timestamps: Read timestamps for the current query
        file_path: Normalized path about to be written

    Returns:
        An error message, or None when writing is safe
    """
    if not os.path.exists(file_path):
        return None
    last_read = timestamps.get(file_path)
    if last_read is None:
        return "File has not been read yet. Read it first before writing to it."
    try:
        current_mtime = os.stat(file_path).st_mtime
    except OSError:
        return None
    if current_mtime > last_read:
        return (
            "File has been modified since read, either by the user or by a linter. "
            "Read it again before attempting to write it."
        )
    return None
