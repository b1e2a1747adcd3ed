"""
Context map assembly.

The context map is appended to the system prompt of every query. Its
expensive parts (directory listing, git status, README and instruction
file) are computed once and reused for as long as the project fingerprint
stays the same.
"""

import asyncio
import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from git import Repo
from git.exc import CommandError, InvalidGitRepositoryError, NoSuchPathError

from config.loader import get_current_project_config, save_current_project_config
from config.markdown_loader import find_markdown_file, load_markdown_file
from config.project_config import ProjectConfig
from core.constants import MAX_GIT_STATUS_LINES, PROJECT_FILE, RECENT_COMMIT_COUNT

from .tools.ls import list_directory, render_tree

logger = logging.getLogger(__name__)

README_FILENAME = "README.md"

# Keys computed here; never persisted as user-defined context
GENERATED_KEYS = ("directoryStructure", "gitStatus", "readme", "instructions")

DIRECTORY_STRUCTURE_HEADER = (
    "Below is a snapshot of this project's file structure at the start of the "
    "conversation. This snapshot will NOT update during the conversation."
)


@dataclass(frozen=True)
class ContextFingerprint:
    """Identity of the external state a cached context map was built from."""

    cwd: str
    readme_hash: str | None
    instructions_hash: str | None
    git_head_mtime: float | None
    git_index_mtime: float | None
    dont_crawl: bool = False


def _file_hash(path: Path | None) -> str | None:
    if path is None:
        return None
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError:
        return None


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def _git_dir(cwd: str) -> Path | None:
    repo = open_repo(cwd)
    if repo is None:
        return None
    with repo:
        return Path(repo.git_dir)


def compute_fingerprint(cwd: str, dont_crawl: bool = False) -> ContextFingerprint:
    root = Path(cwd)
    git_dir = _git_dir(cwd)
    return ContextFingerprint(
        cwd=os.path.abspath(cwd),
        readme_hash=_file_hash(root / README_FILENAME),
        instructions_hash=_file_hash(find_markdown_file(root)),
        git_head_mtime=_mtime(git_dir / "HEAD") if git_dir else None,
        git_index_mtime=_mtime(git_dir / "index") if git_dir else None,
        dont_crawl=dont_crawl,
    )


def open_repo(cwd: str) -> Repo | None:
    """The repository containing cwd, or None outside one."""
    try:
        return Repo(cwd, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return None


def is_git_repo(cwd: str) -> bool:
    repo = open_repo(cwd)
    if repo is None:
        return False
    repo.close()
    return True


def run_git(repo: Repo, command: str, *args: str) -> str:
    """Run a git subcommand in the repository, returning "" on failure."""
    try:
        return getattr(repo.git, command)(*args).strip()
    except CommandError as e:
        logger.debug("git %s failed: %s", command, e)
        return ""


def truncate_git_status(status: str, max_lines: int = MAX_GIT_STATUS_LINES) -> str:
    lines = status.split("\n")
    if len(lines) <= max_lines:
        return status
    return (
        "\n".join(lines[:max_lines])
        + f"\n... (truncated because there are more than {max_lines} lines. "
        'If you need more information, run "git status" using BashTool)'
    )


def git_status_snapshot(cwd: str) -> str | None:
    """Snapshot of branch, status and recent commits, or None outside a repository."""
    repo = open_repo(cwd)
    if repo is None:
        return None

    with repo:
        count = str(RECENT_COMMIT_COUNT)
        branch = run_git(repo, "branch", "--show-current")
        main_branch = run_git(repo, "rev_parse", "--abbrev-ref", "origin/HEAD")
        status = run_git(repo, "status", "--short")
        log = run_git(repo, "log", "--oneline", "-n", count)
        email = run_git(repo, "config", "user.email")
        author_log = run_git(repo, "log", "--oneline", "-n", count, "--author", email) if email else ""
    main_branch = main_branch.replace("origin/", "", 1)

    return (
        "This is the git status at the start of the conversation. Note that this "
        "status is a snapshot in time, and will not update during the conversation.\n"
        f"Current branch: {branch}\n\n"
        f"Main branch (you will usually use this for PRs): {main_branch}\n\n"
        f"Status:\n{truncate_git_status(status) or '(clean)'}\n\n"
        f"Recent commits:\n{log}\n\n"
        f"Your recent commits:\n{author_log or '(no recent commits)'}"
    )


async def get_git_status(cwd: str) -> str | None:
    return await asyncio.to_thread(git_status_snapshot, cwd)


def get_directory_structure(cwd: str) -> str:
    try:
        paths, _ = list_directory(Path(cwd))
    except OSError as e:
        logger.warning("Failed to list %s: %s", cwd, e)
        return ""
    return f"{DIRECTORY_STRUCTURE_HEADER}\n\n{render_tree(Path(cwd), paths)}"


def get_readme(cwd: str) -> str | None:
    path = Path(cwd) / README_FILENAME
    if not path.is_file():
        return None
    return load_markdown_file(path) or None


class ContextProvider:
    """
    Builds the context map for one working directory.

    Args:
        cwd: Project directory
        load_project_config: Returns the current project config
        save_project_config: Persists an updated project config
    """

    def __init__(
        self,
        cwd: str,
        load_project_config: Callable[[], ProjectConfig] | None = None,
        save_project_config: Callable[[ProjectConfig], None] | None = None,
    ):
        self.cwd = cwd
        self._load = load_project_config or (lambda: get_current_project_config(cwd))
        self._save = save_project_config or (lambda pc: save_current_project_config(pc, cwd))
        self._fingerprint: ContextFingerprint | None = None
        self._cached: dict[str, str] = {}

    def dont_crawl(self, project_config: ProjectConfig) -> bool:
        """Skip directory crawling when configured, or when run from the home directory."""
        if project_config.dont_crawl_directory:
            return True
        return os.path.abspath(self.cwd) == os.path.abspath(os.path.expanduser("~"))

    async def _compute(self, project_config: ProjectConfig) -> dict[str, str]:
        dont_crawl = self.dont_crawl(project_config)
        git_status, directory_structure = await asyncio.gather(
            get_git_status(self.cwd),
            asyncio.sleep(0, result="")
            if dont_crawl
            else asyncio.to_thread(get_directory_structure, self.cwd),
        )
        readme = get_readme(self.cwd)

        instructions = ""
        instructions_path = find_markdown_file(Path(self.cwd))
        if instructions_path is not None:
            instructions = load_markdown_file(instructions_path)

        context: dict[str, str] = {}
        if directory_structure:
            context["directoryStructure"] = directory_structure
        if git_status:
            context["gitStatus"] = git_status
        if readme:
            context["readme"] = readme
        if instructions:
            context["instructions"] = (
                f"Project instructions from {instructions_path.name} "
                f"({PROJECT_FILE} or AGENTS.md). Follow them:\n\n{instructions}"
            )
        return context

    async def get_context(self) -> dict[str, str]:
        """
        Return user-defined context plus the generated entries.

        Generated entries are recomputed only when the fingerprint changes.
        """
        project_config = self._load()
        fingerprint = compute_fingerprint(self.cwd, self.dont_crawl(project_config))
        if fingerprint != self._fingerprint:
            logger.debug("Context fingerprint changed for %s; rebuilding", self.cwd)
            self._cached = await self._compute(project_config)
            self._fingerprint = fingerprint
        return {**project_config.context, **self._cached}

    def invalidate(self) -> None:
        self._fingerprint = None
        self._cached = {}

    def get_user_context(self) -> dict[str, str]:
        return dict(self._load().context)

    def set_context(self, key: str, value: str) -> None:
        project_config = self._load()
        context = {
            k: v
            for k, v in {**project_config.context, key: value}.items()
            if k not in GENERATED_KEYS or k == key
        }
        self._save(project_config.model_copy(update={"context": context}))

    def remove_context(self, key: str) -> None:
        project_config = self._load()
        context = {k: v for k, v in project_config.context.items() if k != key}
        self._save(project_config.model_copy(update={"context": context}))
