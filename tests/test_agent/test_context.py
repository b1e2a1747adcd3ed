"""Tests for context map assembly and the system prompt."""

import os
import shutil

import pytest
from git import Repo

import agent.context as context_module
from agent.context import ContextProvider, compute_fingerprint, is_git_repo, truncate_git_status
from agent.prompts import AGENT_INSTRUCTIONS, SYSTEM_INSTRUCTIONS, get_agent_prompt, get_system_prompt
from config.project_config import ProjectConfig

from helpers import InMemoryProjectConfig


@pytest.fixture
def project(tmp_path):
    (tmp_path / "README.md").write_text("# Demo\n")
    (tmp_path / "main.py").write_text("print('demo')\n")
    return tmp_path


@pytest.fixture
def provider(project, project_config):
    return ContextProvider(str(project), project_config.load, project_config.save)


@pytest.fixture
def directory_listings(monkeypatch):
    """Count directory crawls."""
    calls = []
    original = context_module.get_directory_structure

    def counting(cwd):
        calls.append(cwd)
        return original(cwd)

    monkeypatch.setattr(context_module, "get_directory_structure", counting)
    return calls


class TestContextProvider:
    """Tests for building and caching the context map."""

    async def test_generated_entries(self, provider):
        context = await provider.get_context()
        assert "- main.py" in context["directoryStructure"]
        assert context["readme"] == "# Demo\n"
        assert "instructions" not in context

    async def test_cached_until_fingerprint_changes(self, provider, project, directory_listings):
        """A README change triggers a rebuild; nothing else does."""
        await provider.get_context()
        await provider.get_context()
        assert len(directory_listings) == 1

        (project / "README.md").write_text("# Renamed\n")
        context = await provider.get_context()
        assert len(directory_listings) == 2
        assert context["readme"] == "# Renamed\n"

    async def test_invalidate(self, provider, directory_listings):
        await provider.get_context()
        provider.invalidate()
        await provider.get_context()
        assert len(directory_listings) == 2

    async def test_instructions_file(self, provider, project):
        (project / "KESTREL.md").write_text("Use tabs.")
        context = await provider.get_context()
        assert context["instructions"].endswith("Use tabs.")
        assert "KESTREL.md" in context["instructions"]

    async def test_user_context_included(self, provider, project_config):
        project_config.project_config = ProjectConfig(context={"team": "platform"})
        context = await provider.get_context()
        assert context["team"] == "platform"

    async def test_dont_crawl_flag(self, project, directory_listings):
        store = InMemoryProjectConfig(ProjectConfig(dont_crawl_directory=True))
        context = await ContextProvider(str(project), store.load, store.save).get_context()
        assert "directoryStructure" not in context
        assert directory_listings == []

    async def test_dont_crawl_toggle_rebuilds(self, provider, project_config, directory_listings):
        """Turning crawling off drops the cached directory listing."""
        assert "directoryStructure" in await provider.get_context()
        project_config.project_config = ProjectConfig(dont_crawl_directory=True)
        assert "directoryStructure" not in await provider.get_context()
        assert len(directory_listings) == 1

    async def test_home_directory_not_crawled(self, project, monkeypatch, project_config):
        monkeypatch.setenv("HOME", str(project))
        provider = ContextProvider(str(project), project_config.load, project_config.save)
        context = await provider.get_context()
        assert "directoryStructure" not in context

    def test_set_context_drops_generated_keys(self, provider, project_config):
        """Stored context never keeps generated entries."""
        project_config.project_config = ProjectConfig(context={"readme": "stale", "team": "x"})
        provider.set_context("owner", "me")
        assert project_config.project_config.context == {"team": "x", "owner": "me"}
        assert provider.get_user_context() == {"team": "x", "owner": "me"}

    def test_remove_context(self, provider, project_config):
        project_config.project_config = ProjectConfig(context={"team": "x", "owner": "me"})
        provider.remove_context("team")
        assert project_config.project_config.context == {"owner": "me"}
        assert project_config.saves == 1


class TestFingerprint:
    """Tests for the cache key."""

    def test_stable(self, project):
        assert compute_fingerprint(str(project)) == compute_fingerprint(str(project))

    def test_readme_content(self, project):
        before = compute_fingerprint(str(project))
        (project / "README.md").write_text("changed")
        assert compute_fingerprint(str(project)) != before

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    def test_git_state_seen_from_subdirectory(self, project):
        """Staging is noticed even when cwd is below the repository root."""
        repo = Repo.init(project)
        repo.index.add(["README.md"])
        subdirectory = project / "src"
        subdirectory.mkdir()

        before = compute_fingerprint(str(subdirectory))
        assert before.git_head_mtime is not None
        assert before.git_index_mtime is not None

        index = os.path.join(repo.git_dir, "index")
        stat = os.stat(index)
        os.utime(index, (stat.st_atime, stat.st_mtime + 10))
        assert compute_fingerprint(str(subdirectory)) != before
        repo.close()

    def test_crawl_flag(self, project):
        assert compute_fingerprint(str(project)) != compute_fingerprint(str(project), dont_crawl=True)


class TestGitStatus:
    """Tests for git status formatting."""

    def test_short_status_unchanged(self):
        assert truncate_git_status("M a.py\nM b.py", max_lines=5) == "M a.py\nM b.py"

    def test_long_status_truncated(self):
        status = "\n".join(f"M file{i}.py" for i in range(10))
        truncated = truncate_git_status(status, max_lines=3)
        assert truncated.startswith("M file0.py\nM file1.py\nM file2.py\n")
        assert "truncated because there are more than 3 lines" in truncated

    async def test_not_a_repository(self, project):
        assert await context_module.get_git_status(str(project)) is None

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    async def test_repository_snapshot(self, project):
        repo = Repo.init(project)
        with repo.config_writer() as writer:
            writer.set_value("user", "name", "Dev")
            writer.set_value("user", "email", "dev@example.com")
        repo.index.add(["README.md"])
        repo.index.commit("initial commit")
        repo.close()

        status = await context_module.get_git_status(str(project))
        assert is_git_repo(str(project))
        assert "Status:\n?? main.py" in status
        assert "Recent commits:\n" in status
        assert status.count("initial commit") == 2


class TestPrompts:
    """Tests for system prompt sections."""

    async def test_system_prompt(self, project):
        sections = await get_system_prompt(str(project), "test-model")
        assert sections[0] == SYSTEM_INSTRUCTIONS
        assert f"Working directory: {os.path.abspath(project)}" in sections[1]
        assert "Is directory a git repo: No" in sections[1]
        assert "Model: test-model" in sections[1]

    async def test_agent_prompt(self, project):
        sections = await get_agent_prompt(str(project))
        assert sections[0] == AGENT_INSTRUCTIONS
        assert sections[1].startswith("Here is useful information about the environment")
