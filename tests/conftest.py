"""
Shared pytest fixtures for all tests.
"""
import os
import tempfile
from pathlib import Path
from typing import Iterator

import pytest

# GitPython refuses to import without a git binary unless told to stay quiet
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")

from core.cost_tracker import CostTracker
from core.llm import ModelClient

from helpers import FakeProvider, InMemoryProjectConfig, no_sleep


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_file(temp_dir: Path) -> Path:
    """Create a temporary file for testing."""
    file_path = temp_dir / "test_file.txt"
    file_path.write_text("Hello, World!\nThis is a test file.\nLine 3\n")
    return file_path


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    # Set a test API key to avoid requiring real credentials
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key-123")
    monkeypatch.delenv("SWE_BENCH", raising=False)
    monkeypatch.delenv("DISABLE_PROMPT_CACHING", raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch) -> Path:
    """Point the global config file at a per-test location."""
    path = tmp_path / "kestrel.json"
    monkeypatch.setenv("KESTREL_CONFIG_PATH", str(path))
    return path


@pytest.fixture
def cost_tracker() -> CostTracker:
    return CostTracker()


@pytest.fixture
def make_client(cost_tracker, mock_env_vars):
    """Factory for a ModelClient over a scripted provider, with instant backoff."""

    def factory(*script, delay: float = 0.0) -> ModelClient:
        return ModelClient(FakeProvider(list(script), delay=delay), cost_tracker, sleep=no_sleep)

    return factory


@pytest.fixture
def project_config() -> InMemoryProjectConfig:
    return InMemoryProjectConfig()
