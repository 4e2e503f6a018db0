"""Shared test fixtures for devday."""

from pathlib import Path

import pytest

from helpers import DATE
from devday.utils.day_window import day_window


@pytest.fixture
def window():
    """Local-time bounds of the test day."""
    return day_window(DATE)


@pytest.fixture
def codex_home(tmp_path) -> Path:
    """An empty ~/.codex with its sessions directory."""
    home = tmp_path / ".codex"
    (home / "sessions").mkdir(parents=True)
    return home


@pytest.fixture
def claude_home(tmp_path) -> Path:
    """An empty ~/.claude with its projects directory."""
    home = tmp_path / ".claude"
    (home / "projects").mkdir(parents=True)
    return home


@pytest.fixture
def opencode_storage(tmp_path) -> Path:
    """An empty OpenCode storage tree."""
    storage = tmp_path / "opencode" / "storage"
    for sub in ("project", "session", "message", "part"):
        (storage / sub).mkdir(parents=True)
    return storage


@pytest.fixture
def git_repo(tmp_path) -> Path:
    """A fake git repo with HEAD on main branch."""
    repo = tmp_path / "repo"
    git_dir = repo / ".git"
    git_dir.mkdir(parents=True)
    (git_dir / "HEAD").write_text("ref: refs/heads/main\n")
    return repo
