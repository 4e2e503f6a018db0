"""Tests for devday.services.git_resolver."""

import pytest

from devday.services import git_resolver
from devday.services.git_resolver import (
    find_git_root,
    get_git_activity,
    has_git_marker,
    parse_numstat,
)
from helpers import DATE


@pytest.fixture
def worktree_repo(tmp_path, git_repo):
    """Create a fake worktree pointing at git_repo."""
    wt = tmp_path / "worktree"
    wt.mkdir()
    # .git is a file, not a directory
    (wt / ".git").write_text(f"gitdir: {git_repo / '.git'}\n")
    return wt


@pytest.fixture
def fake_git(monkeypatch):
    """Replace the git subprocess with canned output; records every call."""
    calls = []
    outputs = {}

    def run(cwd, args):
        calls.append(args)
        return outputs.get(args[0])

    monkeypatch.setattr(git_resolver, "_run_git", run)
    return calls, outputs


# ---------------------------------------------------------------------------
# 1. Repository detection
# ---------------------------------------------------------------------------

def test_git_marker(git_repo, worktree_repo, tmp_path):
    assert has_git_marker(git_repo)
    assert has_git_marker(worktree_repo)
    assert not has_git_marker(tmp_path)


def test_find_git_root_from_missing_nested_path(git_repo):
    assert find_git_root(git_repo / "src" / "deep" / "missing.py") == str(git_repo)


def test_find_git_root_worktree(worktree_repo):
    assert find_git_root(worktree_repo / "pkg") == str(worktree_repo)


# ---------------------------------------------------------------------------
# 2. Numstat parsing
# ---------------------------------------------------------------------------

def test_parse_numstat():
    raw = "10\t2\tsrc/app.py\n-\t-\tassets/logo.png\n3\t0\tREADME.md\nbogus line"
    insertions, deletions, files = parse_numstat(raw)
    assert insertions == 13
    assert deletions == 2
    assert files == ["src/app.py", "assets/logo.png", "README.md"]


# ---------------------------------------------------------------------------
# 3. Day activity
# ---------------------------------------------------------------------------

def test_activity_for_day(git_repo, fake_git):
    calls, outputs = fake_git
    outputs["log"] = (
        "aaaa1111|aaaa111|Ann|2026-03-10T10:00:00+00:00|Fix login | add test\n"
        "bbbb2222|bbbb222|Ann|not-a-date|Skipped\n"
        "short|line"
    )
    outputs["diff-tree"] = "3\t1\tsrc/auth.py\n-\t-\timg.png"

    activity = get_git_activity(str(git_repo), DATE, author_filter="Ann")

    assert activity is not None
    assert activity.project_path == str(git_repo)
    assert activity.project_name == "repo"
    assert len(activity.commits) == 1
    commit = activity.commits[0]
    assert commit.message == "Fix login | add test"
    assert commit.short_hash == "aaaa111"
    assert (commit.insertions, commit.deletions, commit.files_changed) == (3, 1, 2)
    assert activity.total_files_changed == 2
    assert activity.total_insertions == 3

    log_args = calls[0]
    assert f"--after={DATE}T00:00:00" in log_args
    assert f"--before={DATE}T23:59:59" in log_args
    assert "--no-merges" in log_args
    assert "--author=Ann" in log_args


def test_no_commits(git_repo, fake_git):
    _, outputs = fake_git
    outputs["log"] = ""
    activity = get_git_activity(str(git_repo), DATE)
    assert activity is not None
    assert activity.commits == []


def test_not_a_repository(tmp_path, fake_git):
    calls, _ = fake_git
    assert get_git_activity(str(tmp_path), DATE) is None
    assert calls == []


def test_git_failure(git_repo, fake_git):
    # No canned output: the git call "fails"
    assert get_git_activity(str(git_repo), DATE) is None
