"""Git metadata and per-day commit activity for project directories."""

import logging
import os
import subprocess
from datetime import datetime
from pathlib import Path

from devday.types.git import GitActivity, GitCommit

logger = logging.getLogger(__name__)

GIT_TIMEOUT_S = 10


def has_git_marker(path: str | Path) -> bool:
    """True if path holds a .git directory or a worktree .git file."""
    try:
        return (Path(path) / ".git").exists()
    except OSError:
        return False


def find_git_root(path: str | Path) -> str | None:
    """Walk upward from path (or its nearest existing ancestor) to a git root."""
    current = Path(path)
    while not current.is_dir():
        parent = current.parent
        if parent == current:
            return None
        current = parent

    while True:
        if has_git_marker(current):
            return str(current)
        parent = current.parent
        if parent == current:
            return None
        current = parent


def get_git_activity(
    project_path: str,
    date: str,
    author_filter: str | None = None,
) -> GitActivity | None:
    """Collect non-merge commits made in project_path on the given day.

    Returns None when the directory is not a repository or git fails.
    """
    if not has_git_marker(project_path):
        return None

    args = [
        "log",
        f"--after={date}T00:00:00",
        f"--before={date}T23:59:59",
        "--format=%H|%h|%an|%aI|%s",
        "--no-merges",
    ]
    if author_filter:
        args.append(f"--author={author_filter}")

    raw = _run_git(project_path, args)
    if raw is None:
        return None

    commits = []
    for line in raw.splitlines():
        commit = _parse_log_line(line)
        if commit is None:
            continue
        _fill_commit_stats(project_path, commit)
        commits.append(commit)

    unique_files = {f for c in commits for f in c.files}
    return GitActivity(
        project_path=project_path,
        project_name=os.path.basename(project_path.rstrip(os.sep)) or project_path,
        commits=commits,
        total_files_changed=len(unique_files),
        total_insertions=sum(c.insertions for c in commits),
        total_deletions=sum(c.deletions for c in commits),
    )


def _run_git(cwd: str, args: list[str]) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_S,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("git %s failed in %s: %s", args[0], cwd, e)
        return None
    return result.stdout.strip()


def _parse_log_line(line: str) -> GitCommit | None:
    parts = line.split("|")
    if len(parts) < 5:
        return None
    hash_, short_hash, author, timestamp = parts[:4]
    # Subjects may themselves contain "|"
    message = "|".join(parts[4:])
    try:
        when = datetime.fromisoformat(timestamp)
    except ValueError:
        logger.debug("Unparseable commit timestamp %r", timestamp)
        return None
    return GitCommit(
        hash=hash_,
        short_hash=short_hash,
        message=message,
        author=author,
        timestamp=when,
    )


def parse_numstat(raw: str) -> tuple[int, int, list[str]]:
    """Parse `git diff-tree --numstat` output into (insertions, deletions, files).

    Binary files report "-" for both counts and contribute zero lines.
    """
    insertions = 0
    deletions = 0
    files = []
    for line in raw.splitlines():
        fields = line.split("\t")
        if len(fields) < 3:
            continue
        ins, dels, name = fields[0], fields[1], fields[2]
        if ins.isdigit():
            insertions += int(ins)
        if dels.isdigit():
            deletions += int(dels)
        if name:
            files.append(name)
    return insertions, deletions, files


def _fill_commit_stats(project_path: str, commit: GitCommit) -> None:
    raw = _run_git(project_path, ["diff-tree", "--no-commit-id", "--numstat", "-r", commit.hash])
    if not raw:
        return
    commit.insertions, commit.deletions, commit.files = parse_numstat(raw)
    commit.files_changed = len(commit.files)
