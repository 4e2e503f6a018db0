"""Git activity types produced by the git collaborator."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class GitCommit:
    hash: str
    short_hash: str
    message: str
    author: str
    timestamp: datetime
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0
    files: list[str] = field(default_factory=list)


@dataclass
class GitActivity:
    project_path: str
    project_name: str
    commits: list[GitCommit] = field(default_factory=list)
    total_files_changed: int = 0
    total_insertions: int = 0
    total_deletions: int = 0
