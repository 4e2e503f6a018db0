"""Resolve a conversation's project directory from scattered path hints.

Some sources never record a working directory in one reliable field. Every
path-like string in the conversation's structured data is collected,
normalized, and then resolved in two passes: the nearest enclosing git root
of any candidate wins; otherwise the first candidate that is an existing
directory (or an existing file's directory) is used.
"""

import logging
import os
from pathlib import Path
from typing import Any, Iterable
from urllib.parse import unquote

import orjson

from devday.services.git_resolver import find_git_root
from devday.utils.tool_calls import normalize_path_candidate

logger = logging.getLogger(__name__)

PATH_HINT_KEYS = frozenset({
    "cwd",
    "workdir",
    "workspace",
    "workspacePath",
    "workspaceFolder",
    "rootPath",
    "folder",
    "folderPath",
    "path",
    "fsPath",
    "file",
    "filePath",
    "file_path",
    "fullPath",
    "relativeWorkspacePath",
    "uri",
    "uriPath",
    "newlyCreatedFiles",
    "newlyCreatedFolders",
})

# Strings longer than this are message bodies, not paths
MAX_CANDIDATE_LEN = 1024


def collect_path_candidates(data: Any) -> list[str]:
    """Collect normalized, absolute path candidates from arbitrary JSON data.

    Strings under path-hint keys are taken directly; strings anywhere that
    look like JSON objects are decoded and searched as well.
    """
    found: dict[str, None] = {}

    def add(raw: str) -> None:
        candidate = normalize_candidate(raw)
        if candidate:
            found[candidate] = None

    def visit(value: Any, key_hint: str | None, depth: int) -> None:
        if depth > 32:
            return
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("{") and stripped.endswith("}"):
                try:
                    decoded = orjson.loads(stripped)
                except orjson.JSONDecodeError:
                    decoded = None
                if isinstance(decoded, dict):
                    visit(decoded, None, depth + 1)
                    return
            if key_hint in PATH_HINT_KEYS:
                add(value)
            return
        if isinstance(value, list):
            for item in value:
                visit(item, key_hint, depth + 1)
            return
        if isinstance(value, dict):
            for key, nested in value.items():
                visit(nested, key, depth + 1)

    visit(data, None, 0)
    return list(found)


def normalize_candidate(raw: str, home: str | None = None) -> str | None:
    """Normalize one raw path hint to an absolute path, or None."""
    if not raw or len(raw) > MAX_CANDIDATE_LEN or "\n" in raw:
        return None
    value = raw.strip()
    if value.startswith("file://"):
        value = unquote(value[len("file://"):])
    elif "://" in value:
        return None

    value = normalize_path_candidate(value) or ""
    if value.startswith("~"):
        home = home if home is not None else os.path.expanduser("~")
        value = home + value[1:]
    if not value.startswith("/"):
        return None
    return os.path.normpath(value)


def resolve_project_path(candidates: Iterable[str]) -> str | None:
    """Pick a project directory: nearest git root first, then any existing directory."""
    ordered = list(dict.fromkeys(candidates))

    for candidate in ordered:
        root = find_git_root(candidate)
        if root and root != os.sep:
            return root

    for candidate in ordered:
        path = Path(candidate)
        try:
            if path.is_dir():
                return str(path)
            if path.is_file() and path.parent.is_dir():
                return str(path.parent)
        except OSError:
            continue

    return None


def resolve_project_from_data(*data: Any) -> str | None:
    """Convenience: collect candidates across several structures and resolve."""
    candidates: list[str] = []
    for item in data:
        candidates.extend(collect_path_candidates(item))
    resolved = resolve_project_path(candidates)
    if resolved is None and candidates:
        logger.debug("No project path among %d candidates", len(candidates))
    return resolved
