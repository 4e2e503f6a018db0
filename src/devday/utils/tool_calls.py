"""Human-readable tool-call summaries and touched-file extraction."""

import os
import posixpath
import re
from typing import Any, Iterable
from urllib.parse import unquote

from devday.utils.dedup import unique

MAX_COMMAND_CHARS = 100

# Argument keys whose string values are paths, in summary preference order
SUMMARY_PATH_KEYS = ("filePath", "file_path", "path", "file", "notebook_path", "target_file")

PATH_LIKE_KEYS = frozenset({
    "path",
    "file",
    "filePath",
    "file_path",
    "fullPath",
    "notebook_path",
    "target_file",
    "uri",
    "cwd",
    "workdir",
})

COMMAND_KEYS = ("cmd", "command")

EXEC_NAME_HINTS = ("exec", "shell", "bash", "run_terminal", "terminal")

EXTENSIONLESS_FILES = frozenset({
    "Dockerfile",
    "Makefile",
    "README",
    "README.md",
    "AGENTS.md",
    "Gemfile",
    "Procfile",
    "Justfile",
    "LICENSE",
})

_COMMAND_PATH_RE = re.compile(
    r"(?:~/|/|\./|\.\./)[^\s'\"`;,)]+|[A-Za-z0-9_.-]+/[A-Za-z0-9_./-]+"
)
_LINE_SUFFIX_RE = re.compile(r"^(.*?):(\d+)(?::\d+)?$")


def shorten_path(path: str, home: str | None = None) -> str:
    """Replace a leading home directory with ~."""
    home = home if home is not None else os.path.expanduser("~")
    if home and (path == home or path.startswith(home + os.sep)):
        return "~" + path[len(home):]
    return path


def _command_of(args: Any) -> str | None:
    if isinstance(args, dict):
        for key in COMMAND_KEYS:
            value = args.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, list) and value and all(isinstance(v, str) for v in value):
                return " ".join(value)
    return None


def _looks_like_exec(name: str) -> bool:
    lower = name.lower()
    return any(hint in lower for hint in EXEC_NAME_HINTS)


def summarize_tool_call(name: str, args: Any, home: str | None = None) -> str:
    """Summarize one tool invocation.

    Execution tools become "bash: <command>", path-bearing tools
    "<tool> <path>", pattern searches "<tool>: <pattern>", anything else the
    bare tool name.
    """
    command = _command_of(args)
    if command and _looks_like_exec(name):
        return f"bash: {clip_command(command)}"

    if isinstance(args, dict):
        for key in SUMMARY_PATH_KEYS:
            value = args.get(key)
            if isinstance(value, str) and value:
                return f"{name} {shorten_path(value, home)}"
        pattern = args.get("pattern")
        if isinstance(pattern, str) and pattern:
            return f"{name}: {pattern}"

    return name


def clip_command(command: str) -> str:
    command = command.strip()
    if len(command) > MAX_COMMAND_CHARS:
        return command[:MAX_COMMAND_CHARS] + "..."
    return command


def extract_path_candidates_from_command(command: str) -> list[str]:
    """Find path-shaped tokens in a one-line shell command.

    Multi-line and heredoc commands usually embed code and are skipped.
    """
    if "\n" in command or "<<" in command:
        return []
    return [
        m for m in _COMMAND_PATH_RE.findall(command)
        if "*" not in m and "?" not in m and "|" not in m
    ]


def normalize_path_candidate(raw: str) -> str | None:
    """Strip quotes, trailing punctuation, :line suffixes and file:// schemes."""
    trimmed = raw.strip().strip("'\"`")
    trimmed = trimmed.rstrip("),;:.")
    if not trimmed:
        return None

    match = _LINE_SUFFIX_RE.match(trimmed)
    if match:
        trimmed = match.group(1)

    if trimmed.startswith("file://"):
        trimmed = unquote(trimmed[len("file://"):])

    return trimmed or None


def is_likely_file_path(path: str) -> bool:
    """Heuristic: reject globs, regexes, URLs and whitespace; require a file-like basename."""
    if "://" in path:
        return False
    if any(ch.isspace() for ch in path):
        return False
    if any(ch in path for ch in "*?|"):
        return False
    if "\\b" in path or ".test(" in path:
        return False
    if path.startswith("/^") or path.startswith("/\\"):
        return False
    if path.endswith("/"):
        return False

    base = posixpath.basename(path)
    if not base or base.startswith("."):
        return False
    return "." in base or base in EXTENSIONLESS_FILES


def _accept(raw: str, files: dict[str, None]) -> None:
    normalized = normalize_path_candidate(raw)
    if normalized and is_likely_file_path(normalized):
        files[normalized] = None


def extract_files_from_args(args: Any) -> list[str]:
    """Walk tool arguments and collect likely file paths, in first-seen order."""
    files: dict[str, None] = {}

    def visit(value: Any, key_hint: str | None = None) -> None:
        if isinstance(value, str):
            if key_hint in PATH_LIKE_KEYS:
                _accept(value, files)
            return
        if isinstance(value, list):
            for item in value:
                visit(item, key_hint)
            return
        if isinstance(value, dict):
            for key, nested in value.items():
                if key in COMMAND_KEYS:
                    if isinstance(nested, str):
                        for candidate in extract_path_candidates_from_command(nested):
                            _accept(candidate, files)
                    continue
                visit(nested, key)

    visit(args)
    return list(files)


def summarize_tool_calls(calls: Iterable[tuple[str, Any]], home: str | None = None) -> list[str]:
    """Unique summaries for (name, args) pairs, first appearance first."""
    return unique(summarize_tool_call(name, args, home) for name, args in calls)
