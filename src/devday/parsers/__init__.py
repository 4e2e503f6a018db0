"""Session parsers, one per supported AI coding tool."""

from devday.parsers.base import SessionParser
from devday.parsers.claude_code import ClaudeCodeParser
from devday.parsers.codex import CodexParser
from devday.parsers.cursor import CursorParser
from devday.parsers.opencode import OpenCodeParser
from devday.types.sessions import ToolName

PARSER_CLASSES: dict[ToolName, type[SessionParser]] = {
    ToolName.OPENCODE: OpenCodeParser,
    ToolName.CLAUDE_CODE: ClaudeCodeParser,
    ToolName.CURSOR: CursorParser,
    ToolName.CODEX: CodexParser,
}


def build_parsers(paths: dict, enabled: list[ToolName]) -> list[SessionParser]:
    """Instantiate a parser for every enabled tool whose storage root was found."""
    parsers = []
    for tool in enabled:
        root = paths.get(tool)
        if root:
            parsers.append(PARSER_CLASSES[tool](root))
    return parsers


__all__ = [
    "SessionParser",
    "ClaudeCodeParser",
    "CodexParser",
    "CursorParser",
    "OpenCodeParser",
    "PARSER_CLASSES",
    "build_parsers",
]
