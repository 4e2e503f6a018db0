"""Type definitions for devday."""

from devday.types.messages import (
    MessageType,
    Role,
    TokenUsage,
    ChatEvent,
    ToolEvent,
    TokenSnapshot,
)
from devday.types.git import GitCommit, GitActivity
from devday.types.sessions import ToolName, Session, ProjectSummary, DayRecap

__all__ = [
    "MessageType",
    "Role",
    "TokenUsage",
    "ChatEvent",
    "ToolEvent",
    "TokenSnapshot",
    "GitCommit",
    "GitActivity",
    "ToolName",
    "Session",
    "ProjectSummary",
    "DayRecap",
]
