"""Session, project and day-level recap types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from devday.types.git import GitActivity
from devday.types.messages import TokenUsage


class ToolName(str, Enum):
    OPENCODE = "opencode"
    CLAUDE_CODE = "claude-code"
    CURSOR = "cursor"
    CODEX = "codex"


@dataclass
class Session:
    id: str
    tool: ToolName
    project_path: Optional[str]
    project_name: Optional[str]
    title: Optional[str]
    start_ms: int
    end_ms: int
    duration_ms: int = 0
    message_count: int = 0
    user_message_count: int = 0
    assistant_message_count: int = 0
    summary: Optional[str] = None
    topics: list[str] = field(default_factory=list)
    tokens: TokenUsage = field(default_factory=TokenUsage)
    cost_usd: float = 0.0
    models: list[str] = field(default_factory=list)
    files_touched: list[str] = field(default_factory=list)
    conversation_digest: str = ""
    tool_call_summaries: list[str] = field(default_factory=list)


@dataclass
class ProjectSummary:
    project_path: Optional[str]  # None for the unknown-project bucket
    project_name: str
    sessions: list[Session]
    git: Optional[GitActivity] = None
    total_sessions: int = 0
    total_messages: int = 0
    tokens: TokenUsage = field(default_factory=TokenUsage)
    total_cost_usd: float = 0.0
    total_duration_ms: int = 0
    tools_used: list[ToolName] = field(default_factory=list)
    models_used: list[str] = field(default_factory=list)
    files_touched: list[str] = field(default_factory=list)
    ai_summary: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        return self.tokens.total


@dataclass
class DayRecap:
    date: str  # YYYY-MM-DD
    projects: list[ProjectSummary] = field(default_factory=list)
    total_sessions: int = 0
    total_messages: int = 0
    total_tokens: int = 0
    total_cost_usd: float = 0.0
    total_duration_ms: int = 0
    tools_used: list[ToolName] = field(default_factory=list)
    models_used: list[str] = field(default_factory=list)
    files_touched: list[str] = field(default_factory=list)
    standup_message: Optional[str] = None
