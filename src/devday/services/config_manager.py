"""Configuration: API keys from the environment, storage roots, saved preferences."""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from devday.types.sessions import ToolName

logger = logging.getLogger(__name__)


class Summarizer(str, Enum):
    CONCENTRATE = "concentrate"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    NONE = "none"


# Default values for the preferences file
DEFAULTS = {
    "gitAuthorFilter": None,
    "enabledTools": [t.value for t in ToolName],
}

# Environment overrides for each tool's storage root
PATH_ENV_OVERRIDES = {
    ToolName.OPENCODE: "DEVDAY_OPENCODE_STORAGE",
    ToolName.CLAUDE_CODE: "DEVDAY_CLAUDE_HOME",
    ToolName.CURSOR: "DEVDAY_CURSOR_DB",
    ToolName.CODEX: "DEVDAY_CODEX_HOME",
}


@dataclass
class DevDayConfig:
    concentrate_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    preferred_summarizer: Summarizer = Summarizer.NONE
    linear_mcp_server_url: Optional[str] = None
    linear_mcp_auth_token: Optional[str] = None
    # Storage root per tool; None when it does not exist on this machine
    paths: dict[ToolName, Optional[str]] = field(default_factory=dict)
    enabled_tools: list[ToolName] = field(default_factory=list)
    git_author_filter: Optional[str] = None

    @property
    def api_key(self) -> Optional[str]:
        return {
            Summarizer.CONCENTRATE: self.concentrate_api_key,
            Summarizer.OPENAI: self.openai_api_key,
            Summarizer.ANTHROPIC: self.anthropic_api_key,
        }.get(self.preferred_summarizer)


def get_config_path(home: str | Path | None = None) -> Path:
    base = Path(home) if home is not None else Path.home()
    return base / ".config" / "devday" / "config.json"


def default_paths(
    home: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    platform: str | None = None,
) -> dict[ToolName, Path]:
    """Where each tool keeps its data on this platform, before overrides."""
    home = Path(home) if home is not None else Path.home()
    env = os.environ if env is None else env
    platform = platform or sys.platform

    if platform == "darwin":
        cursor_root = home / "Library" / "Application Support" / "Cursor"
    elif platform == "win32":
        cursor_root = home / "AppData" / "Roaming" / "Cursor"
    else:
        cursor_root = home / ".config" / "Cursor"

    codex_home = env.get("CODEX_HOME")
    return {
        ToolName.OPENCODE: home / ".local" / "share" / "opencode" / "storage",
        ToolName.CLAUDE_CODE: home / ".claude",
        ToolName.CURSOR: cursor_root / "User" / "globalStorage" / "state.vscdb",
        ToolName.CODEX: Path(codex_home) if codex_home else home / ".codex",
    }


def preferred_summarizer(
    concentrate_key: str | None,
    openai_key: str | None,
    anthropic_key: str | None,
) -> Summarizer:
    # Concentrate first (gateway), then OpenAI, then Anthropic
    if concentrate_key:
        return Summarizer.CONCENTRATE
    if openai_key:
        return Summarizer.OPENAI
    if anthropic_key:
        return Summarizer.ANTHROPIC
    return Summarizer.NONE


def load_config(
    env: Mapping[str, str] | None = None,
    config_file: str | Path | None = None,
    home: str | Path | None = None,
    platform: str | None = None,
) -> DevDayConfig:
    """Build the configuration from environment variables and auto-detection.

    API keys are read from the environment only. Non-sensitive preferences
    (gitAuthorFilter, enabledTools) are merged from the config file.
    """
    env = os.environ if env is None else env
    config_file = Path(config_file) if config_file is not None else get_config_path(home)

    def env_value(key: str) -> str | None:
        value = env.get(key, "").strip()
        return value or None

    concentrate_key = env_value("CONCENTRATE_API_KEY")
    openai_key = env_value("OPENAI_API_KEY")
    anthropic_key = env_value("ANTHROPIC_API_KEY")

    paths: dict[ToolName, Optional[str]] = {}
    for tool, default in default_paths(home, env, platform).items():
        override = env_value(PATH_ENV_OVERRIDES[tool])
        candidate = Path(override).expanduser() if override else default
        paths[tool] = str(candidate) if candidate.exists() else None

    config = DevDayConfig(
        concentrate_api_key=concentrate_key,
        openai_api_key=openai_key,
        anthropic_api_key=anthropic_key,
        preferred_summarizer=preferred_summarizer(concentrate_key, openai_key, anthropic_key),
        linear_mcp_server_url=env_value("LINEAR_MCP_SERVER_URL"),
        linear_mcp_auth_token=env_value("LINEAR_MCP_AUTH_TOKEN"),
        paths=paths,
        enabled_tools=[tool for tool, path in paths.items() if path is not None],
        git_author_filter=DEFAULTS["gitAuthorFilter"],
    )

    saved = _read_preferences(config_file)
    author = saved.get("gitAuthorFilter")
    if isinstance(author, str) and author:
        config.git_author_filter = author
    tools = saved.get("enabledTools")
    if isinstance(tools, list):
        config.enabled_tools = _parse_tools(tools)

    return config


def save_config(config: DevDayConfig, config_file: str | Path | None = None) -> Path:
    """Persist non-sensitive preferences. API keys are never written to disk."""
    path = Path(config_file) if config_file is not None else get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    safe = {
        "gitAuthorFilter": config.git_author_filter,
        "enabledTools": [t.value for t in config.enabled_tools],
    }
    path.write_text(json.dumps(safe, indent=2), encoding="utf-8")
    return path


def _read_preferences(path: Path) -> dict:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _parse_tools(values: list) -> list[ToolName]:
    tools = []
    for value in values:
        try:
            tool = ToolName(value)
        except ValueError:
            logger.warning("Unknown tool in config: %r", value)
            continue
        if tool not in tools:
            tools.append(tool)
    return tools
