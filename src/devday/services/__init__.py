"""Services for devday."""

from devday.services.config_manager import DevDayConfig, load_config, save_config
from devday.services.git_resolver import get_git_activity
from devday.services.merge import build_day_recap
from devday.services.summarizer import summarize_recap

__all__ = [
    "DevDayConfig",
    "load_config",
    "save_config",
    "get_git_activity",
    "build_day_recap",
    "summarize_recap",
]
