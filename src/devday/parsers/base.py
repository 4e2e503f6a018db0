"""Common contract for per-tool session parsers."""

import logging
from abc import ABC, abstractmethod

from devday.types.sessions import Session, ToolName
from devday.utils.day_window import DayWindow, day_window

logger = logging.getLogger(__name__)


class SessionParser(ABC):
    """One local AI-tool storage format, normalized into canonical sessions.

    Subclasses implement `is_available` and `_collect`. `get_sessions` never
    raises: a missing or corrupt storage root yields an empty list.
    """

    name: ToolName

    @abstractmethod
    def is_available(self) -> bool:
        """True if the tool's storage root exists."""

    @abstractmethod
    def _collect(self, window: DayWindow) -> list[Session]:
        """Build the sessions that have activity inside the window."""

    def get_sessions(self, date: str | DayWindow) -> list[Session]:
        window = date if isinstance(date, DayWindow) else day_window(date)
        if not self.is_available():
            logger.debug("%s storage not available", self.name.value)
            return []
        try:
            sessions = self._collect(window)
        except Exception:
            logger.warning("%s parser failed for %s", self.name.value, window.date, exc_info=True)
            return []
        logger.debug("%s: %d session(s) on %s", self.name.value, len(sessions), window.date)
        return sessions
