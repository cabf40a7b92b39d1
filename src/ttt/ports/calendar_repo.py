"""Calendar repository interface."""

from datetime import datetime
from typing import Protocol

from ttt.core.events import CalendarEvent


class CalendarRepository(Protocol):
    """Interface for reading events from a remote calendar."""

    def fetch_events(self, start: datetime, end: datetime, tz_name: str = "") -> list[CalendarEvent]:
        """Fetch every event in [start, end). All pages or an error, never a partial list."""
        ...
