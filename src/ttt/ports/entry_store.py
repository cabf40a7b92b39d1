"""Entry storage interface."""

from datetime import date
from typing import Protocol

from ttt.core.entry import DayFile, Entry


class EntryStore(Protocol):
    """Interface for reading and writing day-partitioned time entries."""

    def load_day(self, target_date: date) -> DayFile:
        """Load a day's entries. Returns an empty DayFile if none exist."""
        ...

    def save_day(self, target_date: date, day: DayFile) -> None:
        """Atomically write a day's entries."""
        ...

    def upsert_entry(self, target_date: date, entry: Entry) -> None:
        """Replace the entry with the same id, or append it."""
        ...

    def load_range(self, start_date: date, end_date: date) -> list[Entry]:
        """All entries for the inclusive date range, in day order."""
        ...

    def find_active_entry(self, today: date | None = None) -> tuple[Entry, date] | None:
        """Most recent open entry in the recent window, with its day."""
        ...
