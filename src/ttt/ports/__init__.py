"""Ports - interfaces/protocols for external dependencies."""

from .calendar_repo import CalendarRepository
from .entry_store import EntryStore

__all__ = [
    "CalendarRepository",
    "EntryStore",
]
