"""Functional core - pure business logic with no I/O."""

from .entry import SOURCE_MANUAL, SOURCE_OUTLOOK, DayFile, Entry, close_entry
from .events import (
    CalendarEvent,
    build_comment,
    map_to_entry,
    parse_graph_time,
    should_import,
)
from .timecalc import format_duration, format_elapsed, format_hhmmss, generate_id

__all__ = [
    # Entries
    "Entry",
    "DayFile",
    "close_entry",
    "SOURCE_MANUAL",
    "SOURCE_OUTLOOK",
    # Events
    "CalendarEvent",
    "should_import",
    "map_to_entry",
    "parse_graph_time",
    "build_comment",
    # Time
    "generate_id",
    "format_duration",
    "format_elapsed",
    "format_hhmmss",
]
