"""One-way calendar import into the local entry store.

Each event is handled on its own: a bad timestamp or a failed day-file read
or write is counted as an error and the run moves on to the next event.
Correlation with stored entries is by external_id only, so manual entries
are never matched or rewritten.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from .config import DEFAULT_PROJECT
from .core.entry import Entry
from .core.events import CalendarEvent, map_to_entry, should_import
from .errors import CorruptionError, MalformedTimestampError, StoreIOError
from .ports import CalendarRepository, EntryStore

logger = logging.getLogger(__name__)

IMPORTED = "imported"
SKIPPED = "skipped"
UPDATED = "updated"
ERROR = "error"


@dataclass
class SyncOutcome:
    """What happened to one event."""

    action: str
    subject: str
    entry: Entry | None = None
    error: str | None = None


@dataclass
class SyncResult:
    """Counters for a sync run."""

    imported: int = 0
    skipped: int = 0
    updated: int = 0
    errors: int = 0
    outcomes: list[SyncOutcome] = field(default_factory=list)

    def record(self, action: str, event: CalendarEvent, entry=None, error=None) -> None:
        self.outcomes.append(SyncOutcome(action, event.subject, entry, error))
        match action:
            case "imported":
                self.imported += 1
            case "skipped":
                self.skipped += 1
            case "updated":
                self.updated += 1
            case "error":
                self.errors += 1


def _unchanged(existing: Entry, candidate: Entry) -> bool:
    """Only task, start and end decide whether an imported entry is stale."""
    return (
        existing.task == candidate.task
        and existing.start == candidate.start
        and existing.end is not None
        and existing.end == candidate.end
    )


def sync_events(
    events: list[CalendarEvent],
    store: EntryStore,
    project: str = DEFAULT_PROJECT,
    tz_name: str = "",
    dry_run: bool = False,
    window: tuple[date, date] | None = None,
) -> SyncResult:
    """
    Merge fetched events into the store.

    Dry runs make every decision and count it, but write nothing.
    """
    result = SyncResult()
    if window:
        logger.info(f"Syncing {len(events)} events for {window[0]} to {window[1]}")

    for event in events:
        if not should_import(event):
            logger.debug(f"Filtered out event {event.id!r} ({event.subject})")
            continue

        try:
            candidate = map_to_entry(event, tz_name, project)
        except MalformedTimestampError as e:
            logger.warning(f"Error mapping event {event.subject!r}: {e}")
            result.record(ERROR, event, error=str(e))
            continue

        day = candidate.start.date()
        try:
            existing = store.load_day(day).find_by_external_id(event.id)
        except (StoreIOError, CorruptionError) as e:
            logger.error(f"Error loading day {day} for {event.subject!r}: {e}")
            result.record(ERROR, event, error=str(e))
            continue

        if existing is not None and _unchanged(existing, candidate):
            result.record(SKIPPED, event, existing)
            continue

        action = IMPORTED
        if existing is not None:
            candidate.id = existing.id
            action = UPDATED

        if not dry_run:
            try:
                store.upsert_entry(day, candidate)
            except (StoreIOError, CorruptionError) as e:
                logger.error(f"Error saving {event.subject!r}: {e}")
                result.record(ERROR, event, error=str(e))
                continue

        result.record(action, event, candidate)

    return result


def sync_calendar(
    calendar: CalendarRepository,
    store: EntryStore,
    start: datetime,
    end: datetime,
    project: str = DEFAULT_PROJECT,
    tz_name: str = "",
    dry_run: bool = False,
) -> SyncResult:
    """
    Fetch [start, end) and merge it.

    Auth and fetch errors propagate before anything is written.
    """
    events = calendar.fetch_events(start, end, tz_name)
    return sync_events(
        events,
        store,
        project=project,
        tz_name=tz_name,
        dry_run=dry_run,
        window=(start.date(), (end - timedelta(days=1)).date()),
    )
