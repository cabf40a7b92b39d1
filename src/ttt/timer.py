"""Manual timer workflows shared by the CLI commands."""

import logging
from dataclasses import dataclass
from datetime import datetime

from .core.entry import SOURCE_MANUAL, Entry, close_entry
from .core.timecalc import duration_seconds, generate_id
from .errors import NoActiveTimerError
from .ports import EntryStore

logger = logging.getLogger(__name__)


@dataclass
class TimerStatus:
    """Running timer, or how much was logged today."""

    active: Entry | None
    elapsed_seconds: int = 0
    today_seconds: int = 0


def _now(now: datetime | None) -> datetime:
    return now or datetime.now().astimezone()


def _stop(store: EntryStore, entry: Entry, entry_day, stop_time: datetime, comment: str | None) -> list[Entry]:
    """Close entry, splitting it at midnight when it ran into another day."""
    entry.append_comment(comment)
    segments = close_entry(entry, stop_time)
    store.upsert_entry(entry_day, segments[0])
    for segment in segments[1:]:
        store.upsert_entry(segment.start.date(), segment)
    if len(segments) > 1:
        logger.info(f"Split entry {entry.id} at midnight into {len(segments)} entries")
    return segments


def start_timer(
    store: EntryStore,
    project: str,
    task: str | None = None,
    comment: str | None = None,
    tags: list[str] | None = None,
    now: datetime | None = None,
) -> tuple[Entry, Entry | None]:
    """
    Start a new manual entry.

    Any running timer is stopped first so only one entry is ever open.
    Returns (new_entry, auto_stopped_entry_or_None).
    """
    now = _now(now)
    stopped = None

    found = store.find_active_entry(now.date())
    if found:
        active, active_day = found
        logger.warning(f"Auto-stopping active timer for project {active.project!r}")
        _stop(store, active, active_day, now, None)
        stopped = active

    entry = Entry(
        id=generate_id(now),
        project=project,
        task=task or None,
        comment=comment or None,
        tags=[t.strip() for t in tags or [] if t.strip()],
        start=now,
        source=SOURCE_MANUAL,
    )
    store.upsert_entry(now.date(), entry)
    return entry, stopped


def stop_timer(
    store: EntryStore,
    comment: str | None = None,
    now: datetime | None = None,
) -> list[Entry]:
    """Stop the running timer. Returns the closed segment(s)."""
    now = _now(now)
    found = store.find_active_entry(now.date())
    if not found:
        raise NoActiveTimerError("No active timer to stop.")

    active, active_day = found
    return _stop(store, active, active_day, now, comment)


def timer_status(store: EntryStore, now: datetime | None = None) -> TimerStatus:
    now = _now(now)
    found = store.find_active_entry(now.date())
    if found:
        active, _ = found
        return TimerStatus(active=active, elapsed_seconds=duration_seconds(active.start, now))

    return TimerStatus(active=None, today_seconds=store.load_day(now.date()).total_seconds())
