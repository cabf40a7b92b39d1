"""Remote calendar event classification and mapping - no I/O dependencies."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ttt.errors import MalformedTimestampError

from .entry import SOURCE_OUTLOOK, Entry
from .timecalc import duration_seconds, generate_id

OUTLOOK_TAG = "outlook"

# 2026-02-27T09:00:00.1234567+01:00 / ...Z
_OFFSET_FORMAT = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)
# 2026-02-27T09:00:00.0000000, what Graph sends when a Prefer timezone is set
_NAIVE_FORMAT = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?$")


@dataclass
class CalendarEvent:
    """A Microsoft Graph calendar event."""

    id: str
    subject: str = ""
    body_preview: str = ""
    is_all_day: bool = False
    is_cancelled: bool = False
    sensitivity: str = "normal"  # normal, personal, private, confidential
    show_as: str = "busy"  # free, tentative, busy, oof, workingElsewhere, unknown
    start: str = ""
    end: str = ""
    start_timezone: str = ""
    end_timezone: str = ""
    location: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "CalendarEvent":
        start = data.get("start") or {}
        end = data.get("end") or {}
        location = data.get("location") or {}
        return cls(
            id=data.get("id", ""),
            subject=data.get("subject") or "",
            body_preview=data.get("bodyPreview") or "",
            is_all_day=bool(data.get("isAllDay", False)),
            is_cancelled=bool(data.get("isCancelled", False)),
            sensitivity=data.get("sensitivity") or "",
            show_as=data.get("showAs") or "",
            start=start.get("dateTime") or "",
            end=end.get("dateTime") or "",
            start_timezone=start.get("timeZone") or "",
            end_timezone=end.get("timeZone") or "",
            location=location.get("displayName") or "",
        )


def should_import(event: CalendarEvent) -> bool:
    """
    Decide whether an event becomes a time entry.

    Pure function - no I/O. Cancelled, all-day, private and free events are
    excluded, as are events missing an id, a start or an end time.
    """
    if not event.id:
        return False
    if event.is_cancelled or event.is_all_day:
        return False
    if event.sensitivity == "private":
        return False
    if event.show_as == "free":
        return False
    if not event.start or not event.end:
        return False
    return True


def _resolve_zone(name: str):
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def _microseconds(fraction: str | None) -> int:
    if not fraction:
        return 0
    return int(fraction[:6].ljust(6, "0"))


def parse_graph_time(value: str, tz_name: str = "") -> datetime:
    """
    Parse a Graph dateTime string.

    Offset-qualified values keep their offset. Zone-naive values are
    interpreted in tz_name, or UTC when it is empty or unknown.
    """
    match = _OFFSET_FORMAT.match(value)
    if match:
        base, fraction, offset = match.groups()
        offset = "+00:00" if offset == "Z" else offset
        try:
            parsed = datetime.fromisoformat(f"{base}{offset}")
        except ValueError as e:
            raise MalformedTimestampError(f"cannot parse graph time {value!r}") from e
        return parsed.replace(microsecond=_microseconds(fraction))

    match = _NAIVE_FORMAT.match(value)
    if match:
        base, fraction = match.groups()
        try:
            parsed = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S")
        except ValueError as e:
            raise MalformedTimestampError(f"cannot parse graph time {value!r}") from e
        return parsed.replace(
            microsecond=_microseconds(fraction), tzinfo=_resolve_zone(tz_name)
        )

    raise MalformedTimestampError(f"cannot parse graph time {value!r}")


def build_comment(event: CalendarEvent) -> str | None:
    """Body preview and location name, newline-separated."""
    parts = [p for p in (event.body_preview, event.location) if p]
    if not parts:
        return None
    return "\n".join(parts)


def map_to_entry(event: CalendarEvent, tz_name: str, project: str) -> Entry:
    """
    Convert an event into a closed outlook entry with a fresh local id.

    Raises MalformedTimestampError when either time fails to parse.
    """
    try:
        start = parse_graph_time(event.start, tz_name)
        end = parse_graph_time(event.end, tz_name)
    except MalformedTimestampError as e:
        raise MalformedTimestampError(f"event {event.id!r}: {e}") from e

    return Entry(
        id=generate_id(start),
        external_id=event.id,
        project=project,
        task=event.subject,
        comment=build_comment(event),
        tags=[OUTLOOK_TAG],
        start=start,
        end=end,
        duration_seconds=duration_seconds(start, end),
        source=SOURCE_OUTLOOK,
    )
