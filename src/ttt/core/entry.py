"""Time entry domain model - no I/O dependencies."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime

from .timecalc import (
    duration_seconds,
    end_of_day,
    format_timestamp,
    generate_id,
    parse_timestamp,
    same_day,
    start_of_day,
)

SOURCE_MANUAL = "manual"
SOURCE_OUTLOOK = "outlook"


@dataclass
class Entry:
    """A single tracked interval. No end means the timer is still running."""

    id: str
    project: str
    start: datetime
    end: datetime | None = None
    duration_seconds: int | None = None
    task: str | None = None
    comment: str | None = None
    tags: list[str] = field(default_factory=list)
    source: str = SOURCE_MANUAL
    external_id: str | None = None

    @property
    def is_active(self) -> bool:
        return self.end is None

    def close(self, end: datetime) -> None:
        """Set end and the matching duration."""
        self.end = end
        self.duration_seconds = duration_seconds(self.start, end)

    def append_comment(self, comment: str | None) -> None:
        if not comment:
            return
        self.comment = f"{self.comment}\n{comment}" if self.comment else comment

    def to_dict(self) -> dict:
        """Serialize with a stable key order; external_id only when set."""
        data: dict = {"id": self.id}
        if self.external_id:
            data["external_id"] = self.external_id
        data.update(
            {
                "project": self.project,
                "task": self.task,
                "comment": self.comment,
                "tags": list(self.tags),
                "start": format_timestamp(self.start),
                "end": format_timestamp(self.end) if self.end else None,
                "duration_seconds": self.duration_seconds,
                "source": self.source,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Entry":
        """Deserialize. Raises KeyError, TypeError or ValueError on a bad shape."""
        if not isinstance(data, dict):
            raise TypeError("entry must be a JSON object")
        if not isinstance(data["id"], str) or not data["id"]:
            raise ValueError("entry id must be a non-empty string")

        tags = data.get("tags")
        if tags is None:
            tags = []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise TypeError("entry tags must be a list of strings")

        end = data.get("end")
        duration = data.get("duration_seconds")
        if duration is not None and not isinstance(duration, int):
            raise TypeError("duration_seconds must be an integer")

        return cls(
            id=data["id"],
            external_id=data.get("external_id") or None,
            project=data.get("project") or "",
            task=data.get("task"),
            comment=data.get("comment"),
            tags=tags,
            start=parse_timestamp(data["start"]),
            end=parse_timestamp(end) if end is not None else None,
            duration_seconds=duration,
            source=data.get("source") or SOURCE_MANUAL,
        )


@dataclass
class DayFile:
    """All entries whose start falls on one calendar day."""

    date: date
    entries: list[Entry] = field(default_factory=list)

    def find(self, entry_id: str) -> Entry | None:
        return next((e for e in self.entries if e.id == entry_id), None)

    def find_by_external_id(self, external_id: str) -> Entry | None:
        return next((e for e in self.entries if e.external_id == external_id), None)

    def upsert(self, entry: Entry) -> None:
        """Replace the entry with the same id in place, or append it."""
        for i, existing in enumerate(self.entries):
            if existing.id == entry.id:
                self.entries[i] = entry
                return
        self.entries.append(entry)

    def total_seconds(self) -> int:
        return sum(e.duration_seconds or 0 for e in self.entries)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "entries": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DayFile":
        if not isinstance(data, dict):
            raise TypeError("day file must be a JSON object")
        entries = data.get("entries")
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            raise TypeError("day file entries must be a list")
        return cls(
            date=date.fromisoformat(data["date"]),
            entries=[Entry.from_dict(e) for e in entries],
        )


def close_entry(entry: Entry, stop_time: datetime) -> list[Entry]:
    """
    Close an open entry at stop_time.

    Pure function - no I/O. Returns the closed entry, or two entries when the
    interval crosses midnight: the original ending at 23:59:59 of its start
    day, and a new segment from 00:00:00 of the stop day. The new segment
    shares project, task, comment, tags and source but gets its own id.
    """
    if same_day(entry.start, stop_time):
        entry.close(stop_time)
        return [entry]

    entry.close(end_of_day(entry.start))

    second_start = start_of_day(stop_time)
    second = replace(
        entry,
        id=generate_id(second_start),
        external_id=None,
        tags=list(entry.tags),
        start=second_start,
        end=None,
        duration_seconds=None,
    )
    second.close(stop_time)
    return [entry, second]
