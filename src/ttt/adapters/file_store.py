"""File-based entry storage adapter."""

import json
import logging
import os
import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path

from ttt.core.entry import DayFile, Entry
from ttt.core.timecalc import days_between
from ttt.errors import CorruptionError, StoreIOError

logger = logging.getLogger(__name__)

ACTIVE_SCAN_DAYS = 7


class FileEntryStore:
    """
    File-based entry storage.

    Implements EntryStore protocol. Each day gets a JSON file at
    <base>/<YYYY>/<MM>/<DD>.json. Writes go through a temp file in the same
    directory and os.replace, so readers never see a half-written day.
    """

    def __init__(self, base_dir: Path | str, active_scan_days: int = ACTIVE_SCAN_DAYS):
        self.base_dir = Path(base_dir).expanduser()
        # Timers left open longer than this window are not recovered.
        self.active_scan_days = active_scan_days

    def _path_for_date(self, target_date: date) -> Path:
        """Get the file path for a given date."""
        return (
            self.base_dir
            / f"{target_date.year:04d}"
            / f"{target_date.month:02d}"
            / f"{target_date.day:02d}.json"
        )

    def _quarantine(self, path: Path) -> Path:
        """Move an unreadable file aside, never overwriting an earlier backup."""
        backup = path.with_name(path.name + ".corrupt")
        if backup.exists():
            stamp = datetime.now().strftime("%Y%m%dT%H%M%S")
            backup = path.with_name(f"{path.name}.corrupt-{stamp}")
        os.replace(path, backup)
        logger.warning(f"Moved corrupt day file {path} to {backup}")
        return backup

    def load_day(self, target_date: date) -> DayFile:
        """Load a day's entries. Returns an empty DayFile if the file doesn't exist."""
        path = self._path_for_date(target_date)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return DayFile(date=target_date)
        except OSError as e:
            raise StoreIOError(f"storage error reading {path}: {e}", path=path) from e

        try:
            day = DayFile.from_dict(json.loads(raw))
        except (ValueError, TypeError, KeyError) as e:
            try:
                backup = self._quarantine(path)
            except OSError as rename_err:
                raise CorruptionError(
                    f"corrupt JSON in {path} (could not back it up: {rename_err}): {e}",
                    path=path,
                ) from e
            raise CorruptionError(
                f"corrupt JSON in {path} (backed up to {backup}): {e}",
                path=path,
                backup_path=backup,
            ) from e

        return day

    def save_day(self, target_date: date, day: DayFile) -> None:
        """Atomically write a day's entries."""
        path = self._path_for_date(target_date)
        try:
            path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(
                f"storage error creating directory {path.parent}: {e}", path=path
            ) from e

        data = json.dumps(day.to_dict(), indent=2, ensure_ascii=False)

        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except (OSError, ValueError) as e:  # UnicodeEncodeError on lone surrogates
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreIOError(f"storage error writing {path}: {e}", path=path) from e

    def upsert_entry(self, target_date: date, entry: Entry) -> None:
        """Replace the entry with the same id in place, or append it."""
        day = self.load_day(target_date)
        day.upsert(entry)
        self.save_day(target_date, day)

    def load_range(self, start_date: date, end_date: date) -> list[Entry]:
        """All entries in the inclusive date range, in day order."""
        entries = []
        for day in days_between(start_date, end_date):
            entries.extend(self.load_day(day).entries)
        return entries

    def find_active_entry(self, today: date | None = None) -> tuple[Entry, date] | None:
        """
        Find the running timer.

        Scans today and the trailing days, newest day first and newest entry
        first within a day, so a timer left open across midnight by a crash
        is still found.
        """
        today = today or date.today()
        for offset in range(self.active_scan_days):
            day = today - timedelta(days=offset)
            entries = self.load_day(day).entries
            for entry in reversed(entries):
                if entry.is_active:
                    return entry, day
        return None

    def exists(self, target_date: date) -> bool:
        """Check if a day file exists for a date."""
        return self._path_for_date(target_date).exists()
