"""Tests for manual timer workflows."""

from datetime import date, datetime, timedelta, timezone

import pytest

from ttt.core.entry import SOURCE_MANUAL
from ttt.errors import NoActiveTimerError
from ttt.timer import start_timer, stop_timer, timer_status

CET = timezone(timedelta(hours=1))
MORNING = datetime(2026, 2, 27, 9, 0, tzinfo=CET)


class TestStartTimer:
    def test_creates_open_entry(self, store):
        entry, stopped = start_timer(
            store, "Acme", task="Review", comment="PR 12", tags=[" api", "", "web "], now=MORNING
        )

        assert stopped is None
        assert entry.is_active
        assert entry.source == SOURCE_MANUAL
        assert entry.tags == ["api", "web"]
        assert entry.id.startswith("20260227-090000-")
        assert store.load_day(date(2026, 2, 27)).entries == [entry]

    def test_empty_strings_are_stored_as_null(self, store):
        entry, _ = start_timer(store, "Acme", task="", comment="", now=MORNING)
        assert entry.task is None
        assert entry.comment is None

    def test_auto_stops_running_timer(self, store, caplog):
        first, _ = start_timer(store, "Acme", now=MORNING)
        second, stopped = start_timer(store, "Globex", now=MORNING + timedelta(hours=1))

        assert stopped.id == first.id
        assert "Auto-stopping" in caplog.text
        entries = store.load_day(date(2026, 2, 27)).entries
        assert [e.id for e in entries] == [first.id, second.id]
        assert entries[0].duration_seconds == 3600
        assert entries[1].is_active


class TestStopTimer:
    def test_stops_and_appends_comment(self, store):
        start_timer(store, "Acme", comment="started", now=MORNING)

        (entry,) = stop_timer(store, comment="done", now=MORNING + timedelta(minutes=90))

        assert entry.duration_seconds == 5400
        assert entry.comment == "started\ndone"
        assert store.load_day(date(2026, 2, 27)).entries[0] == entry

    def test_nothing_running(self, store):
        with pytest.raises(NoActiveTimerError):
            stop_timer(store, now=MORNING)

    def test_splits_across_midnight(self, store):
        start_timer(store, "Acme", task="Deploy", now=datetime(2026, 2, 27, 22, 0, tzinfo=CET))

        first, second = stop_timer(store, now=datetime(2026, 2, 28, 1, 30, tzinfo=CET))

        assert store.load_day(date(2026, 2, 27)).entries == [first]
        assert store.load_day(date(2026, 2, 28)).entries == [second]
        assert first.duration_seconds == 7199
        assert second.duration_seconds == 5400
        assert second.task == "Deploy"
        assert store.find_active_entry(date(2026, 2, 28)) is None

    def test_recovers_timer_from_earlier_day(self, store):
        start_timer(store, "Acme", now=MORNING - timedelta(days=2))

        segments = stop_timer(store, now=MORNING)

        assert len(segments) == 2
        assert store.find_active_entry(date(2026, 2, 27)) is None


class TestTimerStatus:
    def test_running(self, store):
        start_timer(store, "Acme", now=MORNING)

        current = timer_status(store, now=MORNING + timedelta(seconds=125))

        assert current.active.project == "Acme"
        assert current.elapsed_seconds == 125

    def test_idle_reports_today_total(self, store):
        start_timer(store, "Acme", now=MORNING)
        stop_timer(store, now=MORNING + timedelta(minutes=45))
        start_timer(store, "Acme", now=MORNING + timedelta(hours=2))
        stop_timer(store, now=MORNING + timedelta(hours=3))

        current = timer_status(store, now=MORNING + timedelta(hours=4))

        assert current.active is None
        assert current.today_seconds == 45 * 60 + 3600
