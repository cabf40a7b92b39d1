"""Shared pytest fixtures."""

import json
from unittest.mock import MagicMock

import pytest

from ttt.adapters.file_store import FileEntryStore
from ttt.core.events import CalendarEvent


@pytest.fixture
def store(tmp_path):
    return FileEntryStore(tmp_path / "data")


@pytest.fixture
def make_event():
    """Factory for busy, normal-sensitivity Graph events."""

    def _make(
        event_id: str,
        subject: str,
        start: str,
        end: str,
        **overrides,
    ) -> CalendarEvent:
        fields = dict(
            id=event_id,
            subject=subject,
            start=start,
            end=end,
            start_timezone="UTC",
            end_timezone="UTC",
            sensitivity="normal",
            show_as="busy",
        )
        fields.update(overrides)
        return CalendarEvent(**fields)

    return _make


@pytest.fixture
def make_response():
    """Factory for stand-ins of requests.Response."""

    def _make(status_code: int = 200, payload=None) -> MagicMock:
        resp = MagicMock()
        resp.status_code = status_code
        resp.json.return_value = payload
        resp.text = json.dumps(payload)
        return resp

    return _make
