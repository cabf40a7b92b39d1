"""Tests for the Microsoft Graph calendar adapter."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from ttt.adapters.msgraph_auth import Token
from ttt.adapters.msgraph_calendar import GraphCalendarAdapter
from ttt.errors import AuthError, NetworkError

CET = timezone(timedelta(hours=1))
START = datetime(2026, 2, 27, 0, 0, tzinfo=CET)
END = datetime(2026, 2, 28, 0, 0, tzinfo=CET)


def _item(event_id: str, subject: str) -> dict:
    return {
        "id": event_id,
        "subject": subject,
        "start": {"dateTime": "2026-02-27T09:00:00.0000000", "timeZone": "Europe/Berlin"},
        "end": {"dateTime": "2026-02-27T10:00:00.0000000", "timeZone": "Europe/Berlin"},
    }


@pytest.fixture
def auth():
    auth = MagicMock()
    auth.ensure_valid_token.return_value = Token(access_token="tok")
    return auth


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def adapter(auth, session):
    return GraphCalendarAdapter(auth, session=session)


class TestFetchEvents:
    def test_single_page(self, adapter, session, make_response):
        session.get.return_value = make_response(200, {"value": [_item("1", "Standup")]})

        events = adapter.fetch_events(START, END)

        assert [e.subject for e in events] == ["Standup"]
        url = session.get.call_args.args[0]
        assert url == "https://graph.microsoft.com/v1.0/me/calendarView"
        params = session.get.call_args.kwargs["params"]
        assert params == {
            "startDateTime": "2026-02-26T23:00:00Z",
            "endDateTime": "2026-02-27T23:00:00Z",
            "$top": "100",
        }

    def test_follows_next_link(self, adapter, session, auth, make_response):
        next_link = "https://graph.microsoft.com/v1.0/me/calendarView?$skip=100"
        session.get.side_effect = [
            make_response(200, {"value": [_item("1", "A")], "@odata.nextLink": next_link}),
            make_response(200, {"value": [_item("2", "B"), _item("3", "C")]}),
        ]

        events = adapter.fetch_events(START, END)

        assert [e.id for e in events] == ["1", "2", "3"]
        second = session.get.call_args_list[1]
        assert second.args[0] == next_link
        assert second.kwargs["params"] is None
        assert auth.ensure_valid_token.call_count == 2

    def test_empty_page(self, adapter, session, make_response):
        session.get.return_value = make_response(200, {"value": []})
        assert adapter.fetch_events(START, END) == []

    def test_headers(self, adapter, session, make_response):
        session.get.return_value = make_response(200, {"value": []})

        adapter.fetch_events(START, END, "Europe/Berlin")

        headers = session.get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer tok"
        assert headers["Accept"] == "application/json"
        assert headers["Prefer"] == 'outlook.timezone="Europe/Berlin"'

    def test_no_prefer_header_without_timezone(self, adapter, session, make_response):
        session.get.return_value = make_response(200, {"value": []})

        adapter.fetch_events(START, END)

        assert "Prefer" not in session.get.call_args.kwargs["headers"]

    def test_http_error(self, adapter, session, make_response):
        session.get.return_value = make_response(403, {"error": {"code": "Forbidden"}})

        with pytest.raises(NetworkError, match="403") as exc_info:
            adapter.fetch_events(START, END)

        assert exc_info.value.status_code == 403
        assert "Forbidden" in str(exc_info.value)

    def test_error_on_later_page_returns_nothing(self, adapter, session, make_response):
        session.get.side_effect = [
            make_response(200, {"value": [_item("1", "A")], "@odata.nextLink": "https://next"}),
            make_response(503, {"error": "unavailable"}),
        ]

        with pytest.raises(NetworkError):
            adapter.fetch_events(START, END)

    def test_connection_error(self, adapter, session):
        session.get.side_effect = requests.ConnectionError("offline")

        with pytest.raises(NetworkError):
            adapter.fetch_events(START, END)

    def test_invalid_json(self, adapter, session, make_response):
        resp = make_response(200, None)
        resp.json.side_effect = ValueError("bad json")
        session.get.return_value = resp

        with pytest.raises(NetworkError):
            adapter.fetch_events(START, END)

    def test_auth_errors_propagate(self, adapter, session, auth):
        auth.ensure_valid_token.side_effect = AuthError("denied")

        with pytest.raises(AuthError):
            adapter.fetch_events(START, END)
        session.get.assert_not_called()
