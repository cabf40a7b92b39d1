"""Microsoft Graph calendar adapter - paginated calendarView reads."""

import logging
from datetime import datetime, timezone

import requests

from ttt.core.events import CalendarEvent
from ttt.errors import NetworkError

from .msgraph_auth import DeviceCodeAuth

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


def _utc_rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class GraphCalendarAdapter:
    """
    Microsoft Graph calendar adapter.

    Implements CalendarRepository protocol. Checks the token before every
    request and follows @odata.nextLink until the last page. No business
    logic - just I/O.
    """

    def __init__(
        self,
        auth: DeviceCodeAuth,
        session: requests.Session | None = None,
        base_url: str = GRAPH_BASE_URL,
        page_size: int = 100,
        timeout: int = 30,
    ):
        self.auth = auth
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout
        self._session = session or requests.Session()

    def _get_page(self, url: str, params: dict | None, tz_name: str) -> dict:
        """Make one authenticated calendarView request."""
        token = self.auth.ensure_valid_token()
        headers = {
            "Authorization": f"Bearer {token.access_token}",
            "Accept": "application/json",
        }
        if tz_name:
            headers["Prefer"] = f'outlook.timezone="{tz_name}"'

        try:
            resp = self._session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"graph API request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise NetworkError(
                f"graph API error {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        try:
            page = resp.json()
        except ValueError as e:
            raise NetworkError(
                f"decoding graph response: {e}", status_code=resp.status_code
            ) from e
        if not isinstance(page, dict):
            raise NetworkError("decoding graph response: expected a JSON object")
        return page

    def fetch_events(self, start: datetime, end: datetime, tz_name: str = "") -> list[CalendarEvent]:
        """Fetch every event in [start, end). Raises NetworkError; never returns a partial list."""
        url = f"{self.base_url}/me/calendarView"
        params: dict | None = {
            "startDateTime": _utc_rfc3339(start),
            "endDateTime": _utc_rfc3339(end),
            "$top": str(self.page_size),
        }

        events = []
        pages = 0
        while url:
            page = self._get_page(url, params, tz_name)
            pages += 1
            events.extend(CalendarEvent.from_api(item) for item in page.get("value") or [])
            # nextLink already carries the query string
            url = page.get("@odata.nextLink")
            params = None

        logger.debug(f"Fetched {len(events)} events in {pages} page(s)")
        return events
