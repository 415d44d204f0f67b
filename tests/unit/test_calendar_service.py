"""
Unit tests for the Google Calendar client
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from studio_sync.services.calendar_service import GoogleCalendarService, calendar_link
from studio_sync.services.google_auth import AccessToken
from studio_sync.utils.exceptions import CalendarAPIError


CALENDAR_ID = "c_abc123@group.calendar.google.com"


def response(status_code, payload=None):
    mock = MagicMock()
    mock.status_code = status_code
    mock.ok = 200 <= status_code < 400
    mock.json.return_value = payload or {}
    return mock


@pytest.fixture
def session():
    mock = MagicMock(spec=requests.Session)
    mock.headers = {}
    return mock


@pytest.fixture
def calendar(session):
    token = AccessToken("ya29.cal", datetime.now(timezone.utc) + timedelta(hours=1))
    return GoogleCalendarService(token, session=session)


class TestGoogleCalendarService:
    """Test calendar create, share and delete"""

    def test_bearer_header(self, calendar, session):
        assert session.headers["Authorization"] == "Bearer ya29.cal"

    def test_create_calendar(self, calendar, session):
        session.request.return_value = response(200, {"id": CALENDAR_ID})

        info = calendar.create_calendar("Lens & Light")

        assert info.calendar_id == CALENDAR_ID
        assert info.summary == "Studio Events - Lens & Light"
        assert info.link == calendar_link(CALENDAR_ID)

        method, url = session.request.call_args.args
        payload = session.request.call_args.kwargs["json"]
        assert method == "POST"
        assert url.endswith("/calendars")
        assert payload["summary"] == "Studio Events - Lens & Light"
        assert payload["timeZone"] == "Asia/Kolkata"

    def test_create_calendar_rejected(self, calendar, session):
        session.request.return_value = response(403, {"error": {"message": "forbidden"}})

        with pytest.raises(CalendarAPIError) as exc_info:
            calendar.create_calendar("Lens & Light")

        assert exc_info.value.status_code == 403

    def test_create_calendar_without_id(self, calendar, session):
        session.request.return_value = response(200, {})

        with pytest.raises(CalendarAPIError):
            calendar.create_calendar("Lens & Light")

    def test_share_calendar(self, calendar, session):
        session.request.return_value = response(200, {"id": "user:owner@example.com"})

        calendar.share_calendar(CALENDAR_ID, "owner@example.com")

        method, url = session.request.call_args.args
        assert method == "POST"
        assert url.endswith(f"/calendars/{CALENDAR_ID}/acl")
        assert session.request.call_args.kwargs["json"] == {
            "role": "writer",
            "scope": {"type": "user", "value": "owner@example.com"},
        }

    def test_delete_calendar(self, calendar, session):
        session.request.return_value = response(204)

        assert calendar.delete_calendar(CALENDAR_ID) is True
        assert session.request.call_args.args[0] == "DELETE"

    def test_delete_missing_calendar(self, calendar, session):
        """A calendar that is already gone counts as deleted"""
        session.request.return_value = response(404, {"error": {"code": 404}})

        assert calendar.delete_calendar(CALENDAR_ID) is False

    def test_delete_server_error(self, calendar, session):
        session.request.return_value = response(500)

        with pytest.raises(CalendarAPIError) as exc_info:
            calendar.delete_calendar(CALENDAR_ID)

        assert exc_info.value.calendar_id == CALENDAR_ID

    def test_network_error(self, calendar, session):
        session.request.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(CalendarAPIError, match="unreachable"):
            calendar.delete_calendar(CALENDAR_ID)
