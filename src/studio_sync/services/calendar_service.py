"""
Google Calendar API client.

Creates the dedicated studio calendar of a firm, shares it with a nominated
account and deletes it when the firm is purged.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from studio_sync.services.google_auth import AccessToken
from studio_sync.utils.config import get_config
from studio_sync.utils.exceptions import CalendarAPIError, handle_api_error
from studio_sync.utils.logger import get_logger


logger = get_logger(__name__)


def calendar_link(calendar_id: str) -> str:
    return f"https://calendar.google.com/calendar/u/0/r?cid={calendar_id}"


@dataclass
class CalendarInfo:
    """Created calendar resource."""
    
    calendar_id: str
    summary: str
    link: str


class GoogleCalendarService:
    """Thin wrapper over the Calendar v3 REST API."""
    
    def __init__(self, access_token: AccessToken, session: Optional[requests.Session] = None):
        """
        Initialize the calendar client.
        
        Args:
            access_token: Bearer token with the calendar scope
            session: Optional requests session (tests inject a mock)
        """
        config = get_config()
        
        self.base_url = config.calendar_api_base.rstrip("/")
        self.time_zone = config.calendar_time_zone
        self.timeout = config.calendar_request_timeout
        
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {access_token.token}",
            "Content-Type": "application/json",
        })
    
    def _request(self, method: str, path: str, calendar_id: Optional[str] = None,
                 payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise CalendarAPIError(f"Calendar request failed: {e}", calendar_id=calendar_id)
    
    def create_calendar(self, firm_name: str) -> CalendarInfo:
        """
        Create a calendar for the firm.
        
        Raises:
            CalendarAPIError: If the API rejects the request or returns no id.
        """
        summary = f"Studio Events - {firm_name}"
        payload = {
            "summary": summary,
            "description": f"Photography studio calendar for {firm_name}",
            "timeZone": self.time_zone,
        }
        
        response = self._request("POST", "/calendars", payload=payload)
        if not response.ok:
            handle_api_error(response, endpoint="POST /calendars")
        
        calendar_id = response.json().get("id")
        if not calendar_id:
            raise CalendarAPIError("Calendar created but response contained no id")
        
        logger.info(f"Created calendar {calendar_id} for firm '{firm_name}'")
        return CalendarInfo(calendar_id=calendar_id, summary=summary, link=calendar_link(calendar_id))
    
    def share_calendar(self, calendar_id: str, email: str, role: str = "writer") -> None:
        """Grant ``role`` access on the calendar to a user."""
        payload = {"role": role, "scope": {"type": "user", "value": email}}
        
        response = self._request("POST", f"/calendars/{calendar_id}/acl", calendar_id=calendar_id, payload=payload)
        if not response.ok:
            handle_api_error(response, endpoint="POST /calendars/{id}/acl", calendar_id=calendar_id)
        
        logger.info(f"Shared calendar {calendar_id} with {email} ({role})")
    
    def delete_calendar(self, calendar_id: str) -> bool:
        """
        Delete a calendar.
        
        Returns:
            True if deleted, False if it was already gone (404).
        """
        response = self._request("DELETE", f"/calendars/{calendar_id}", calendar_id=calendar_id)
        
        if response.status_code == 404:
            logger.info(f"Calendar {calendar_id} already deleted")
            return False
        if not response.ok:
            handle_api_error(response, endpoint="DELETE /calendars/{id}", calendar_id=calendar_id)
        
        logger.info(f"Deleted calendar {calendar_id}")
        return True
