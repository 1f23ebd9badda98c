"""
Google Calendar adapter.

All reads for the cache go through list_events(), which fetches a whole
window in one batched call (following page tokens) instead of one call
per day.
"""

import logging
from datetime import datetime

from tabsy.services.google_auth import GoogleAuth, translate_google_error

logger = logging.getLogger(__name__)


def to_rfc3339(value: datetime) -> str:
    """Naive UTC datetime → RFC 3339 string understood by the Calendar API."""
    return value.replace(microsecond=0).isoformat() + "Z"


class GoogleCalendarAdapter:
    """Thin wrapper over the Calendar v3 API for one calendar."""

    def __init__(self, auth: GoogleAuth, calendar_id: str = "primary"):
        self._auth = auth
        self.calendar_id = calendar_id

    def _events(self):
        return self._auth.build("calendar", "v3").events()

    def list_events(self, time_min: datetime, time_max: datetime) -> list[dict]:
        """
        List single (expanded) events in [time_min, time_max], by start time.

        Returns:
            Raw Calendar event resources
        """
        try:
            events = self._events()
            items = []
            page_token = None
            while True:
                response = events.list(
                    calendarId=self.calendar_id,
                    timeMin=to_rfc3339(time_min),
                    timeMax=to_rfc3339(time_max),
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token
                ).execute()
                items.extend(response.get("items", []))
                page_token = response.get("nextPageToken")
                if not page_token:
                    break
        except Exception as e:
            raise translate_google_error(e) from e

        logger.info(
            "Fetched %d calendar events between %s and %s",
            len(items), time_min.date(), time_max.date()
        )
        return items

    def get_event(self, event_id: str) -> dict:
        try:
            return self._events().get(
                calendarId=self.calendar_id,
                eventId=event_id
            ).execute()
        except Exception as e:
            raise translate_google_error(e) from e

    def insert_event(self, body: dict) -> dict:
        try:
            return self._events().insert(
                calendarId=self.calendar_id,
                body=body
            ).execute()
        except Exception as e:
            raise translate_google_error(e) from e

    def update_event(self, event_id: str, body: dict) -> dict:
        try:
            return self._events().update(
                calendarId=self.calendar_id,
                eventId=event_id,
                body=body
            ).execute()
        except Exception as e:
            raise translate_google_error(e) from e
