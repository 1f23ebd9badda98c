"""
Calendar writes and free-slot search.

Writes go straight to Google Calendar and are followed by a forced cache
refresh so the next read sees them. Free slots are computed from the
cached events of one day.
"""

import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from tabsy.errors import ValidationError
from tabsy.services.calendar_service import to_rfc3339
from tabsy.services.refresh import CalendarRefresher

logger = logging.getLogger(__name__)


def event_body(
    title: str,
    start: datetime,
    end: datetime,
    description: str = None,
    location: str = None,
    attendees: list[str] = None
) -> dict:
    """Calendar API event resource for a timed event (naive UTC times)."""
    body = {
        "summary": title,
        "start": {"dateTime": to_rfc3339(start), "timeZone": "UTC"},
        "end": {"dateTime": to_rfc3339(end), "timeZone": "UTC"},
    }
    if description:
        body["description"] = description
    if location:
        body["location"] = location
    if attendees:
        body["attendees"] = [{"email": email} for email in attendees]
    return body


def _refresh_after_write(db: Session, user_id: str, refresher: CalendarRefresher) -> None:
    # The write already succeeded upstream; a failed refresh only leaves the
    # cache stale, and SyncMetadata records it as failed.
    try:
        refresher.ensure_fresh(db, user_id, force_refresh=True)
    except Exception as e:
        logger.warning("Calendar cache refresh after write failed: %s", getattr(e, "message", None) or e)


def create_event(
    db: Session,
    user_id: str,
    refresher: CalendarRefresher,
    title: str,
    start: datetime,
    end: datetime,
    description: str = None,
    location: str = None,
    attendees: list[str] = None
) -> dict:
    """
    Create an event in Google Calendar, then refresh the cache.

    Returns:
        The created Calendar event resource
    """
    if not title or start is None or end is None:
        raise ValidationError("Missing required fields: title, start, end")
    if end < start:
        raise ValidationError("Event end must not be before its start")

    created = refresher.provider.insert_event(
        event_body(title, start, end, description, location, attendees)
    )
    logger.info("Created calendar event %s '%s'", created.get("id"), title)

    _refresh_after_write(db, user_id, refresher)
    return created


def update_event(
    db: Session,
    user_id: str,
    refresher: CalendarRefresher,
    event_id: str,
    title: str = None,
    start: datetime = None,
    end: datetime = None
) -> dict:
    """
    Patch title / start / end of an existing event, then refresh the cache.

    The current event is fetched first and sent back whole, since the
    Calendar update call replaces the resource.
    """
    event = refresher.provider.get_event(event_id)

    if title:
        event["summary"] = title
    if start is not None:
        event["start"] = {"dateTime": to_rfc3339(start), "timeZone": "UTC"}
    if end is not None:
        event["end"] = {"dateTime": to_rfc3339(end), "timeZone": "UTC"}

    updated = refresher.provider.update_event(event_id, event)
    logger.info("Updated calendar event %s", event_id)

    _refresh_after_write(db, user_id, refresher)
    return updated


# ============ FREE SLOTS ============

def find_free_slots(
    events: list,
    day: date,
    duration_minutes: int = 30,
    workday_start: int = 8,
    workday_end: int = 18
) -> list[dict]:
    """
    Gaps of at least `duration_minutes` inside the working hours of `day`.

    Args:
        events: Cached events (anything with start_time / end_time)
        day: Day to search
        duration_minutes: Minimum slot length
        workday_start: First working hour
        workday_end: Hour the working day ends

    Returns:
        List of {'start', 'end', 'duration'} dicts, duration in minutes
    """
    if duration_minutes <= 0:
        raise ValidationError("Duration must be a positive number of minutes")

    day_start = datetime.combine(day, time(hour=workday_start))
    day_end = datetime.combine(day, time(hour=workday_end))
    required = timedelta(minutes=duration_minutes)

    busy = sorted(
        (e for e in events if e.end_time > day_start and e.start_time < day_end),
        key=lambda e: e.start_time
    )

    slots = []
    cursor = day_start
    for event in busy:
        if event.start_time - cursor >= required:
            slots.append(_slot(cursor, event.start_time))
        cursor = max(cursor, event.end_time)

    if day_end - cursor >= required:
        slots.append(_slot(cursor, day_end))

    logger.info("Found %d free slots on %s", len(slots), day)
    return slots


def _slot(start: datetime, end: datetime) -> dict:
    return {
        "start": start,
        "end": end,
        "duration": int((end - start).total_seconds() // 60)
    }


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """First and last instant of `day`."""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)
