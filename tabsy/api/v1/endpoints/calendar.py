"""
Calendar endpoints.

Reads are served from the local cache (refreshed when stale); writes go to
Google Calendar and force a cache refresh.
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from tabsy.api.deps import get_calendar, get_settings, get_user_id
from tabsy.api.responses import ok
from tabsy.config import Settings
from tabsy.database import get_db
from tabsy.services import calendar_tools
from tabsy.services.refresh import CalendarRefresher
from tabsy.timeutil import to_naive_utc

router = APIRouter(prefix="/calendar", tags=["Calendar"])


# ============ Schemas ============

class EventResponse(BaseModel):
    """Cached calendar event."""
    id: str
    google_event_id: str
    title: str
    description: Optional[str]
    location: Optional[str]
    start_time: datetime
    end_time: datetime
    last_synced_at: Optional[datetime]

    class Config:
        from_attributes = True


class _EventTimes(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator("start", "end")
    @classmethod
    def naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None


class EventCreate(_EventTimes):
    """New event; title, start and end are required."""
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: Optional[list[str]] = None


class EventUpdate(_EventTimes):
    """Fields to change on an existing event."""
    title: Optional[str] = None


class FreeSlot(BaseModel):
    start: datetime
    end: datetime
    duration: int


# ============ ENDPOINTS ============

@router.get("/events")
def list_events(
    force_refresh: bool = Query(False, alias="forceRefresh"),
    start: Optional[datetime] = Query(None, description="Only events starting at or after"),
    end: Optional[datetime] = Query(None, description="Only events starting at or before"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    calendar: CalendarRefresher = Depends(get_calendar)
):
    """
    Cached calendar events (30-day window), refreshed from Google when stale.

    **Example:**
    ```
    GET /api/v1/calendar/events?forceRefresh=true
    ```
    """
    if start or end:
        events = calendar.get_events_in_range(
            db, user_id,
            start=to_naive_utc(start) if start else None,
            end=to_naive_utc(end) if end else None,
            force_refresh=force_refresh
        )
    else:
        events = calendar.get_collection(db, user_id, force_refresh=force_refresh)

    return ok([EventResponse.model_validate(e) for e in events], count=len(events))


@router.post("/events")
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    calendar: CalendarRefresher = Depends(get_calendar)
):
    """Create an event in Google Calendar."""
    created = calendar_tools.create_event(
        db, user_id, calendar,
        title=payload.title,
        start=payload.start,
        end=payload.end,
        description=payload.description,
        location=payload.location,
        attendees=payload.attendees
    )
    return ok(created)


@router.post("/events/{event_id}/update")
def update_event(
    event_id: str,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    calendar: CalendarRefresher = Depends(get_calendar)
):
    """Change the title, start or end of an existing event."""
    updated = calendar_tools.update_event(
        db, user_id, calendar, event_id,
        title=payload.title,
        start=payload.start,
        end=payload.end
    )
    return ok(updated)


@router.get("/free-slots")
def free_slots(
    day: Optional[date] = Query(None, alias="date", description="Day to search (default today)"),
    duration: int = Query(30, ge=1, description="Required duration in minutes"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    calendar: CalendarRefresher = Depends(get_calendar),
    settings: Settings = Depends(get_settings)
):
    """Free time within working hours on one day, computed from cached events."""
    day = day or calendar.clock().date()
    start, end = calendar_tools.day_bounds(day)
    events = calendar.get_events_in_range(db, user_id, start=start, end=end, overlapping=True)

    slots = calendar_tools.find_free_slots(
        events, day, duration,
        workday_start=settings.WORKDAY_START_HOUR,
        workday_end=settings.WORKDAY_END_HOUR
    )
    return ok([FreeSlot(**slot) for slot in slots])
