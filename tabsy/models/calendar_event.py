"""
CalendarEvent model - local copy of Google Calendar events.

The whole set for an owner is replaced on every refresh, so there is no
per-row update path. end_time >= start_time is not enforced.
"""

from sqlalchemy import Column, String, Text, DateTime, Index, UniqueConstraint
from tabsy.database import Base


def event_local_id(user_id: str, google_event_id: str) -> str:
    """Primary key derived from owner + provider id."""
    return f"{user_id}_{google_event_id}"


class CalendarEvent(Base):
    """Cached calendar event inside the rolling refresh window."""
    __tablename__ = "calendar_events"

    id = Column(String(320), primary_key=True)  # "<user_id>_<google_event_id>"
    user_id = Column(String(64), nullable=False, index=True)
    google_event_id = Column(String(255), nullable=False)

    title = Column(String(512), nullable=False)
    description = Column(Text)
    location = Column(String(512))

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    last_synced_at = Column(DateTime)

    __table_args__ = (
        UniqueConstraint("user_id", "google_event_id", name="uq_calendar_events_user_google_id"),
        Index("ix_calendar_events_user_start", "user_id", "start_time"),
    )

    def __repr__(self):
        return f"<CalendarEvent(id={self.id}, title={self.title}, start={self.start_time})>"
