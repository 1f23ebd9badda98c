"""
Local copies of Google Calendar events and Gmail messages.

- Calendar: the owner's whole set is deleted and rewritten on every refresh
- Email: rows are upserted by gmail_message_id and capped per owner

Nothing in here commits; the refresh orchestrator wraps each rewrite in a
single transaction.
"""

import json
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from tabsy.models.calendar_event import CalendarEvent, event_local_id
from tabsy.models.email import Email


# ============ CALENDAR EVENTS ============

def list_events(
    db: Session,
    user_id: str,
    start: datetime = None,
    end: datetime = None,
    overlapping: bool = False
) -> list[CalendarEvent]:
    """
    Cached events for a user, earliest first.

    Args:
        db: Database session
        user_id: Owner
        start: Only events starting at or after this time
        end: Only events starting at or before this time
        overlapping: Match events that overlap [start, end) instead, so an
            event that began earlier but is still running is included
    """
    query = db.query(CalendarEvent).filter(CalendarEvent.user_id == user_id)

    if overlapping:
        if start:
            query = query.filter(CalendarEvent.end_time > start)
        if end:
            query = query.filter(CalendarEvent.start_time < end)
    else:
        if start:
            query = query.filter(CalendarEvent.start_time >= start)
        if end:
            query = query.filter(CalendarEvent.start_time <= end)

    return query.order_by(CalendarEvent.start_time.asc(), CalendarEvent.id.asc()).all()


def replace_events(
    db: Session,
    user_id: str,
    events: list[dict],
    synced_at: datetime
) -> int:
    """
    Delete all of a user's cached events and insert the given set.

    Events are keyed by "<user_id>_<google_event_id>"; callers pass an
    already deduplicated list.

    Returns:
        int: Number of events written
    """
    db.query(CalendarEvent).filter(
        CalendarEvent.user_id == user_id
    ).delete(synchronize_session="fetch")

    for event in events:
        db.add(CalendarEvent(
            id=event_local_id(user_id, event["google_event_id"]),
            user_id=user_id,
            google_event_id=event["google_event_id"],
            title=event["title"],
            description=event.get("description"),
            location=event.get("location"),
            start_time=event["start_time"],
            end_time=event["end_time"],
            last_synced_at=synced_at
        ))

    db.flush()
    return len(events)


# ============ EMAILS ============

def list_emails(
    db: Session,
    user_id: str,
    unread_only: bool = False,
    limit: int = 100
) -> list[Email]:
    """Cached emails for a user, most recently received first."""
    query = db.query(Email).filter(Email.user_id == user_id)

    if unread_only:
        query = query.filter(Email.is_read.is_(False))

    return query.order_by(Email.received_at.desc(), Email.id.desc()).limit(limit).all()


def get_email(db: Session, user_id: str, gmail_message_id: str) -> Optional[Email]:
    """Get a single cached email by its Gmail id."""
    return db.query(Email).filter(
        Email.user_id == user_id,
        Email.gmail_message_id == gmail_message_id
    ).first()


def search_emails(db: Session, user_id: str, text: str, limit: int = 50) -> list[Email]:
    """Substring search over subject, sender and body (case-insensitive)."""
    pattern = f"%{text}%"
    return db.query(Email).filter(
        Email.user_id == user_id,
        or_(
            Email.subject.ilike(pattern),
            Email.sender.ilike(pattern),
            Email.body_text.ilike(pattern)
        )
    ).order_by(Email.received_at.desc()).limit(limit).all()


def count_emails(db: Session, user_id: str) -> int:
    return db.query(Email).filter(Email.user_id == user_id).count()


def upsert_emails(
    db: Session,
    user_id: str,
    emails: list[dict],
    synced_at: datetime
) -> int:
    """
    Insert or update emails by gmail_message_id.

    Existing rows only get their read state, sender name, labels and sync
    time refreshed. Rows not present in this batch are left untouched.

    Returns:
        int: Number of emails written (first occurrence wins on duplicates)
    """
    seen = set()
    written = 0

    for data in emails:
        message_id = data["gmail_message_id"]
        if message_id in seen:
            continue
        seen.add(message_id)

        existing = db.query(Email).filter(
            Email.gmail_message_id == message_id
        ).first()

        if existing:
            existing.is_read = data.get("is_read", False)
            existing.sender_name = data.get("sender_name")
            existing.labels = json.dumps(data.get("labels") or [])
            existing.last_synced_at = synced_at
        else:
            db.add(Email(
                user_id=user_id,
                gmail_message_id=message_id,
                thread_id=data.get("thread_id"),
                subject=data.get("subject") or "No Subject",
                sender=data.get("sender") or "Unknown",
                sender_name=data.get("sender_name"),
                snippet=data.get("snippet"),
                body_text=data.get("body_text"),
                received_at=data["received_at"],
                is_read=data.get("is_read", False),
                priority=data.get("priority") or "normal",
                labels=json.dumps(data.get("labels") or []),
                last_synced_at=synced_at
            ))
        written += 1

    db.flush()
    return written


def enforce_ceiling(db: Session, user_id: str, ceiling: int) -> int:
    """
    Evict the oldest emails (by receipt time) beyond the ceiling.

    Returns:
        int: Number of rows deleted
    """
    db.flush()
    total = count_emails(db, user_id)
    excess = total - ceiling
    if excess <= 0:
        return 0

    oldest_ids = [
        row[0] for row in db.query(Email.id).filter(
            Email.user_id == user_id
        ).order_by(Email.received_at.asc(), Email.id.asc()).limit(excess).all()
    ]

    db.query(Email).filter(Email.id.in_(oldest_ids)).delete(synchronize_session="fetch")
    db.flush()
    return len(oldest_ids)
