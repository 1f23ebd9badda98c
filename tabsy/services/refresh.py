"""
Cache-then-refresh orchestration for Google Calendar events and Gmail messages.

Flow for every read:
1. Look up SyncMetadata for (user, kind)
2. Fresh and not forced → serve the cached rows, no external call
3. Otherwise take the per-(user, kind) lock, re-check freshness (another
   request may have refreshed while we waited), then refresh:
   fetch → normalize → rewrite cache → stamp SyncMetadata, all committed in
   one transaction
4. On failure: roll back, record status=failed with the error, re-raise.
   Stale rows are never served in place of a failed refresh.
"""

import json
import logging
import threading
from datetime import datetime, timedelta, time
from typing import Callable, Optional

from sqlalchemy.orm import Session

from tabsy.errors import NotFoundError
from tabsy.models.sync_metadata import SyncStatus, SyncType
from tabsy.services import cache_repository
from tabsy.services.gmail_service import parse_email_date, parse_sender
from tabsy.services.sync_metadata_store import get_sync_metadata, is_stale, record_sync
from tabsy.timeutil import parse_iso, utcnow

logger = logging.getLogger(__name__)

DEFAULT_EVENT_DURATION = timedelta(hours=1)


class RefreshLocks:
    """One lock per (user, kind): at most one refresh runs at a time for each."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.Lock] = {}

    def get(self, user_id: str, kind: str) -> threading.Lock:
        with self._guard:
            key = (user_id, kind)
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]


class RefreshOrchestrator:
    """
    Serve a cached collection, refreshing it from the provider when stale.

    Subclasses set `kind` and implement rewrite_cache() and read_cached().
    """

    kind: Optional[str] = None

    def __init__(
        self,
        provider,
        locks: RefreshLocks,
        ttl: timedelta,
        clock: Callable[[], datetime] = utcnow
    ):
        self.provider = provider
        self.locks = locks
        self.ttl = ttl
        self.clock = clock

    def is_stale(self, db: Session, user_id: str) -> bool:
        meta = get_sync_metadata(db, user_id, self.kind)
        return is_stale(meta, self.ttl, self.clock())

    def ensure_fresh(self, db: Session, user_id: str, force_refresh: bool = False) -> bool:
        """
        Refresh the cache if it is stale or a refresh is forced.

        Returns:
            bool: True if this call performed a refresh
        """
        if not force_refresh and not self.is_stale(db, user_id):
            logger.info("Serving %s for %s from cache", self.kind, user_id)
            return False

        with self.locks.get(user_id, self.kind):
            if not force_refresh and not self.is_stale(db, user_id):
                logger.info("%s cache for %s was refreshed by another request", self.kind, user_id)
                return False
            self.refresh(db, user_id)
        return True

    def get_collection(self, db: Session, user_id: str, force_refresh: bool = False) -> list:
        """Cached records for a user, refreshed first when stale or forced."""
        self.ensure_fresh(db, user_id, force_refresh)
        return self.read_cached(db, user_id)

    def refresh(self, db: Session, user_id: str) -> int:
        """
        Fetch from the provider and rewrite the cache in one transaction.

        Returns:
            int: Number of records written

        Raises:
            Whatever the provider or database raised, after recording the
            failure in SyncMetadata
        """
        now = self.clock()
        logger.info("Refreshing %s cache for %s", self.kind, user_id)

        try:
            written = self.rewrite_cache(db, user_id, now)
            record_sync(db, user_id, self.kind, SyncStatus.SUCCESS, now)
            db.commit()
        except Exception as e:
            db.rollback()
            message = getattr(e, "message", None) or str(e) or e.__class__.__name__
            logger.error("%s refresh failed for %s: %s", self.kind, user_id, message)
            record_sync(db, user_id, self.kind, SyncStatus.FAILED, now, message)
            db.commit()
            raise

        logger.info("Cached %d %s records for %s", written, self.kind, user_id)
        return written

    def rewrite_cache(self, db: Session, user_id: str, now: datetime) -> int:
        raise NotImplementedError

    def read_cached(self, db: Session, user_id: str) -> list:
        raise NotImplementedError


# ============ CALENDAR ============

def map_event(item: dict, now: datetime) -> dict:
    """
    Map a Calendar API event onto the cache schema.

    Timed events use start/end.dateTime, all-day events start/end.date.
    A missing or unparseable start becomes `now`; a missing or unparseable
    end becomes start + 1 hour. Records are never rejected here.
    """
    start_info = item.get("start") or {}
    end_info = item.get("end") or {}

    start = parse_iso(start_info.get("dateTime") or start_info.get("date") or "")
    if start is None:
        start = now

    end = parse_iso(end_info.get("dateTime") or end_info.get("date") or "")
    if end is None:
        end = start + DEFAULT_EVENT_DURATION

    return {
        "google_event_id": item.get("id") or "",
        "title": item.get("summary") or "No Title",
        "description": item.get("description") or None,
        "location": item.get("location") or None,
        "start_time": start,
        "end_time": end
    }


def dedupe_by_id(records: list[dict], key: str) -> list[dict]:
    """Keep the first record for every id, preserving order."""
    unique = {}
    for record in records:
        if record[key] not in unique:
            unique[record[key]] = record
    return list(unique.values())


class CalendarRefresher(RefreshOrchestrator):
    """Delete-and-replace refresh of a rolling 30-day event window."""

    kind = SyncType.CALENDAR

    def __init__(
        self,
        provider,
        locks: RefreshLocks,
        ttl: timedelta = timedelta(minutes=15),
        days_back: int = 7,
        days_ahead: int = 23,
        clock: Callable[[], datetime] = utcnow
    ):
        super().__init__(provider, locks, ttl, clock)
        self.days_back = days_back
        self.days_ahead = days_ahead

    def window(self, now: datetime) -> tuple[datetime, datetime]:
        """Start of day `days_back` before today through end of day `days_ahead` after."""
        today = now.date()
        start = datetime.combine(today - timedelta(days=self.days_back), time.min)
        end = datetime.combine(today + timedelta(days=self.days_ahead), time.max)
        return start, end

    def rewrite_cache(self, db: Session, user_id: str, now: datetime) -> int:
        start, end = self.window(now)
        items = self.provider.list_events(start, end)

        mapped = []
        for item in items:
            record = map_event(item, now)
            if not record["google_event_id"]:
                logger.warning("Skipping calendar event without an id: %s", record["title"])
                continue
            mapped.append(record)

        return cache_repository.replace_events(
            db, user_id, dedupe_by_id(mapped, "google_event_id"), now
        )

    def read_cached(self, db: Session, user_id: str) -> list:
        return cache_repository.list_events(db, user_id)

    def get_events_in_range(
        self,
        db: Session,
        user_id: str,
        start: datetime = None,
        end: datetime = None,
        force_refresh: bool = False,
        overlapping: bool = False
    ) -> list:
        """
        Fresh cached events starting inside [start, end].

        With overlapping=True, every event that overlaps the range is
        returned, including ones that started before it.
        """
        self.ensure_fresh(db, user_id, force_refresh)
        return cache_repository.list_events(
            db, user_id, start=start, end=end, overlapping=overlapping
        )


# ============ EMAIL ============

def fetch_priority_tag(subject: str) -> str:
    """Quick tag stored with the message at fetch time."""
    subject = subject or ""
    if "urgent" in subject.lower() or "!!!" in subject:
        return "high"
    return "medium"


def normalize_message(message: dict, now: datetime) -> dict:
    """
    Map a parsed Gmail message onto the cache schema.

    Unparseable Date headers fall back to `now`.
    """
    sender_name, sender = parse_sender(message.get("from", ""))
    received_at = parse_email_date(message.get("date", "")) or now
    labels = message.get("labels") or []

    return {
        "gmail_message_id": message["id"],
        "thread_id": message.get("thread_id"),
        "subject": message.get("subject") or "No Subject",
        "sender": sender or "Unknown",
        "sender_name": sender_name or None,
        "snippet": message.get("snippet") or None,
        "body_text": message.get("body") or None,
        "received_at": received_at,
        "is_read": "UNREAD" not in labels,
        "priority": fetch_priority_tag(message.get("subject", "")),
        "labels": labels
    }


class EmailRefresher(RefreshOrchestrator):
    """Upsert-and-cap refresh of unread Gmail messages."""

    kind = SyncType.EMAIL

    def __init__(
        self,
        provider,
        locks: RefreshLocks,
        ttl: timedelta = timedelta(minutes=5),
        ceiling: int = 500,
        list_limit: int = 100,
        fetch_limit: int = 10,
        clock: Callable[[], datetime] = utcnow
    ):
        super().__init__(provider, locks, ttl, clock)
        self.ceiling = ceiling
        self.list_limit = list_limit
        self.fetch_limit = fetch_limit

    def rewrite_cache(self, db: Session, user_id: str, now: datetime) -> int:
        messages = self.provider.list_unread(limit=self.fetch_limit)
        records = [normalize_message(m, now) for m in messages if m.get("id")]

        written = cache_repository.upsert_emails(db, user_id, records, now)
        evicted = cache_repository.enforce_ceiling(db, user_id, self.ceiling)
        if evicted:
            logger.info("Evicted %d old emails for %s (ceiling %d)", evicted, user_id, self.ceiling)
        return written

    def read_cached(self, db: Session, user_id: str) -> list:
        return cache_repository.list_emails(db, user_id, limit=self.list_limit)

    def get_unread(self, db: Session, user_id: str, force_refresh: bool = False) -> list:
        self.ensure_fresh(db, user_id, force_refresh)
        return cache_repository.list_emails(
            db, user_id, unread_only=True, limit=self.list_limit
        )

    def get_email(self, db: Session, user_id: str, message_id: str):
        """Cached email by Gmail id; NotFoundError if it is not cached."""
        email = cache_repository.get_email(db, user_id, message_id)
        if email is None:
            raise NotFoundError(f"Email with ID {message_id} not found")
        return email

    def mark_as_read(self, db: Session, user_id: str, message_id: str):
        """Mark read in Gmail first, then in the cache."""
        email = self.get_email(db, user_id, message_id)
        self.provider.mark_as_read(message_id)

        email.is_read = True
        email.labels = json.dumps([label for label in email.label_list if label != "UNREAD"])
        db.commit()
        db.refresh(email)

        logger.info("Marked email %s as read", message_id)
        return email
