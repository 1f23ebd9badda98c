"""
SyncMetadata persistence.

Freshness is judged from the last refresh attempt of a (user, sync type)
pair. Writers here only flush; the refresh orchestrator owns the commit so
the metadata stamp lands in the same transaction as the cache rewrite.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from tabsy.models.sync_metadata import SyncMetadata, SyncStatus


def get_sync_metadata(db: Session, user_id: str, sync_type: str) -> Optional[SyncMetadata]:
    """
    Get the metadata row for a user and sync type, if one exists.

    The row is reloaded even if it is already in the session, so a refresh
    committed by another request is seen.
    """
    return db.query(SyncMetadata).filter(
        SyncMetadata.user_id == user_id,
        SyncMetadata.sync_type == sync_type
    ).populate_existing().first()


def is_stale(meta: Optional[SyncMetadata], ttl: timedelta, now: datetime) -> bool:
    """
    Decide whether a cached collection must be refreshed.

    Stale when:
    - no metadata row exists (never synced)
    - last_sync_at is null
    - the last attempt failed
    - now - last_sync_at > ttl
    """
    if meta is None or meta.last_sync_at is None:
        return True
    if meta.sync_status == SyncStatus.FAILED:
        return True
    return now - meta.last_sync_at > ttl


def record_sync(
    db: Session,
    user_id: str,
    sync_type: str,
    status: str,
    now: datetime,
    error_message: str = None
) -> SyncMetadata:
    """
    Record a refresh attempt (creates the row on first use).

    last_sync_at strictly increases across attempts: if the clock has not
    moved past the previous stamp, the new one is bumped by a microsecond.

    Args:
        db: Database session (flushed, not committed)
        user_id: Owner of the cache
        sync_type: "calendar" or "email"
        status: "success" or "failed"
        now: Attempt time (naive UTC)
        error_message: Failure reason; cleared on success

    Returns:
        SyncMetadata: The updated row
    """
    meta = get_sync_metadata(db, user_id, sync_type)

    if meta is None:
        meta = SyncMetadata(user_id=user_id, sync_type=sync_type)
        db.add(meta)

    stamp = now
    if meta.last_sync_at is not None and stamp <= meta.last_sync_at:
        stamp = meta.last_sync_at + timedelta(microseconds=1)

    meta.last_sync_at = stamp
    meta.sync_status = status
    meta.error_message = error_message if status == SyncStatus.FAILED else None

    db.flush()
    return meta
