"""
SyncMetadata model for cache freshness bookkeeping.

One row per (user, sync type). Used to decide whether the cached
calendar events / emails are fresh enough to serve.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from tabsy.database import Base


class SyncType:
    CALENDAR = "calendar"
    EMAIL = "email"


class SyncStatus:
    SUCCESS = "success"
    FAILED = "failed"


class SyncMetadata(Base):
    """
    Last refresh attempt for one kind of externally sourced data.

    Created lazily on the first refresh attempt, updated on every attempt
    (success or failure), never deleted.
    """
    __tablename__ = "sync_metadata"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    sync_type = Column(String(20), nullable=False)  # calendar, email

    # Non-decreasing once set
    last_sync_at = Column(DateTime)
    sync_status = Column(String(20), nullable=False)  # success, failed
    error_message = Column(Text)

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "sync_type", name="uq_sync_metadata_user_type"),
    )

    def __repr__(self):
        return f"<SyncMetadata(user={self.user_id}, type={self.sync_type}, status={self.sync_status})>"
