"""
Email model for the local copy of Gmail messages.

Rows are upserted on every refresh (never delete-and-replace) and the
oldest ones are evicted once an owner holds more than the cache ceiling.
"""

import json

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Index
from sqlalchemy.sql import func
from tabsy.database import Base


class Email(Base):
    """Cached Gmail message."""
    __tablename__ = "emails"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)

    # Gmail identifiers (message id is unique - prevents duplicates)
    gmail_message_id = Column(String(64), unique=True, nullable=False, index=True)
    thread_id = Column(String(64))

    # Email metadata
    subject = Column(String(512))
    sender = Column(String(255), index=True)
    sender_name = Column(String(255))
    snippet = Column(Text)
    body_text = Column(Text)

    received_at = Column(DateTime, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    priority = Column(String(20), default="normal")  # heuristic tag from the fetch
    labels = Column(Text, default="[]")  # JSON array of Gmail label ids

    last_synced_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("ix_emails_user_received", "user_id", "received_at"),
    )

    @property
    def label_list(self) -> list[str]:
        try:
            return json.loads(self.labels or "[]")
        except ValueError:
            return []

    def __repr__(self):
        return f"<Email(id={self.id}, sender={self.sender}, subject={self.subject[:30] if self.subject else ''})>"
