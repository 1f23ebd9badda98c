"""
SQLAlchemy models for the Tabsy backend.

This package contains:
- User: The (single) account everything is scoped to
- SyncMetadata: Freshness bookkeeping for cached Google data
- CalendarEvent / Email: Local copies of Google Calendar and Gmail data
- Task: Locally authored tasks
- ChatConversation / ChatMessage: Assistant transcripts
"""

from tabsy.models.user import User
from tabsy.models.sync_metadata import SyncMetadata, SyncStatus, SyncType
from tabsy.models.calendar_event import CalendarEvent, event_local_id
from tabsy.models.email import Email
from tabsy.models.task import Task, TaskPriority, TaskStatus
from tabsy.models.chat import ChatConversation, ChatMessage

__all__ = [
    "User",
    "SyncMetadata",
    "SyncStatus",
    "SyncType",
    "CalendarEvent",
    "event_local_id",
    "Email",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "ChatConversation",
    "ChatMessage",
]
