"""
Task model - locally authored to-do items.

No caching involved: tasks live only in our database.
"""

import enum
import uuid

from sqlalchemy import Column, String, Text, DateTime, Index
from tabsy.timeutil import utcnow
from tabsy.database import Base


class TaskStatus(str, enum.Enum):
    """Lifecycle of a task."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    """User-stated importance."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(Base):
    """A single task on the board."""
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(String(20), default=TaskStatus.PENDING.value, nullable=False, index=True)
    priority = Column(String(20), default=TaskPriority.MEDIUM.value, nullable=False, index=True)
    category = Column(String(100), default="general")

    due_date = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    # Stamped the first time the task is completed; left alone on reopen
    completed_at = Column(DateTime)

    __table_args__ = (
        Index("ix_tasks_user_status", "user_id", "status"),
    )

    def __repr__(self):
        return f"<Task(id={self.id}, title={self.title}, status={self.status})>"
