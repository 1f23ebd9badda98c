"""
Task CRUD.

Rules beyond plain CRUD:
- completed_at is stamped the first time a task moves to completed and is
  never cleared (reopening keeps the original completion time)
- status / priority filters are exact matches on the stored values
- delete is a hard delete
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from tabsy.errors import NotFoundError, ValidationError
from tabsy.models.task import Task, TaskPriority, TaskStatus
from tabsy.timeutil import utcnow

logger = logging.getLogger(__name__)

STATUSES = {s.value for s in TaskStatus}
PRIORITIES = {p.value for p in TaskPriority}

UPDATABLE_FIELDS = ("title", "description", "status", "priority", "category", "due_date")

# high first when sorting ascending
_PRIORITY_RANK = case(
    (Task.priority == TaskPriority.HIGH.value, 0),
    (Task.priority == TaskPriority.MEDIUM.value, 1),
    else_=2
)


def _validate(status: Optional[str] = None, priority: Optional[str] = None) -> None:
    if status is not None and status not in STATUSES:
        raise ValidationError(f"Invalid status '{status}'. Expected one of: {', '.join(sorted(STATUSES))}")
    if priority is not None and priority not in PRIORITIES:
        raise ValidationError(f"Invalid priority '{priority}'. Expected one of: {', '.join(sorted(PRIORITIES))}")


def _ordered(query):
    """Priority high→low, then earliest due date (undated last), then newest."""
    return query.order_by(
        _PRIORITY_RANK.asc(),
        Task.due_date.is_(None).asc(),
        Task.due_date.asc(),
        Task.created_at.desc()
    )


# ============ QUERIES ============

def list_tasks(
    db: Session,
    user_id: str,
    status: str = None,
    priority: str = None
) -> list[Task]:
    """
    Get a user's tasks with optional exact-match filters.

    Args:
        db: Database session
        user_id: Owner
        status: pending, in_progress or completed
        priority: low, medium or high
    """
    _validate(status, priority)

    query = db.query(Task).filter(Task.user_id == user_id)
    if status:
        query = query.filter(Task.status == status)
    if priority:
        query = query.filter(Task.priority == priority)

    return _ordered(query).all()


def list_open_tasks(db: Session, user_id: str) -> list[Task]:
    """Tasks that are not completed, in the store's default order."""
    query = db.query(Task).filter(
        Task.user_id == user_id,
        Task.status != TaskStatus.COMPLETED.value
    )
    return _ordered(query).all()


def get_task(db: Session, user_id: str, task_id: str) -> Task:
    """Get a single task; raises NotFoundError for unknown ids."""
    task = db.query(Task).filter(
        Task.id == task_id,
        Task.user_id == user_id
    ).first()

    if not task:
        raise NotFoundError(f"Task with ID {task_id} not found")
    return task


# ============ MUTATIONS ============

def create_task(
    db: Session,
    user_id: str,
    title: str,
    description: str = None,
    status: str = None,
    priority: str = None,
    category: str = None,
    due_date: datetime = None
) -> Task:
    """Create a task. Title is required; defaults: pending / medium / general."""
    if not title or not title.strip():
        raise ValidationError("Title is required")
    _validate(status, priority)

    status = status or TaskStatus.PENDING.value
    task = Task(
        user_id=user_id,
        title=title.strip(),
        description=description,
        status=status,
        priority=priority or TaskPriority.MEDIUM.value,
        category=category or "general",
        due_date=due_date,
        completed_at=utcnow() if status == TaskStatus.COMPLETED.value else None
    )

    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("Task created: %s '%s'", task.id, task.title)
    return task


def update_task(db: Session, user_id: str, task_id: str, changes: dict) -> Task:
    """
    Apply a partial update.

    Args:
        changes: Only keys present are applied (see UPDATABLE_FIELDS)
    """
    task = get_task(db, user_id, task_id)
    _validate(changes.get("status"), changes.get("priority"))

    if "title" in changes and not (changes["title"] or "").strip():
        raise ValidationError("Title cannot be empty")

    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        # title / status / priority are not nullable; None means "unchanged"
        if changes[field] is None and field in ("title", "status", "priority"):
            continue
        setattr(task, field, changes[field])

    if task.status == TaskStatus.COMPLETED.value and task.completed_at is None:
        task.completed_at = utcnow()

    db.commit()
    db.refresh(task)
    logger.info("Task updated: %s", task.id)
    return task


def delete_task(db: Session, user_id: str, task_id: str) -> None:
    """Hard delete."""
    task = get_task(db, user_id, task_id)
    db.delete(task)
    db.commit()
    logger.info("Task deleted: %s", task_id)
