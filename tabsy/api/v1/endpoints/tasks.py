"""
Task board endpoints: CRUD plus urgency-ranked prioritization.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from tabsy.api.deps import get_user_id
from tabsy.api.responses import ok
from tabsy.database import get_db
from tabsy.services import prioritization, task_service
from tabsy.timeutil import to_naive_utc, utcnow

router = APIRouter(prefix="/tasks", tags=["Tasks"])


# ============ Schemas ============

class TaskResponse(BaseModel):
    id: str
    title: str
    description: Optional[str]
    status: str
    priority: str
    category: Optional[str]
    due_date: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class TaskFields(BaseModel):
    """Writable task fields; all optional so partial updates work."""
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("due_date")
    @classmethod
    def naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None


class PrioritizedTask(BaseModel):
    task: TaskResponse
    urgency_score: int
    recommendation: str


# ============ ENDPOINTS ============

@router.get("")
def list_tasks(
    status: Optional[str] = Query(None, description="pending, in_progress or completed"),
    priority: Optional[str] = Query(None, description="low, medium or high"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    """
    List tasks, highest priority first, then by due date.

    **Example:**
    ```
    GET /api/v1/tasks?status=pending&priority=high
    ```
    """
    tasks = task_service.list_tasks(db, user_id, status=status, priority=priority)
    return ok([TaskResponse.model_validate(t) for t in tasks], count=len(tasks))


@router.post("", status_code=201)
def create_task(
    payload: TaskFields,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    task = task_service.create_task(db, user_id, **payload.model_dump())
    return ok(TaskResponse.model_validate(task))


@router.get("/prioritize")
def prioritize_tasks(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    """Open tasks ranked by urgency score (0-100) with a recommendation each."""
    ranked = prioritization.prioritize(task_service.list_open_tasks(db, user_id), utcnow())

    return ok({
        "tasks": [
            PrioritizedTask(
                task=TaskResponse.model_validate(task),
                urgency_score=urgency,
                recommendation=prioritization.recommendation(urgency)
            )
            for task, urgency in ranked
        ],
        "summary": prioritization.summarize(ranked)
    })


@router.get("/{task_id}")
def get_task(
    task_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    return ok(TaskResponse.model_validate(task_service.get_task(db, user_id, task_id)))


@router.put("/{task_id}")
def update_task(
    task_id: str,
    payload: TaskFields,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    """Partial update: only fields present in the body are changed."""
    task = task_service.update_task(db, user_id, task_id, payload.model_dump(exclude_unset=True))
    return ok(TaskResponse.model_validate(task))


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    task_service.delete_task(db, user_id, task_id)
    return ok({"id": task_id, "deleted": True})
