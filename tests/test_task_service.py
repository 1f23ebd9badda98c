"""Tests for tabsy.services.task_service: owner-scoped task CRUD."""

from datetime import datetime, timedelta

import pytest

from tabsy.errors import NotFoundError, ValidationError
from tabsy.models import Task
from tabsy.services import task_service

from conftest import USER_ID


class TestCreateTask:
    def test_defaults(self, db):
        task = task_service.create_task(db, USER_ID, title="Write docs")
        assert task.id
        assert task.status == "pending"
        assert task.priority == "medium"
        assert task.category == "general"
        assert task.completed_at is None

    def test_title_is_required(self, db):
        with pytest.raises(ValidationError):
            task_service.create_task(db, USER_ID, title="   ")
        assert db.query(Task).count() == 0

    def test_invalid_priority_rejected_before_insert(self, db):
        with pytest.raises(ValidationError):
            task_service.create_task(db, USER_ID, title="x", priority="urgent")
        assert db.query(Task).count() == 0

    def test_created_completed_gets_completed_at(self, db):
        task = task_service.create_task(db, USER_ID, title="Done already", status="completed")
        assert task.completed_at is not None


class TestUpdateTask:
    def test_completing_sets_completed_at(self, db):
        task = task_service.create_task(db, USER_ID, title="Ship")
        updated = task_service.update_task(db, USER_ID, task.id, {"status": "completed"})
        assert updated.completed_at is not None

    def test_completed_at_is_stamped_once(self, db):
        task = task_service.create_task(db, USER_ID, title="Ship")
        task_service.update_task(db, USER_ID, task.id, {"status": "completed"})
        stamped = task_service.get_task(db, USER_ID, task.id).completed_at

        task_service.update_task(db, USER_ID, task.id, {"status": "completed", "title": "Ship it"})
        assert task_service.get_task(db, USER_ID, task.id).completed_at == stamped

    def test_reopening_keeps_completed_at(self, db):
        task = task_service.create_task(db, USER_ID, title="Ship")
        task_service.update_task(db, USER_ID, task.id, {"status": "completed"})
        reopened = task_service.update_task(db, USER_ID, task.id, {"status": "in_progress"})
        assert reopened.status == "in_progress"
        assert reopened.completed_at is not None

    def test_other_fields_do_not_touch_completed_at(self, db):
        task = task_service.create_task(db, USER_ID, title="Ship")
        updated = task_service.update_task(db, USER_ID, task.id, {
            "title": "Ship v2",
            "priority": "high",
            "due_date": datetime(2024, 12, 1)
        })
        assert updated.title == "Ship v2"
        assert updated.priority == "high"
        assert updated.completed_at is None

    def test_partial_update_leaves_other_fields(self, db):
        task = task_service.create_task(db, USER_ID, title="Ship", description="v1", category="work")
        updated = task_service.update_task(db, USER_ID, task.id, {"priority": "low"})
        assert updated.description == "v1"
        assert updated.category == "work"

    def test_invalid_status_rejected(self, db):
        task = task_service.create_task(db, USER_ID, title="Ship")
        with pytest.raises(ValidationError):
            task_service.update_task(db, USER_ID, task.id, {"status": "done"})

    def test_unknown_task(self, db):
        with pytest.raises(NotFoundError):
            task_service.update_task(db, USER_ID, "missing", {"title": "x"})

    def test_other_owner_cannot_update(self, db):
        task = task_service.create_task(db, USER_ID, title="Mine")
        with pytest.raises(NotFoundError):
            task_service.update_task(db, "someone-else", task.id, {"title": "Theirs"})


class TestListAndDelete:
    def test_filters_are_exact_match(self, db):
        task_service.create_task(db, USER_ID, title="A", status="pending", priority="high")
        task_service.create_task(db, USER_ID, title="B", status="completed", priority="high")
        task_service.create_task(db, USER_ID, title="C", status="pending", priority="low")

        assert {t.title for t in task_service.list_tasks(db, USER_ID, status="pending")} == {"A", "C"}
        assert {t.title for t in task_service.list_tasks(db, USER_ID, priority="high")} == {"A", "B"}
        assert [t.title for t in task_service.list_tasks(db, USER_ID, status="pending", priority="low")] == ["C"]

    def test_default_order(self, db):
        base = datetime(2024, 11, 20)
        task_service.create_task(db, USER_ID, title="low", priority="low", due_date=base)
        task_service.create_task(db, USER_ID, title="high-undated", priority="high")
        task_service.create_task(db, USER_ID, title="high-late", priority="high", due_date=base + timedelta(days=2))
        task_service.create_task(db, USER_ID, title="high-soon", priority="high", due_date=base)

        titles = [t.title for t in task_service.list_tasks(db, USER_ID)]
        assert titles == ["high-soon", "high-late", "high-undated", "low"]

    def test_open_tasks_exclude_completed(self, db):
        task_service.create_task(db, USER_ID, title="open")
        task_service.create_task(db, USER_ID, title="done", status="completed")
        assert [t.title for t in task_service.list_open_tasks(db, USER_ID)] == ["open"]

    def test_delete_is_hard(self, db):
        task = task_service.create_task(db, USER_ID, title="Temp")
        task_service.delete_task(db, USER_ID, task.id)
        assert db.query(Task).filter_by(id=task.id).first() is None
        with pytest.raises(NotFoundError):
            task_service.get_task(db, USER_ID, task.id)
