"""Repository layer for task CRUD operations.

Snapshot sync does not go through this repository; it replaces rows in bulk
(see `incantations.sync.upload`).
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from incantations.errors import NotFound
from incantations.models.task import Task, TaskPriority, TaskStatus
from incantations.database.models import TaskDB, enum_to_value

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("title", "description", "priority", "status", "due_date", "project", "tags")


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _get_row(self, user_id: int, task_id: int) -> Optional[TaskDB]:
        return self.db.query(TaskDB).filter(
            TaskDB.id == task_id,
            TaskDB.user_id == user_id,
        ).first()

    def create(
        self,
        user_id: int,
        title: str,
        description: Optional[str] = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
        status: TaskStatus = TaskStatus.PENDING,
        due_date: Optional[datetime] = None,
        project: Optional[str] = None,
        tags: Optional[List[str]] = None,
        extracted_from: Optional[str] = None,
    ) -> Task:
        """Create a new task."""
        now = datetime.utcnow()
        task_db = TaskDB(
            user_id=user_id,
            title=title,
            description=description,
            priority=enum_to_value(priority),
            status=enum_to_value(status),
            due_date=due_date,
            project=project,
            tags=list(tags or []),
            extracted_from=extracted_from,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task_db.id}: {title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task for user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: int, task_id: int) -> Optional[Task]:
        """Get task by ID for a specific user."""
        task_db = self._get_row(user_id, task_id)
        return task_db.to_pydantic() if task_db else None

    def get_all(self, user_id: int) -> List[Task]:
        """Get all tasks for a user sorted by creation date (newest first)."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.user_id == user_id,
        ).order_by(desc(TaskDB.created_at), desc(TaskDB.id)).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def update(self, user_id: int, task_id: int, changes: Dict[str, Any]) -> Task:
        """Apply the non-null fields of `changes` to a task.

        Raises:
            NotFound: if the task does not exist for this user
        """
        task_db = self._get_row(user_id, task_id)
        if not task_db:
            raise NotFound(f"Task {task_id} not found")

        for field in _UPDATABLE_FIELDS:
            value = changes.get(field)
            if value is None:
                continue
            if field in ("priority", "status"):
                value = enum_to_value(value)
            elif field == "tags":
                value = list(value)
            setattr(task_db, field, value)
        task_db.updated_at = datetime.utcnow()

        try:
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated task {task_id}: {task_db.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, user_id: int, task_id: int) -> bool:
        """Permanently delete a task by ID for a specific user."""
        task_db = self._get_row(user_id, task_id)
        if not task_db:
            return False

        try:
            self.db.delete(task_db)
            self.db.commit()
            logger.debug(f"Deleted task {task_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task {task_id}: {type(e).__name__}: {str(e)}")
            raise
