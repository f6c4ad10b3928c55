"""Request/response models for sync, preference and task endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from incantations.models.constants import DEFAULT_TASK_PRIORITY, MAX_PROJECT_LENGTH, MAX_TITLE_LENGTH
from incantations.models.task import Task, TaskPriority, TaskStatus
from incantations.models.snapshot import as_utc, require_text


class UploadResponse(BaseModel):
    """Response for snapshot upload."""
    success: bool = True
    message: str = "Data uploaded successfully"
    tasks: int = 0
    conversations: int = 0


class PreferenceSyncRequest(BaseModel):
    """Local preferences to merge into the stored copy."""
    localPreferences: Dict[str, Any] = Field(default_factory=dict)


class PreferenceSyncResponse(BaseModel):
    preferences: Dict[str, Any]


class SuccessResponse(BaseModel):
    success: bool = True


class TaskCreateRequest(BaseModel):
    """Request model for creating a task."""
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = None
    priority: TaskPriority = DEFAULT_TASK_PRIORITY
    dueDate: Optional[datetime] = None
    project: Optional[str] = Field(None, max_length=MAX_PROJECT_LENGTH)
    tags: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _non_blank_title(cls, v: str) -> str:
        return require_text(v)


class TaskUpdateRequest(BaseModel):
    """Request model for a partial task update (null fields are left unchanged)."""
    title: Optional[str] = Field(None, min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    dueDate: Optional[datetime] = None
    project: Optional[str] = Field(None, max_length=MAX_PROJECT_LENGTH)
    tags: Optional[List[str]] = None

    @field_validator("title")
    @classmethod
    def _non_blank_title(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else require_text(v)


def task_to_response(task: Task) -> Dict[str, Any]:
    """Client (camelCase) shape of a task returned by the task endpoints."""
    return {
        "id": str(task.id),
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "status": task.status,
        "dueDate": _iso(task.due_date),
        "project": task.project,
        "tags": list(task.tags),
        "createdAt": _iso(task.created_at),
        "updatedAt": _iso(task.updated_at),
        "extractedFrom": task.extracted_from,
    }


def _iso(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat().replace("+00:00", "Z") if value is not None else None
