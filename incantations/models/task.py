"""Task data model for incantations."""

from datetime import datetime
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class TaskPriority(str, Enum):
    """Task priority enumeration."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    """Task status enumeration."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Task(BaseModel):
    """Canonical Task model (server-side view)."""

    id: int = Field(..., description="Server-assigned task identifier")
    user_id: int = Field(..., description="User ID who owns this task")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    priority: TaskPriority = Field(TaskPriority.MEDIUM, description="Task priority")
    status: TaskStatus = Field(TaskStatus.PENDING, description="Task status")
    due_date: Optional[datetime] = Field(None, description="Task due timestamp")
    project: Optional[str] = Field(None, description="Project label")
    tags: List[str] = Field(default_factory=list, description="Tag strings")
    extracted_from: Optional[str] = Field(
        None, description="Origin system that created the task (e.g. 'conversation', 'email')"
    )
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")

    model_config = ConfigDict(use_enum_values=True)
