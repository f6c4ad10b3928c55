"""Snapshot wire schema and validation.

A snapshot is the complete client-side state (tasks, conversations with their
messages, preferences) exchanged wholesale with the server. Keys are camelCase
on the wire, identifiers are strings and timestamps are ISO-8601.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from incantations.errors import ValidationError
from incantations.models.constants import MAX_EXTRACTED_FROM_LENGTH, MAX_PROJECT_LENGTH, MAX_TITLE_LENGTH
from incantations.models.task import TaskPriority, TaskStatus
from incantations.models.conversation import MessageRole


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to the naive-UTC form stored in the database."""
    value = as_utc(value)
    return value.replace(tzinfo=None) if value is not None else None


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


def require_text(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be empty")
    return value


class SnapshotMessage(_WireModel):
    """Message as exchanged on the wire."""

    id: str
    type: MessageRole
    content: str
    timestamp: datetime
    is_voice_input: bool = Field(False, alias="isVoiceInput")
    extracted_tasks: List[str] = Field(default_factory=list, alias="extractedTasks")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("is_voice_input", mode="before")
    @classmethod
    def _null_voice_flag(cls, v):
        return False if v is None else v

    @field_validator("extracted_tasks", "metadata", mode="before")
    @classmethod
    def _null_collections(cls, v, info):
        if v is None:
            return [] if info.field_name == "extracted_tasks" else {}
        return v


class SnapshotConversation(_WireModel):
    """Conversation with its ordered messages as exchanged on the wire."""

    id: str
    title: str = Field(..., max_length=MAX_TITLE_LENGTH)
    summary: Optional[str] = None
    messages: List[SnapshotMessage]
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @field_validator("title")
    @classmethod
    def _non_empty_title(cls, v: str) -> str:
        return require_text(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc_timestamps(cls, v: datetime) -> datetime:
        return as_utc(v)


class SnapshotTask(_WireModel):
    """Task as exchanged on the wire."""

    id: str
    title: str = Field(..., max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[datetime] = Field(None, alias="dueDate")
    project: Optional[str] = Field(None, max_length=MAX_PROJECT_LENGTH)
    tags: List[str]
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    extracted_from: Optional[str] = Field(None, max_length=MAX_EXTRACTED_FROM_LENGTH, alias="extractedFrom")

    @field_validator("title")
    @classmethod
    def _non_empty_title(cls, v: str) -> str:
        return require_text(v)

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def _utc_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class SyncSnapshot(_WireModel):
    """Full client state: tasks, conversations (with messages), preferences."""

    tasks: List[SnapshotTask]
    conversations: List[SnapshotConversation]
    preferences: Dict[str, Any]

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict in the client's camelCase shape."""
        return self.model_dump(mode="json", by_alias=True)


def _violated_fields(exc: PydanticValidationError) -> List[str]:
    fields: List[str] = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err.get("loc", ())) or "body"
        if path not in fields:
            fields.append(path)
    return fields


def validate_snapshot(payload: Any) -> SyncSnapshot:
    """Validate an upload payload into a typed snapshot.

    Every violation is collected; any violation rejects the whole payload.

    Raises:
        ValidationError: with the dotted paths of all violated fields
    """
    try:
        return SyncSnapshot.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError("Invalid sync payload", fields=_violated_fields(e)) from e


def validate_preferences(payload: Any, field: str = "preferences") -> Dict[str, Any]:
    """Preferences must be a JSON object; values are opaque."""
    if not isinstance(payload, dict):
        raise ValidationError("Preferences must be a JSON object", fields=[field])
    return payload
