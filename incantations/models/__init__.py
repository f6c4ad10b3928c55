"""Data models for incantations."""

from incantations.models.task import Task, TaskPriority, TaskStatus
from incantations.models.conversation import Conversation, Message, MessageRole
from incantations.models.user import User, ExternalIdentity
from incantations.models.snapshot import SyncSnapshot, validate_snapshot, validate_preferences

__all__ = [
    "Task",
    "TaskPriority",
    "TaskStatus",
    "Conversation",
    "Message",
    "MessageRole",
    "User",
    "ExternalIdentity",
    "SyncSnapshot",
    "validate_snapshot",
    "validate_preferences",
]
