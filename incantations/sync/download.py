"""Serialize a user's server-side state back into the client snapshot shape.

Stored rows are trusted: the wire models are built with `model_construct`, so
rows written before a validation rule existed still download.
"""

import logging

from sqlalchemy.orm import Session, selectinload

from incantations.database.models import ConversationDB, TaskDB
from incantations.database.preferences_repository import PreferencesRepository
from incantations.models.conversation import Conversation, Message
from incantations.models.snapshot import (
    SnapshotConversation,
    SnapshotMessage,
    SnapshotTask,
    SyncSnapshot,
    as_utc,
)
from incantations.models.task import Task

logger = logging.getLogger(__name__)


def task_to_snapshot(task: Task) -> SnapshotTask:
    return SnapshotTask.model_construct(
        id=str(task.id),
        title=task.title,
        description=task.description,
        priority=task.priority,
        status=task.status,
        due_date=as_utc(task.due_date),
        project=task.project,
        tags=list(task.tags),
        created_at=as_utc(task.created_at),
        updated_at=as_utc(task.updated_at),
        extracted_from=task.extracted_from,
    )


def message_to_snapshot(message: Message) -> SnapshotMessage:
    return SnapshotMessage.model_construct(
        id=str(message.id),
        type=message.role,
        content=message.content,
        timestamp=as_utc(message.created_at),
        is_voice_input=message.is_voice_input,
        extracted_tasks=list(message.extracted_task_ids),
        metadata=dict(message.metadata),
    )


def conversation_to_snapshot(conversation: Conversation) -> SnapshotConversation:
    return SnapshotConversation.model_construct(
        id=str(conversation.id),
        title=conversation.title,
        summary=conversation.summary,
        messages=[message_to_snapshot(m) for m in conversation.messages],
        created_at=as_utc(conversation.created_at),
        updated_at=as_utc(conversation.updated_at),
    )


class SyncDownloadSerializer:
    """Read-only view of a user's full synced state.

    Every call reads current storage; nothing is cached.
    """

    def __init__(self, db: Session):
        self.db = db
        self.preferences = PreferencesRepository(db)

    def serialize(self, user_id: int) -> SyncSnapshot:
        """Build the snapshot for `user_id`.

        Tasks and conversations come back in the order they were written;
        messages are ordered by creation time ascending.
        """
        tasks_db = (
            self.db.query(TaskDB)
            .filter(TaskDB.user_id == user_id)
            .order_by(TaskDB.id)
            .all()
        )
        conversations_db = (
            self.db.query(ConversationDB)
            .options(selectinload(ConversationDB.messages))
            .filter(ConversationDB.user_id == user_id)
            .order_by(ConversationDB.id)
            .all()
        )
        preferences = self.preferences.get(user_id) or {}

        snapshot = SyncSnapshot.model_construct(
            tasks=[task_to_snapshot(t.to_pydantic()) for t in tasks_db],
            conversations=[conversation_to_snapshot(c.to_pydantic()) for c in conversations_db],
            preferences=preferences,
        )
        logger.info(
            f"Data downloaded for user {user_id}: {len(snapshot.tasks)} tasks, "
            f"{len(snapshot.conversations)} conversations"
        )
        return snapshot
