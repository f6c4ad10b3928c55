"""Replace-all snapshot upload.

The uploaded snapshot becomes the complete server-side truth for the user's
tasks, conversations and messages; anything not in the upload is discarded.
Preferences are replaced wholesale in the same transaction.

Re-applying the same snapshot yields the same end state. There is no version
check, so an older snapshot sent after a newer one silently replaces it.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from incantations.database.database import transaction_scope
from incantations.database.models import ConversationDB, MessageDB, TaskDB, enum_to_value
from incantations.database.preferences_repository import PreferencesRepository
from incantations.errors import TransactionError
from incantations.models.snapshot import SnapshotConversation, SnapshotTask, SyncSnapshot, to_storage_datetime

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    """Row counts written by one upload."""
    tasks_written: int = 0
    conversations_written: int = 0
    messages_written: int = 0


class SyncUploadTransaction:
    """Atomically replace a user's synced state with a validated snapshot."""

    def __init__(self, db: Session):
        self.db = db
        self.preferences = PreferencesRepository(db)

    def apply(self, user_id: int, snapshot: SyncSnapshot) -> UploadResult:
        """Replace all tasks/conversations/messages for `user_id`, then upsert preferences.

        Either every change commits or none does.

        Raises:
            TransactionError: on any storage fault (prior state is restored)
        """
        result = UploadResult()
        try:
            with transaction_scope(self.db):
                self._clear(user_id)
                task_ids = self._insert_tasks(user_id, snapshot.tasks)
                result.tasks_written = len(task_ids)
                for conversation in snapshot.conversations:
                    result.messages_written += self._insert_conversation(user_id, conversation, task_ids)
                    result.conversations_written += 1
                self.preferences.stage_upsert(user_id, snapshot.preferences)
        except SQLAlchemyError as e:
            logger.error(f"Upload failed for user {user_id}, rolled back: {type(e).__name__}: {str(e)}")
            raise TransactionError("Upload failed") from e

        logger.info(
            f"Data uploaded for user {user_id}: {result.tasks_written} tasks, "
            f"{result.conversations_written} conversations, {result.messages_written} messages"
        )
        return result

    def _clear(self, user_id: int) -> None:
        # Messages first: they reference conversations.
        conversation_ids = select(ConversationDB.id).where(ConversationDB.user_id == user_id)
        self.db.query(MessageDB).filter(
            MessageDB.conversation_id.in_(conversation_ids)
        ).delete(synchronize_session="fetch")
        self.db.query(ConversationDB).filter(
            ConversationDB.user_id == user_id
        ).delete(synchronize_session="fetch")
        self.db.query(TaskDB).filter(
            TaskDB.user_id == user_id
        ).delete(synchronize_session="fetch")

    def _insert_tasks(self, user_id: int, tasks: List[SnapshotTask]) -> Dict[str, str]:
        """Insert tasks as fresh rows; return client id -> new server id."""
        rows = []
        for task in tasks:
            row = TaskDB(
                user_id=user_id,
                title=task.title,
                description=task.description,
                priority=enum_to_value(task.priority),
                status=enum_to_value(task.status),
                due_date=to_storage_datetime(task.due_date),
                project=task.project,
                tags=list(task.tags),
                extracted_from=task.extracted_from,
                created_at=to_storage_datetime(task.created_at),
                updated_at=to_storage_datetime(task.updated_at),
            )
            self.db.add(row)
            rows.append((task.id, row))
        self.db.flush()
        return {client_id: str(row.id) for client_id, row in rows}

    def _insert_conversation(
        self,
        user_id: int,
        conversation: SnapshotConversation,
        task_ids: Dict[str, str],
    ) -> int:
        row = ConversationDB(
            user_id=user_id,
            title=conversation.title,
            summary=conversation.summary,
            created_at=to_storage_datetime(conversation.created_at),
            updated_at=to_storage_datetime(conversation.updated_at),
        )
        self.db.add(row)
        # Need the new conversation id before its messages can reference it.
        self.db.flush()

        for message in conversation.messages:
            self.db.add(
                MessageDB(
                    conversation_id=row.id,
                    type=enum_to_value(message.type),
                    content=message.content,
                    is_voice_input=bool(message.is_voice_input),
                    extracted_task_ids=[task_ids.get(ref, ref) for ref in (message.extracted_tasks or [])],
                    message_metadata=dict(message.metadata or {}),
                    created_at=to_storage_datetime(message.timestamp),
                )
            )
        self.db.flush()
        return len(conversation.messages)
