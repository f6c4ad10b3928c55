"""SQLAlchemy database models for incantations."""

from datetime import datetime
from typing import Union, TypeVar, Type
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship

from incantations.database.database import Base
from incantations.models.task import TaskPriority, TaskStatus
from incantations.models.conversation import MessageRole

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # User profile
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    avatar_url = Column(Text, nullable=True)
    google_id = Column(String(255), nullable=True, unique=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from incantations.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            avatar_url=self.avatar_url,
            google_id=self.google_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            last_login=self.last_login,
        )


class UserPreferencesDB(Base):
    """One preference document per user, always written wholesale."""

    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    preferences = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"
    # Never reuse ids of rows removed by a replace-all upload.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)

    # User association
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Basic fields
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(20), nullable=False, default=TaskPriority.MEDIUM.value)
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value, index=True)
    due_date = Column(DateTime, nullable=True, index=True)
    project = Column(String(255), nullable=True)

    # Tags (stored as JSON array)
    tags = Column(JSON, nullable=False, default=list)

    # Provenance (e.g. "conversation", "email")
    extracted_from = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from incantations.models.task import Task
        return Task(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            description=self.description,
            priority=value_to_enum(self.priority, TaskPriority, TaskPriority.MEDIUM),
            status=value_to_enum(self.status, TaskStatus, TaskStatus.PENDING),
            due_date=self.due_date,
            project=self.project,
            tags=self.tags or [],
            extracted_from=self.extracted_from,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ConversationDB(Base):
    """Database model for Conversation."""

    __tablename__ = "conversations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(500), nullable=False)
    summary = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    messages = relationship(
        "MessageDB",
        order_by=lambda: [MessageDB.created_at, MessageDB.id],
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_pydantic(self):
        """Convert database model (with its messages) to Pydantic model."""
        from incantations.models.conversation import Conversation
        return Conversation(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            summary=self.summary,
            messages=[message_db.to_pydantic() for message_db in self.messages],
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class MessageDB(Base):
    """Database model for Message."""

    __tablename__ = "messages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # "type" on the wire and in the column; "role" in the domain model
    type = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    is_voice_input = Column(Boolean, nullable=False, default=False)

    # Referenced task identifiers (stored as JSON array of strings)
    extracted_task_ids = Column(JSON, nullable=False, default=list)

    # `metadata` is reserved on declarative classes
    message_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from incantations.models.conversation import Message
        return Message(
            id=self.id,
            conversation_id=self.conversation_id,
            role=value_to_enum(self.type, MessageRole, MessageRole.USER),
            content=self.content,
            is_voice_input=bool(self.is_voice_input),
            extracted_task_ids=self.extracted_task_ids or [],
            metadata=self.message_metadata or {},
            created_at=self.created_at,
        )
