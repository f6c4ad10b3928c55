"""Conversation and message data models for incantations."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Who authored a message."""
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single message inside a conversation."""

    id: int = Field(..., description="Server-assigned message identifier")
    conversation_id: int = Field(..., description="Owning conversation ID")
    role: MessageRole = Field(..., description="Message author role")
    content: str = Field(..., description="Message text")
    is_voice_input: bool = Field(False, description="Whether the message was dictated")
    extracted_task_ids: List[str] = Field(
        default_factory=list, description="Task identifiers extracted from this message"
    )
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form metadata")
    created_at: datetime = Field(..., description="Message timestamp (defines conversation order)")

    model_config = ConfigDict(use_enum_values=True)


class Conversation(BaseModel):
    """A conversation with its ordered messages."""

    id: int = Field(..., description="Server-assigned conversation identifier")
    user_id: int = Field(..., description="User ID who owns this conversation")
    title: str = Field(..., description="Conversation title")
    summary: Optional[str] = Field(None, description="Conversation summary")
    messages: List[Message] = Field(default_factory=list, description="Messages, oldest first")
    created_at: datetime = Field(..., description="Conversation creation timestamp")
    updated_at: datetime = Field(..., description="Conversation last update timestamp")
