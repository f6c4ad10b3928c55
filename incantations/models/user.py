"""User data model for incantations."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class User(BaseModel):
    """User model for incantations."""

    id: int = Field(..., description="Server-assigned user identifier")
    email: str = Field(..., description="User email address")
    name: str = Field(..., description="User display name")
    avatar_url: Optional[str] = Field(None, description="Avatar image URL")
    google_id: Optional[str] = Field(None, description="External (Google) subject identifier")
    created_at: datetime = Field(..., description="User creation timestamp")
    updated_at: datetime = Field(..., description="User last update timestamp")
    last_login: Optional[datetime] = Field(None, description="Last successful login")

    def to_public_dict(self) -> dict:
        """Profile shape returned to clients."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatarUrl": self.avatar_url,
        }


class ExternalIdentity(BaseModel):
    """Verified identity assertion from an external provider (Google)."""

    subject: str = Field(..., description="Provider subject identifier")
    email: Optional[str] = Field(None, description="Verified email address")
    name: Optional[str] = Field(None, description="Display name")
    avatar_url: Optional[str] = Field(None, description="Avatar image URL")
