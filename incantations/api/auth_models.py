"""Request/response models for authentication and profile endpoints."""

from typing import Optional
from pydantic import BaseModel, Field


class GoogleLoginRequest(BaseModel):
    """Request model for Google Identity Services login."""
    credential: str = Field(..., min_length=1, description="Google ID token from the sign-in button")
    clientId: Optional[str] = Field(None, description="OAuth client ID the credential was issued for")


class AuthResponse(BaseModel):
    """Response model for login and refresh."""
    success: bool = True
    user: dict
    token: str


class ProfileUpdateRequest(BaseModel):
    """Request model for renaming the current user."""
    name: str = Field(..., min_length=1, max_length=255)
