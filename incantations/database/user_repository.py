"""Repository for User database operations."""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from incantations.models.user import User
from incantations.database.models import UserDB

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        return user_db.to_pydantic() if user_db else None

    def create(
        self,
        email: str,
        name: str,
        avatar_url: Optional[str] = None,
        google_id: Optional[str] = None,
    ) -> User:
        """Create a user that has just logged in for the first time."""
        now = datetime.utcnow()
        user_db = UserDB(
            email=email,
            name=name,
            avatar_url=avatar_url,
            google_id=google_id,
            created_at=now,
            updated_at=now,
            last_login=now,
        )
        try:
            self.db.add(user_db)
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Created user {user_db.id}: {email}")
            return user_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create user {email}: {type(e).__name__}: {str(e)}")
            raise

    def record_login(
        self,
        email: str,
        name: str,
        avatar_url: Optional[str] = None,
        google_id: Optional[str] = None,
    ) -> Optional[User]:
        """Refresh profile fields from the identity provider and stamp last_login."""
        user_db = self.db.query(UserDB).filter(UserDB.email == email).first()
        if not user_db:
            return None

        now = datetime.utcnow()
        user_db.name = name
        user_db.avatar_url = avatar_url
        user_db.google_id = google_id
        user_db.updated_at = now
        user_db.last_login = now
        try:
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Updated user {user_db.id}: {email}")
            return user_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update user {email}: {type(e).__name__}: {str(e)}")
            raise

    def update_name(self, user_id: int, name: str) -> Optional[User]:
        """Rename a user (profile edit)."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        if not user_db:
            return None

        user_db.name = name
        user_db.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(user_db)
            return user_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to rename user {user_id}: {type(e).__name__}: {str(e)}")
            raise
