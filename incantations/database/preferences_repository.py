"""Repository for per-user preference documents.

There is exactly one row per user; writes replace the whole document.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from incantations.database.models import UserPreferencesDB

logger = logging.getLogger(__name__)


class PreferencesRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Stored preferences, or None if the user has no row yet."""
        row = self.db.query(UserPreferencesDB).filter(UserPreferencesDB.user_id == user_id).first()
        if row is None:
            return None
        return dict(row.preferences or {})

    def stage_upsert(self, user_id: int, preferences: Dict[str, Any]) -> None:
        """Insert or replace the user's row without committing.

        Used inside a caller-owned transaction (snapshot upload).
        """
        now = datetime.utcnow()
        row = self.db.query(UserPreferencesDB).filter(UserPreferencesDB.user_id == user_id).first()
        if row is None:
            self.db.add(
                UserPreferencesDB(
                    user_id=user_id,
                    preferences=dict(preferences),
                    created_at=now,
                    updated_at=now,
                )
            )
        else:
            # Assign a new dict so the JSON column is flagged dirty.
            row.preferences = dict(preferences)
            row.updated_at = now
        self.db.flush()

    def upsert(self, user_id: int, preferences: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or replace the user's preferences and commit."""
        try:
            self.stage_upsert(user_id, preferences)
            self.db.commit()
            logger.debug(f"Saved {len(preferences)} preference keys for user {user_id}")
            return dict(preferences)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save preferences for user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def get_or_create(self, user_id: int) -> Dict[str, Any]:
        """Stored preferences, creating an empty document on first read."""
        existing = self.get(user_id)
        if existing is not None:
            return existing
        return self.upsert(user_id, {})
