"""Preference merge between a client's local copy and the stored (cloud) copy.

Precedence: on a shared key the cloud value wins; keys unique to either side
survive. The merge is shallow, so a nested object under a shared key is taken
whole from the cloud. This differs on purpose from snapshot upload, where the
uploaded state replaces the server's.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from incantations.database.preferences_repository import PreferencesRepository

logger = logging.getLogger(__name__)


def merge_preferences(
    local: Optional[Dict[str, Any]],
    cloud: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    """Shallow key-level merge where cloud overrides local."""
    return {**(local or {}), **(cloud or {})}


class PreferenceSync:
    """Reads, replaces and merges a user's stored preferences."""

    def __init__(self, db: Session):
        self.preferences = PreferencesRepository(db)

    def get(self, user_id: int) -> Dict[str, Any]:
        """Stored preferences (an empty document is created on first read)."""
        return self.preferences.get_or_create(user_id)

    def replace(self, user_id: int, preferences: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite the stored preferences wholesale."""
        return self.preferences.upsert(user_id, preferences)

    def sync(self, user_id: int, local: Dict[str, Any]) -> Dict[str, Any]:
        """Merge local into cloud, persist the result and return it."""
        cloud = self.preferences.get(user_id) or {}
        merged = merge_preferences(local, cloud)
        self.preferences.upsert(user_id, merged)
        logger.info(
            f"Preferences synced for user {user_id}: {len(local)} local, {len(cloud)} cloud, {len(merged)} merged"
        )
        return merged
