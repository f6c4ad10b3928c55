"""Snapshot synchronization for incantations."""

from incantations.sync.upload import SyncUploadTransaction, UploadResult
from incantations.sync.download import SyncDownloadSerializer
from incantations.sync.preferences import PreferenceSync, merge_preferences

__all__ = [
    "SyncUploadTransaction",
    "UploadResult",
    "SyncDownloadSerializer",
    "PreferenceSync",
    "merge_preferences",
]
