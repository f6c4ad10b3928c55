"""Error taxonomy for the sync and auth core.

The HTTP layer maps each class to a status code; components only raise them.
"""

from typing import List, Optional


class SyncError(Exception):
    """Base class for errors raised by incantations components."""


class ValidationError(SyncError):
    """Inbound payload failed its schema contract.

    `fields` lists every violated location as a dotted path (e.g. "tasks.0.priority").
    """

    def __init__(self, message: str = "Validation error", fields: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields or [])


class Unauthenticated(SyncError):
    """Missing, malformed, tampered or expired auth token."""


class IdentityRejected(SyncError):
    """External identity assertion lacks required claims or failed verification."""


class TransactionError(SyncError):
    """Storage fault during a replace-all upload; prior state was restored."""


class NotFound(SyncError):
    """Resource does not exist for the authenticated owner."""
