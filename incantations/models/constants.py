"""Constants for incantations.

This module centralizes magic numbers and default values used throughout the application.
"""

from incantations.models.task import TaskPriority


# Default auth token lifetime (the auth cookie uses the same max-age)
TOKEN_EXPIRATION_DAYS = 30

# Cookie carrying the auth token for browser clients
AUTH_COOKIE_NAME = "auth_token"

# Task default for the CRUD endpoints
DEFAULT_TASK_PRIORITY = TaskPriority.MEDIUM

# Column limits (mirrored by the initial migration)
MAX_TITLE_LENGTH = 500
MAX_PROJECT_LENGTH = 255
MAX_EXTRACTED_FROM_LENGTH = 255
