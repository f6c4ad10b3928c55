"""Map a verified external identity to a local user, creating it on first sight."""

import logging
from sqlalchemy.orm import Session

from incantations.errors import IdentityRejected
from incantations.database.user_repository import UserRepository
from incantations.models.user import ExternalIdentity, User

logger = logging.getLogger(__name__)


class AccountResolver:
    """Find-or-create users keyed by email.

    Never deletes users and never merges two users with different emails.
    """

    def __init__(self, db: Session):
        self.users = UserRepository(db)

    def resolve(self, identity: ExternalIdentity) -> User:
        """Return the local user for an identity assertion.

        Raises:
            IdentityRejected: if the assertion carries no email
        """
        email = (identity.email or "").strip()
        if not email:
            raise IdentityRejected("Identity assertion has no verified email")

        # users.name is required; fall back to the mailbox name.
        name = identity.name or email.split("@", 1)[0]

        user = self.users.record_login(
            email=email,
            name=name,
            avatar_url=identity.avatar_url,
            google_id=identity.subject,
        )
        if user is not None:
            logger.info(f"User login: {user.id}")
            return user

        user = self.users.create(
            email=email,
            name=name,
            avatar_url=identity.avatar_url,
            google_id=identity.subject,
        )
        logger.info(f"New user created: {user.id}")
        return user
