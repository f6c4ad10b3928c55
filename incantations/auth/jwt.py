"""JWT token generation and validation for incantations."""

import logging
import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from dotenv import load_dotenv
from pydantic import BaseModel

from incantations.errors import Unauthenticated
from incantations.models.constants import TOKEN_EXPIRATION_DAYS
from incantations.models.user import User

load_dotenv()

logger = logging.getLogger(__name__)

# JWT configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_DAYS = int(os.getenv("JWT_EXPIRATION_DAYS", str(TOKEN_EXPIRATION_DAYS)))

_REQUIRED_CLAIMS = ("userId", "email", "exp")


class TokenClaims(BaseModel):
    """Identity carried by a verified token."""
    user_id: int
    email: str
    name: Optional[str] = None
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenAuthority:
    """Issues and verifies signed, time-limited identity tokens.

    Stateless apart from the signing secret; verification never touches storage.
    """

    def __init__(
        self,
        secret_key: str = JWT_SECRET_KEY,
        algorithm: str = JWT_ALGORITHM,
        lifetime: timedelta = timedelta(days=JWT_EXPIRATION_DAYS),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.lifetime = lifetime
        self.clock = clock

    def issue(self, user: User) -> str:
        """Create a signed token for a user.

        Args:
            user: User the token identifies

        Returns:
            Encoded JWT token string, valid for `lifetime` from now
        """
        issued_at = self.clock()
        payload = {
            "userId": user.id,
            "email": user.email,
            "name": user.name,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.lifetime).timestamp()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Check signature and expiry and return the embedded claims.

        Args:
            token: JWT token string

        Returns:
            TokenClaims for the token's user

        Raises:
            Unauthenticated: malformed token, bad signature, missing claims or expired
        """
        if not token:
            raise Unauthenticated("No token provided")
        try:
            # Expiry is checked below against the injected clock.
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "require": list(_REQUIRED_CLAIMS)},
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected token: {type(e).__name__}")
            raise Unauthenticated("Invalid token") from e

        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
            claims = TokenClaims(
                user_id=payload["userId"],
                email=payload["email"],
                name=payload.get("name"),
                expires_at=expires_at,
            )
        except (TypeError, ValueError) as e:
            raise Unauthenticated("Invalid token") from e

        if self.clock() >= expires_at:
            raise Unauthenticated("Token expired")
        return claims
