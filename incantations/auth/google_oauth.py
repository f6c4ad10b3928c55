"""Google ID-token verification for user login."""

import logging
import os
from typing import Optional
from google.oauth2 import id_token
from google.auth.transport import requests
from dotenv import load_dotenv

from incantations.errors import IdentityRejected
from incantations.models.user import ExternalIdentity

load_dotenv()

logger = logging.getLogger(__name__)

# Google OAuth configuration
GOOGLE_OAUTH_CLIENT_ID = os.getenv("GOOGLE_OAUTH_CLIENT_ID")

_GOOGLE_ISSUERS = ('accounts.google.com', 'https://accounts.google.com')


def verify_google_token(id_token_str: str, audience: Optional[str] = None) -> ExternalIdentity:
    """Verify a Google ID token and extract the identity it asserts.

    Args:
        id_token_str: Google ID token ("credential") from Google Identity Services
        audience: Expected OAuth client ID (defaults to GOOGLE_OAUTH_CLIENT_ID)

    Returns:
        ExternalIdentity with subject, email, name and avatar

    Raises:
        IdentityRejected: if the token is invalid or not issued by Google
    """
    try:
        idinfo = id_token.verify_oauth2_token(
            id_token_str,
            requests.Request(),
            audience or GOOGLE_OAUTH_CLIENT_ID,
        )
    except ValueError as e:
        logger.warning(f"Google ID token rejected: {str(e)}")
        raise IdentityRejected("Invalid Google token") from e

    if idinfo.get('iss') not in _GOOGLE_ISSUERS:
        raise IdentityRejected("Invalid Google token issuer")

    return ExternalIdentity(
        subject=idinfo['sub'],
        email=idinfo.get('email'),
        name=idinfo.get('name'),
        avatar_url=idinfo.get('picture'),
    )
