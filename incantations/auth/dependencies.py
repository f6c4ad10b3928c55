"""FastAPI dependencies for authentication."""

from fastapi import Depends, Request

from incantations.auth.jwt import TokenAuthority, TokenClaims
from incantations.auth.token_sources import extract_token
from incantations.errors import Unauthenticated

_token_authority = TokenAuthority()


def get_token_authority() -> TokenAuthority:
    """Token authority used by the API (overridable in tests)."""
    return _token_authority


def get_current_claims(
    request: Request,
    authority: TokenAuthority = Depends(get_token_authority),
) -> TokenClaims:
    """Verify the request's token and return its claims.

    The cookie is consulted before the bearer header.

    Raises:
        Unauthenticated: If no token is present or it fails verification
    """
    token = extract_token(request)
    if not token:
        raise Unauthenticated("No token provided")
    return authority.verify(token)
