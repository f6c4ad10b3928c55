"""Where auth tokens can arrive on a request.

Sources are tried in order and the first one that yields a token wins, so a
cookie takes precedence over an `Authorization: Bearer` header.
"""

from typing import Optional, Protocol, Sequence

from starlette.requests import Request

from incantations.models.constants import AUTH_COOKIE_NAME


class TokenSource(Protocol):
    def extract(self, request: Request) -> Optional[str]:
        ...


class CookieTokenSource:
    """Token stored in an HTTP-only cookie (browser clients)."""

    def __init__(self, cookie_name: str = AUTH_COOKIE_NAME):
        self.cookie_name = cookie_name

    def extract(self, request: Request) -> Optional[str]:
        return request.cookies.get(self.cookie_name) or None


class BearerHeaderTokenSource:
    """Token in an `Authorization: Bearer <token>` header (programmatic clients)."""

    def extract(self, request: Request) -> Optional[str]:
        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer":
            return None
        return token.strip() or None


DEFAULT_TOKEN_SOURCES: Sequence[TokenSource] = (
    CookieTokenSource(),
    BearerHeaderTokenSource(),
)


def extract_token(request: Request, sources: Sequence[TokenSource] = DEFAULT_TOKEN_SOURCES) -> Optional[str]:
    """Return the token from the first source that has one."""
    for source in sources:
        token = source.extract(request)
        if token:
            return token
    return None
