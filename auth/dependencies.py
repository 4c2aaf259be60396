"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Sessions are bearer tokens only: the client stores the authToken it received
and sends it back as

    Authorization: Bearer <token>

There is no cookie and no server-side session. bearer_token() extracts the
raw token (or None); get_current_user() verifies it and raises Unauthorized,
which the API exception handler turns into a 401.

Layer rule: no imports from core/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import TokenClaims
from auth.service import SessionAuthenticator

_BEARER_PREFIX = "bearer "


def get_authenticator(request: Request) -> SessionAuthenticator:
    """Return the SessionAuthenticator built by the application lifespan."""
    return request.app.state.authenticator


def bearer_token(request: Request) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header, or None.

    The scheme is matched case-insensitively; any other scheme counts as no token.
    """
    header = request.headers.get("Authorization", "")
    if header[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def get_current_user(request: Request) -> TokenClaims:
    """Require a valid bearer token. Raises Unauthorized otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: TokenClaims = Depends(get_current_user)): ...
    """
    return get_authenticator(request).current_user(bearer_token(request))
