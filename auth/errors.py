"""
auth/errors.py -- Exception taxonomy for the authentication core.

Every error the core raises on purpose is an AuthError subclass carrying the
HTTP status it maps to and the message shown to the client. api/main.py
renders all of them through a single exception handler as {"message": ...},
so route handlers never build error responses by hand.

Anything that is NOT an AuthError (database unavailable, programming errors)
is deliberately left alone here -- it reaches the catch-all 500 handler and is
never reported to the client as an authentication failure.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from typing import Optional


class AuthError(Exception):
    """Base class for errors mapped to a client-visible status and message."""

    status_code: int = 400
    error_code: str = "auth_error"
    default_message: str = "Authentication error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """A request field is missing, mistyped, padded with whitespace or the wrong size."""

    status_code = 422
    error_code = "validation_error"
    default_message = "Invalid request"

    def __init__(self, message: Optional[str] = None, *, location: Optional[str] = None) -> None:
        super().__init__(message)
        self.location = location


class Conflict(AuthError):
    """A uniqueness constraint (email or federated id) would be violated."""

    status_code = 422
    error_code = "conflict"
    default_message = "Email already taken"

    def __init__(self, message: Optional[str] = None, *, field: str = "email") -> None:
        super().__init__(message)
        self.field = field


class Unauthorized(AuthError):
    """Bad local credentials or a missing/invalid/expired bearer token.

    The message is intentionally the same for every cause so callers cannot
    tell an unknown email from a wrong password.
    """

    status_code = 401
    error_code = "unauthorized"
    default_message = "Unauthorized"


class BadRequest(AuthError):
    """The login payload is not a usable credential pair (e.g. empty strings)."""

    status_code = 400
    error_code = "bad_request"
    default_message = "Bad Request"


class FederatedLoginError(AuthError):
    """The federated login assertion is missing, incomplete, or rejected."""

    status_code = 401
    error_code = "federated_login_error"
    default_message = "Facebook login error"


class IdentityProviderError(AuthError):
    """The identity provider could not be reached or answered with a server error."""

    status_code = 502
    error_code = "identity_provider_unavailable"
    default_message = "Identity provider unavailable"


class PasswordHashError(AuthError):
    """A stored password hash could not be processed. Internal, never a login failure."""

    status_code = 500
    error_code = "internal_error"
    default_message = "Internal server error"


class TokenError(AuthError):
    """Base for token verification failures. Surfaced to clients as Unauthorized."""

    status_code = 401
    error_code = "unauthorized"
    default_message = "Unauthorized"


class TokenInvalid(TokenError):
    """Signature mismatch, malformed structure, or non-canonical claims."""


class TokenExpired(TokenError):
    """Signature is valid but the token is past its exp claim."""
