"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own the
domain shape; the store, resolver and authenticator do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A persisted identity record.

    id is the internal primary key and never leaves the server. uuid is the
    external identifier carried in session tokens; it is assigned once by the
    store at creation and never changes.

    password_hash is None for accounts created purely via Facebook login.
    federated_id is None until the user logs in via Facebook for the first
    time, at which point link_federated_id() fills it in.
    """

    email: str
    uuid: str
    id: int | None = None
    password_hash: str | None = None  # None = federated-only user
    federated_id: str | None = None  # Facebook user id
    created_at: str | None = None

    def public(self) -> dict[str, str]:
        """Return the only fields a client ever sees: {email, uuid}."""
        return {"email": self.email, "uuid": self.uuid}


@dataclass
class NewUser:
    """Fields supplied by the caller when creating a user.

    The store assigns id, uuid and created_at. At least one of password_hash
    and federated_id must be set -- a user always has a way to log in.
    """

    email: str
    password_hash: str | None = None
    federated_id: str | None = None


@dataclass(frozen=True)
class Credentials:
    """An email/password pair that has passed field validation."""

    email: str
    password: str

    def __repr__(self) -> str:
        # Keep plaintext out of logs and tracebacks.
        return f"Credentials(email={self.email!r}, password='***')"


@dataclass(frozen=True)
class FederatedAssertion:
    """What the client claims Facebook told it: access token, email, user id."""

    provider_access_token: str | None
    email: str | None
    provider_user_id: str | None

    def __repr__(self) -> str:
        return (
            f"FederatedAssertion(email={self.email!r}, provider_user_id={self.provider_user_id!r}, "
            "provider_access_token='***')"
        )


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token.

    Only the canonical {email, uuid} user shape survives verification;
    anything else found in the token's user object is discarded.
    """

    email: str
    uuid: str
    subject: str
    issued_at: int
    expires_at: int

    def user(self) -> dict[str, str]:
        return {"email": self.email, "uuid": self.uuid}
