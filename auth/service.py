"""
auth/service.py -- Session Authenticator: signup, login, refresh, Facebook login.

The authenticator is pure orchestration over its collaborators (store,
hasher, token service, account resolver). It holds no per-request state and
no locks; every call is independent, so one instance is shared by all
requests.

Account enumeration:
  login() fails with the same Unauthorized for an unknown email, a
  federated-only account (no password hash) and a wrong password. The first
  two still run a full bcrypt check against a dummy hash so the three cases
  also take the same time.

Error policy:
  Only AuthError subclasses are raised on purpose. Store or hashing failures
  propagate untouched and become a 500 at the API boundary -- an outage is
  never reported as bad credentials.
"""

from __future__ import annotations

import logging

from auth.errors import Conflict, TokenError, Unauthorized
from auth.models import Credentials, FederatedAssertion, NewUser, TokenClaims
from auth.passwords import PasswordHasher
from auth.resolver import AccountResolver
from auth.store import EMAIL_TAKEN, CredentialStore
from auth.tokens import TokenService

logger = logging.getLogger("summit.auth.service")


class SessionAuthenticator:
    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        resolver: AccountResolver,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.resolver = resolver

    def signup(self, credentials: Credentials) -> dict[str, str]:
        """Create a local account and return its public view {email, uuid}.

        The find_by_email() pre-check only avoids a wasted bcrypt round for the
        common duplicate case; the store's UNIQUE constraint is what actually
        guarantees one account per email under concurrent signups.
        """
        if self.store.find_by_email(credentials.email) is not None:
            raise Conflict(EMAIL_TAKEN)

        password_hash = self.hasher.hash(credentials.password)
        user = self.store.create(NewUser(email=credentials.email, password_hash=password_hash))
        logger.info("Created local user %s", user.uuid)
        return user.public()

    def login(self, credentials: Credentials) -> str:
        """Check an email/password pair and return a session token."""
        user = self.store.find_by_email(credentials.email)
        if user is None or user.password_hash is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.dummy_verify(credentials.password)
            raise Unauthorized()
        if not self.hasher.verify(credentials.password, user.password_hash):
            raise Unauthorized()
        return self.tokens.issue(user.public())

    def refresh(self, token: str | None) -> str:
        """Exchange a valid bearer token for a fresh one."""
        if not token:
            raise Unauthorized()
        try:
            return self.tokens.refresh(token)
        except TokenError as exc:
            logger.debug("Refresh rejected: %s", type(exc).__name__)
            raise Unauthorized() from exc

    def federated_login(self, assertion: FederatedAssertion) -> str:
        """Resolve a Facebook assertion to a user and return a session token."""
        user = self.resolver.resolve(assertion)
        return self.tokens.issue(user.public())

    def current_user(self, token: str | None) -> TokenClaims:
        """Verify a bearer token for a protected route."""
        if not token:
            raise Unauthorized()
        try:
            return self.tokens.verify(token)
        except TokenError as exc:
            raise Unauthorized() from exc
