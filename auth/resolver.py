"""
auth/resolver.py -- Map a Facebook login assertion to a local user.

Resolution order:
  0. Reject an incomplete assertion (no access token, email or user id)
     before touching the store.
  1. Optional provider check (FacebookVerifier) when configured.
  2. Fast path -- a user already linked to this Facebook id is used unchanged.
  3. First Facebook login for an existing local account -- a user with the
     same email and no federated id is linked in place and keeps its uuid.
  4. Otherwise a new federated-only user (no password hash) is created.

Account linking in step 3 is by email alone; the local account is not asked
to re-authenticate. A user with that email who is already linked to a
DIFFERENT Facebook id is refused rather than re-linked.

Races: two first logins for the same identity can both miss in steps 2-3 and
both try to create. The store's UNIQUE constraints let exactly one INSERT
through; the loser gets Conflict and re-runs steps 2-3 once, so both requests
end up with the same user.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from auth.errors import Conflict, FederatedLoginError
from auth.models import FederatedAssertion, NewUser, User
from auth.store import CredentialStore

logger = logging.getLogger("summit.auth.resolver")


class IdentityVerifier(Protocol):
    def verify(self, assertion: FederatedAssertion) -> None: ...


class AccountResolver:
    def __init__(self, store: CredentialStore, verifier: Optional[IdentityVerifier] = None) -> None:
        self.store = store
        self.verifier = verifier

    def resolve(self, assertion: FederatedAssertion) -> User:
        """Return the user for this assertion, linking or creating as needed.

        Raises FederatedLoginError for an incomplete or rejected assertion.
        """
        if not assertion.provider_access_token:
            raise FederatedLoginError()
        if not assertion.email or not assertion.provider_user_id:
            raise FederatedLoginError()

        if self.verifier is not None:
            self.verifier.verify(assertion)

        user = self._find(assertion)
        if user is not None:
            return user

        try:
            user = self.store.create(NewUser(email=assertion.email, federated_id=assertion.provider_user_id))
        except Conflict:
            # Lost a race with a concurrent first login; the winner's row is there now.
            user = self._find(assertion)
            if user is None:
                raise FederatedLoginError() from None
            return user

        logger.info("Created federated user %s", user.uuid)
        return user

    def _find(self, assertion: FederatedAssertion) -> User | None:
        user = self.store.find_by_federated_id(assertion.provider_user_id)
        if user is not None:
            return user

        user = self.store.find_by_email(assertion.email)
        if user is None:
            return None
        if user.federated_id is not None:
            # Email belongs to an account linked to another Facebook identity.
            logger.warning("Refusing Facebook login: email already linked to a different identity (%s)", user.uuid)
            raise FederatedLoginError()

        try:
            linked = self.store.link_federated_id(user, assertion.provider_user_id)
        except Conflict:
            raise FederatedLoginError() from None
        logger.info("Linked Facebook identity to existing user %s", linked.uuid)
        return linked
