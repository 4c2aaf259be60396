"""
auth/facebook.py -- Optional server-side check of a Facebook login assertion.

The client runs the Facebook JS/mobile SDK and posts the resulting
(accessToken, email, userID) tuple. By default that tuple is trusted as-is.
When Settings.facebook_verify_tokens is on, the Account Resolver calls
FacebookVerifier.verify() before any lookup, and this module asks the Graph
API who the access token actually belongs to:

  GET {graph_url}/me?fields=id,email   (Authorization: Bearer <accessToken>)

Checks:
  - the returned id must equal the asserted userID;
  - if the Graph API returns an email, it must equal the asserted email.

appsecret_proof: when an app secret is configured every call carries
HMAC-SHA256(app_secret, access_token). With "Require App Secret" enabled in
the Facebook app settings, this rejects tokens minted for any other app.

Error mapping:
  4xx from Graph (expired/invalid token)  -> FederatedLoginError (401)
  network failure, timeout, 5xx           -> IdentityProviderError (502)
A provider outage is never reported to the client as a bad login.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

import requests
from authlib.integrations.requests_client import OAuth2Session

from auth.errors import FederatedLoginError, IdentityProviderError
from auth.models import FederatedAssertion

logger = logging.getLogger("summit.auth.facebook")


class FacebookVerifier:
    """Confirms a FederatedAssertion against the Facebook Graph API."""

    def __init__(self, graph_url: str, app_secret: str = "", timeout: float = 5.0) -> None:
        self.graph_url = graph_url.rstrip("/")
        self._app_secret = app_secret
        self.timeout = timeout

    def verify(self, assertion: FederatedAssertion) -> None:
        """Raise unless the access token belongs to the asserted user."""
        profile = self._fetch_profile(assertion.provider_access_token)

        if str(profile.get("id", "")) != assertion.provider_user_id:
            logger.warning("Facebook token does not belong to asserted user id %s", assertion.provider_user_id)
            raise FederatedLoginError()

        graph_email = profile.get("email")
        if graph_email and graph_email != assertion.email:
            logger.warning("Facebook email mismatch for user id %s", assertion.provider_user_id)
            raise FederatedLoginError()

    def _fetch_profile(self, access_token: str) -> dict:
        params = {"fields": "id,email"}
        if self._app_secret:
            params["appsecret_proof"] = _appsecret_proof(self._app_secret, access_token)

        token = {"access_token": access_token, "token_type": "Bearer"}
        try:
            with OAuth2Session(token=token) as session:
                resp = session.get(f"{self.graph_url}/me", params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Facebook Graph API unreachable: %s", exc)
            raise IdentityProviderError() from exc

        if resp.status_code >= 500:
            logger.error("Facebook Graph API returned %d", resp.status_code)
            raise IdentityProviderError()
        if resp.status_code >= 400:
            raise FederatedLoginError()
        try:
            return resp.json()
        except ValueError as exc:
            raise IdentityProviderError() from exc


def _appsecret_proof(app_secret: str, access_token: str) -> str:
    """Return HMAC-SHA256(app_secret, access_token) as hex, as Graph API expects."""
    return hmac.new(app_secret.encode(), access_token.encode(), hashlib.sha256).hexdigest()
