"""
auth/tokens.py -- Session token issue, verification and refresh.

Security design decisions:
  JWT: python-jose with HS256. The signing secret is injected at construction
       (from Settings.secret_key in production, a fixed test key in tests);
       nothing here reads configuration at import time.

  Claim shape: every token carries exactly
       {"user": {"email", "uuid"}, "sub": email, "iat", "exp"}.
       The user object is rebuilt from scratch on every issue, so fields that
       happen to ride along on a caller's dict (a stray facebookId, a password
       hash) can never end up inside a token.

  Verification: signature and algorithm are checked before any claim, so a
       token with a forged signature is TokenInvalid even when it is also past
       its exp. Only a correctly signed token can be TokenExpired. Expiry is
       judged by the injected clock, the same one issue() and refresh() use.

  Refresh: the new token's exp is max(now + ttl, original exp) -- a refresh
       never shortens a session.

  No revocation: tokens are stateless. A token stays valid until it expires
       or the secret changes.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping

from jose import JWTError, jwt

from auth.errors import TokenExpired, TokenInvalid
from auth.models import TokenClaims

logger = logging.getLogger("summit.auth.tokens")

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60

# exp is checked against the service clock after decoding, not by jose.
_DECODE_OPTIONS = {"require_exp": True, "require_iat": True, "require_sub": True, "verify_exp": False}


class TokenService:
    """Signs, verifies and reissues session tokens with a single shared secret."""

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        algorithm: str = ALGORITHM,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("TokenService needs a non-empty signing secret")
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm
        self._clock = clock

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue(self, claims: Mapping[str, Any], ttl: int | None = None) -> str:
        """Sign a token for claims["email"] / claims["uuid"].

        Args:
            claims: Anything with "email" and "uuid" keys. Other keys are ignored.
            ttl:    Lifetime in seconds. Defaults to the service TTL (7 days).
        """
        now = int(self._clock())
        lifetime = ttl if ttl is not None else self.ttl_seconds
        return self._encode(claims["email"], claims["uuid"], issued_at=now, expires_at=now + lifetime)

    def _encode(self, email: str, uuid: str, *, issued_at: int, expires_at: int) -> str:
        payload = {
            "user": {"email": email, "uuid": uuid},
            "sub": email,
            "iat": issued_at,
            "exp": expires_at,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, token: str) -> TokenClaims:
        """Verify a token and return its canonical claims.

        Raises:
            TokenExpired: signature valid, exp in the past.
            TokenInvalid: anything else -- bad signature, wrong algorithm,
                          malformed token, missing or mistyped claims.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm], options=_DECODE_OPTIONS)
        except JWTError as exc:
            raise TokenInvalid() from exc

        expires_at = payload["exp"]
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise TokenInvalid()
        if expires_at < self._clock():
            raise TokenExpired()

        user = payload.get("user")
        if not isinstance(user, dict):
            raise TokenInvalid()
        email, uuid = user.get("email"), user.get("uuid")
        if not isinstance(email, str) or not isinstance(uuid, str) or not email or not uuid:
            raise TokenInvalid()

        return TokenClaims(
            email=email,
            uuid=uuid,
            subject=payload["sub"],
            issued_at=int(payload["iat"]),
            expires_at=int(expires_at),
        )

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, token: str) -> str:
        """Verify token and issue a replacement with a later (or equal) expiry.

        The replacement's user object is exactly {email, uuid} from the
        original, whatever else the original carried.
        """
        claims = self.verify(token)
        now = int(self._clock())
        expires_at = max(now + self.ttl_seconds, claims.expires_at)
        return self._encode(claims.email, claims.uuid, issued_at=now, expires_at=expires_at)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @staticmethod
    def decode_unverified(token: str) -> dict:
        """Return the raw payload WITHOUT checking the signature.

        For tooling and tests only. Never use the result to authenticate.
        """
        return jwt.get_unverified_claims(token)
