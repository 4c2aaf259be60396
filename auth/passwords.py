"""
auth/passwords.py -- bcrypt password hashing (direct usage, no passlib wrapper).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt only reads the first 72 bytes of its input, and bcrypt 5 raises on
anything longer. Signup refuses such passwords (auth/validation.py), so a
stored hash always covers the whole password. Login does not validate length,
so verify() treats an over-long plaintext as a mismatch after running the
same bcrypt work on its first 72 bytes.

Cost factor is injected (Settings.bcrypt_rounds). bcrypt releases the GIL
while hashing, so running route handlers in the thread pool keeps one slow
hash from stalling other requests.

Timing equalization: dummy_verify() runs a full bcrypt check against a hash
computed once at construction. Login calls it when the account does not exist
or has no local password, so response time does not reveal which case held.
"""

from __future__ import annotations

import bcrypt

from auth.errors import PasswordHashError

MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """One-way salted password hashing with constant-time verification."""

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        self._dummy_hash = self.hash("summit_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        Raises:
            ValueError: the password is longer than 72 UTF-8 bytes.
        """
        secret = plain.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password is longer than {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        A stored hash bcrypt cannot parse is a data problem, not a wrong
        password, so it raises PasswordHashError instead of returning False.
        """
        secret = plain.encode("utf-8")
        try:
            matched = bcrypt.checkpw(secret[:MAX_PASSWORD_BYTES], hashed.encode("utf-8"))
        except ValueError as exc:
            raise PasswordHashError() from exc
        return matched and len(secret) <= MAX_PASSWORD_BYTES

    def dummy_verify(self, plain: str) -> None:
        """Burn the same bcrypt work as a real check. The result is irrelevant."""
        bcrypt.checkpw(plain.encode("utf-8")[:MAX_PASSWORD_BYTES], self._dummy_hash.encode("utf-8"))
