"""
auth/validation.py -- Field validation for the signup and login payloads.

Signup rules run in a fixed order and the first failure wins, so a client
always gets exactly one message:

  1. every required field is present         -> "Missing field"
  2. every field is a string                 -> "Incorrect field type: expected string"
  3. no leading/trailing whitespace          -> "Cannot start or end with whitespace"
  4. within size limits                      -> "Must be at least N characters long"
                                                "Must be at most N characters long"
  5. password fits bcrypt's input            -> "Must be at most 72 bytes long"

These messages are part of the public contract -- clients match on them
verbatim. Email uniqueness ("Email already taken") is NOT checked here; it
needs the store and lives in the Session Authenticator.

validate_signup() returns a tagged result (Ok / Err) instead of raising, so
the same rules can be reused by non-HTTP callers (scripts, imports) that want
to collect errors rather than unwind. The route layer calls .unwrap().

Login validation is looser on purpose: it only decides whether the request
is a usable credential pair at all (400). Whether the credentials are right
is the authenticator's job (401).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from auth.errors import BadRequest, ValidationError
from auth.models import Credentials
from auth.passwords import MAX_PASSWORD_BYTES

REQUIRED_FIELDS = ("email", "password")
TRIMMED_FIELDS = ("email", "password")

SIZED_FIELDS: dict[str, dict[str, int]] = {
    "email": {"min": 1},
    "password": {"min": 8, "max": 65},
}


@dataclass(frozen=True)
class Ok:
    value: Credentials

    def unwrap(self) -> Credentials:
        return self.value


@dataclass(frozen=True)
class Err:
    error: ValidationError

    def unwrap(self) -> Credentials:
        raise self.error


SignupResult = Union[Ok, Err]


def validate_signup(payload: Mapping[str, Any] | None) -> SignupResult:
    """Validate a signup body and return Ok(Credentials) or Err(ValidationError)."""
    payload = payload or {}

    missing = next((f for f in REQUIRED_FIELDS if f not in payload or payload[f] is None), None)
    if missing:
        return Err(ValidationError("Missing field", location=missing))

    non_string = next((f for f in REQUIRED_FIELDS if not isinstance(payload[f], str)), None)
    if non_string:
        return Err(ValidationError("Incorrect field type: expected string", location=non_string))

    untrimmed = next((f for f in TRIMMED_FIELDS if payload[f].strip() != payload[f]), None)
    if untrimmed:
        return Err(ValidationError("Cannot start or end with whitespace", location=untrimmed))

    for field, bounds in SIZED_FIELDS.items():
        size = len(payload[field])
        if "min" in bounds and size < bounds["min"]:
            return Err(ValidationError(f"Must be at least {bounds['min']} characters long", location=field))
        if "max" in bounds and size > bounds["max"]:
            return Err(ValidationError(f"Must be at most {bounds['max']} characters long", location=field))

    # Multi-byte characters can push a 65-character password past bcrypt's limit.
    if len(payload["password"].encode("utf-8")) > MAX_PASSWORD_BYTES:
        return Err(ValidationError(f"Must be at most {MAX_PASSWORD_BYTES} bytes long", location="password"))

    return Ok(Credentials(email=payload["email"], password=payload["password"]))


def parse_login(payload: Mapping[str, Any] | None) -> Credentials:
    """Return Credentials for a login body, or raise BadRequest.

    Missing, non-string, or empty fields are a malformed request (400), not a
    wrong-credential case (401).
    """
    if not isinstance(payload, Mapping):
        raise BadRequest()
    email = payload.get("email")
    password = payload.get("password")
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        raise BadRequest()
    return Credentials(email=email, password=password)
