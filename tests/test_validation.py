"""Unit tests for auth/validation.py -- signup field rules and login request shape.

Covers:
- rule order: missing -> type -> whitespace -> length, first failure wins
- verbatim client-facing messages
- password bounds 8..65 inclusive, and at most 72 UTF-8 bytes
- parse_login() splits malformed requests (400) from credential checks
"""

import pytest

from auth.errors import BadRequest, ValidationError
from auth.models import Credentials
from auth.validation import Err, Ok, parse_login, validate_signup


def _error(payload) -> ValidationError:
    result = validate_signup(payload)
    assert isinstance(result, Err), f"expected Err, got {result!r}"
    return result.error


class TestValidateSignup:
    def test_valid_payload_returns_credentials(self) -> None:
        result = validate_signup({"email": "jane@test.com", "password": "fakePassword1"})
        assert isinstance(result, Ok)
        assert result.unwrap() == Credentials(email="jane@test.com", password="fakePassword1")

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "amanda@test.com"},
            {"password": "Password123"},
            {"email": None, "password": "Password123"},
            {},
            None,
        ],
    )
    def test_missing_field(self, payload) -> None:
        assert _error(payload).message == "Missing field"

    def test_non_string_field(self) -> None:
        err = _error({"email": "amanda@test.com", "password": 12345678})
        assert err.message == "Incorrect field type: expected string"
        assert err.location == "password"

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "  amanda@test.com", "password": "Password123"},
            {"email": "amanda@test.com ", "password": "Password123"},
            {"email": "amanda@test.com", "password": " Password123"},
            {"email": "amanda@test.com", "password": "Password123\t"},
        ],
    )
    def test_whitespace(self, payload) -> None:
        assert _error(payload).message == "Cannot start or end with whitespace"

    def test_short_password(self) -> None:
        err = _error({"email": "amanda@test.com", "password": "1"})
        assert err.message == "Must be at least 8 characters long"
        assert err.status_code == 422

    def test_long_password(self) -> None:
        err = _error({"email": "amanda@test.com", "password": "x" * 66})
        assert err.message == "Must be at most 65 characters long"

    def test_empty_email(self) -> None:
        assert _error({"email": "", "password": "Password123"}).message == "Must be at least 1 characters long"

    def test_multibyte_password_over_bcrypt_limit(self) -> None:
        err = _error({"email": "amanda@test.com", "password": "\u00e9" * 40})
        assert err.message == "Must be at most 72 bytes long"
        assert err.location == "password"

    def test_multibyte_password_within_bcrypt_limit(self) -> None:
        assert isinstance(validate_signup({"email": "a@b.com", "password": "\u00e9" * 36}), Ok)

    @pytest.mark.parametrize("length", [8, 65])
    def test_password_bounds_inclusive(self, length: int) -> None:
        assert isinstance(validate_signup({"email": "a@b.com", "password": "p" * length}), Ok)

    def test_missing_checked_before_whitespace(self) -> None:
        assert _error({"email": " padded@test.com "}).message == "Missing field"

    def test_whitespace_checked_before_length(self) -> None:
        assert _error({"email": "a@b.com", "password": " 1"}).message == "Cannot start or end with whitespace"

    def test_err_unwrap_raises(self) -> None:
        with pytest.raises(ValidationError, match="Missing field"):
            validate_signup({}).unwrap()


class TestParseLogin:
    def test_returns_credentials(self) -> None:
        assert parse_login({"email": "a@b.com", "password": "pw"}) == Credentials("a@b.com", "pw")

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "", "password": ""},
            {"email": "a@b.com", "password": ""},
            {"email": "a@b.com"},
            {"email": 1, "password": "Password123"},
            None,
            ["a", "b"],
            "a@b.com",
        ],
    )
    def test_malformed_is_bad_request(self, payload) -> None:
        with pytest.raises(BadRequest):
            parse_login(payload)

    def test_credentials_repr_hides_password(self) -> None:
        assert "hunter22" not in repr(Credentials("a@b.com", "hunter22"))
