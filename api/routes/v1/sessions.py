"""
api/routes/v1/sessions.py -- Signup, login, token refresh and Facebook login.

Routes (mounted under /api/v1, and at the root for clients of the original
unversioned paths):
  POST /api/v1/sign-up         -- create a local account; 201 {email, uuid}
  POST /api/v1/login           -- email/password login; 200 {authToken}
  POST /api/v1/refresh         -- exchange a bearer token for a fresh one
  POST /api/v1/auth/facebook   -- Facebook login (find, link or create)
  GET  /api/v1/me              -- {email, uuid} of the bearer token's user

Handlers are plain `def`, not `async def`: FastAPI runs them in its worker
thread pool, so bcrypt hashing and database I/O never block the event loop
and concurrent requests are not serialized behind one slow hash.

Errors are raised as auth.errors.AuthError subclasses and rendered as
{"message": ...} by the handler in api/main.py.

Security:
  [M5] Cache-Control: no-store on every response that carries a token.
  Signup and login take the raw JSON body rather than a Pydantic model so the
  verbatim validation messages ("Missing field", ...) and the 400-vs-401 split
  are decided by auth/validation.py, not by FastAPI's generic 422. A body
  FastAPI cannot parse at all is mapped per route by MALFORMED_BODY_ERRORS.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AuthTokenResponse, FederatedLoginRequest, UserResponse
from auth.dependencies import bearer_token, get_authenticator, get_current_user
from auth.errors import AuthError, BadRequest, FederatedLoginError
from auth.models import TokenClaims
from auth.service import SessionAuthenticator
from auth.validation import parse_login, validate_signup

# Auth policy:
# - POST /api/v1/sign-up:        public
# - POST /api/v1/login:          public
# - POST /api/v1/refresh:        bearer token in Authorization header
# - POST /api/v1/auth/facebook:  public (assertion in body)
# - GET  /api/v1/me:             bearer token (get_current_user)
router = APIRouter()


def _token_response(token: str) -> JSONResponse:
    resp = JSONResponse(status_code=200, content=AuthTokenResponse(authToken=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/sign-up", response_model=UserResponse, status_code=201)
def sign_up(
    payload: Optional[dict[str, Any]] = Body(default=None),
    authenticator: SessionAuthenticator = Depends(get_authenticator),
) -> UserResponse:
    """Create a local account.

    422 {"message": ...} on a validation failure or an email already in use.
    """
    credentials = validate_signup(payload).unwrap()
    return UserResponse(**authenticator.signup(credentials))


@router.post("/login", response_model=AuthTokenResponse)
def login(
    payload: Optional[dict[str, Any]] = Body(default=None),
    authenticator: SessionAuthenticator = Depends(get_authenticator),
) -> JSONResponse:
    """Authenticate with email and password.

    400 when the body is not a usable credential pair; 401 -- identical for
    unknown email and wrong password -- when the credentials do not match.
    """
    credentials = parse_login(payload)
    return _token_response(authenticator.login(credentials))


@router.post("/refresh", response_model=AuthTokenResponse)
def refresh(
    request: Request,
    authenticator: SessionAuthenticator = Depends(get_authenticator),
) -> JSONResponse:
    """Return a new token for a valid, unexpired bearer token. 401 otherwise."""
    return _token_response(authenticator.refresh(bearer_token(request)))


@router.post("/auth/facebook", response_model=AuthTokenResponse)
def facebook_login(
    body: Optional[FederatedLoginRequest] = Body(default=None),
    authenticator: SessionAuthenticator = Depends(get_authenticator),
) -> JSONResponse:
    """Log in with a Facebook SDK assertion, creating or linking the account.

    401 {"message": "Facebook login error"} when the assertion is incomplete
    or rejected.
    """
    assertion = (body or FederatedLoginRequest()).to_assertion()
    return _token_response(authenticator.federated_login(assertion))


@router.get("/me", response_model=UserResponse)
def me(claims: TokenClaims = Depends(get_current_user)) -> UserResponse:
    """Return identity information for the bearer token's user."""
    return UserResponse(**claims.user())


# FastAPI rejects an unparseable body (invalid JSON, a list where an object is
# expected) before the handler runs. These routes report that with their own
# error instead of the generic 422.
MALFORMED_BODY_ERRORS: dict[Callable[..., Any], type[AuthError]] = {
    login: BadRequest,
    facebook_login: FederatedLoginError,
}
