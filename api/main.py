"""
api/main.py -- FastAPI application entry point for Summit Auth.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware   -- adds CORS headers for the configured client origins
  2. log_requests     -- one log line per request with status and latency

Lifespan builds the authentication collaborators once at startup from
Settings and stores the assembled SessionAuthenticator on app.state; routes
reach it through auth.dependencies.get_authenticator(). Shutdown disposes the
database engine.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import HealthResponse, MessageResponse
from api.routes.v1.sessions import MALFORMED_BODY_ERRORS
from api.routes.v1.sessions import router as sessions_router
from auth.errors import AuthError
from auth.facebook import FacebookVerifier
from auth.passwords import PasswordHasher
from auth.resolver import AccountResolver
from auth.service import SessionAuthenticator
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("summit.api")


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def build_authenticator(settings: Settings, store: UserStore) -> SessionAuthenticator:
    """Wire the authentication core from settings.

    The signing secret and bcrypt cost are passed in here explicitly; no
    auth module reads configuration on its own.
    """
    verifier = None
    if settings.facebook_verify_tokens:
        verifier = FacebookVerifier(
            graph_url=settings.facebook_graph_url,
            app_secret=settings.facebook_app_secret,
            timeout=settings.facebook_timeout_seconds,
        )
    return SessionAuthenticator(
        store=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        tokens=TokenService(settings.secret_key, ttl_seconds=settings.token_ttl_seconds),
        resolver=AccountResolver(store, verifier=verifier),
    )


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the user store and authenticator on startup; dispose the engine on shutdown."""
    settings = get_settings()
    logger.info("Summit Auth starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.authenticator = build_authenticator(settings, app.state.user_store)
    logger.info(
        "Auth initialized (token_ttl=%ds, bcrypt_rounds=%d, facebook_verify=%s)",
        settings.token_ttl_seconds,
        settings.bcrypt_rounds,
        settings.facebook_verify_tokens,
    )

    yield

    app.state.user_store.close()
    logger.info("Summit Auth shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Summit Auth API",
    description="Local signup/login, stateless session tokens, and Facebook login.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Bodies are never logged -- they carry passwords and tokens.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(sessions_router, prefix="/api/v1", tags=["Sessions"])
# Unversioned aliases for existing clients of /sign-up, /login, /refresh, /auth/facebook.
app.include_router(sessions_router, include_in_schema=False)


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {"message": ...} envelope so clients can parse
# errors uniformly.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render any AuthError with its own status code and message."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(message=exc.message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render a body FastAPI could not parse.

    Login answers 400 and Facebook login 401, as for any other malformed
    request to them. Everything else gets 422.
    """
    error_cls = MALFORMED_BODY_ERRORS.get(request.scope.get("endpoint"))
    if error_cls is not None:
        return await auth_error_handler(request, error_cls())
    return JSONResponse(
        status_code=422,
        content=MessageResponse(message="Invalid request body").model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors (store down, bugs).

    The raw exception is logged, never sent to the client, and never turned
    into an authentication failure.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=MessageResponse(message="Internal server error").model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
