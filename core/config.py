"""
core/config.py -- Summit Auth settings (pydantic-settings, env vars and .env).

Three groups of settings, each handed to one collaborator by the API lifespan:

  signing key + token TTL   -> TokenService   (SECRET_KEY, TOKEN_TTL_SECONDS)
  bcrypt cost               -> PasswordHasher (BCRYPT_ROUNDS)
  Graph API options         -> FacebookVerifier, only when
                               FACEBOOK_VERIFY_TOKENS=true

Nothing under auth/ imports this module, so tests build TokenService and
PasswordHasher with their own values and never touch the environment.
get_settings() is cached; call get_settings.cache_clear() after changing
the environment in a test.

The signing key is the one setting without a usable default. Every issued
token is only as strong as the key, and a key that changes on restart logs
every user out. Settings.validate_secret_key holds the policy.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("summit.config")

_SEVEN_DAYS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """Runtime settings for the auth service. Field `foo_bar` reads FOO_BAR."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = "sqlite:///summit_auth.db"
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    token_ttl_seconds: int = Field(default=_SEVEN_DAYS, gt=0)
    # bcrypt cost factor. 10 is tens of milliseconds on commodity hardware;
    # tests drop it to 4 (the bcrypt minimum).
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # ------------------------------------------------------------------
    # Facebook login
    # ------------------------------------------------------------------

    # Off by default: the client-supplied access token / user id / email
    # tuple is trusted as already verified by the Facebook SDK.
    facebook_verify_tokens: bool = False
    facebook_graph_url: str = "https://graph.facebook.com/v19.0"
    # Optional. When set, Graph API calls carry appsecret_proof so a token
    # minted for a different Facebook app is rejected.
    facebook_app_secret: str = ""
    facebook_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """A missing SECRET_KEY is generated under DEBUG and fatal otherwise.

        Any key, supplied or not, must be at least 32 characters: HS256 tokens
        are forged as easily as the key is guessed.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("DEBUG is set and SECRET_KEY is empty; issued session tokens die with this process")
            else:
                raise ValueError(
                    "SECRET_KEY is required to sign session tokens. "
                    "Set it in the environment or .env, or set DEBUG=true for a throwaway key."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long to sign HS256 tokens.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first call."""
    return Settings()
