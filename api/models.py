"""
API request and response models for Summit Auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

JSON field names follow the client contract (camelCase: authToken,
providerAccessToken, providerUserId).
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from auth.models import FederatedAssertion

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class FederatedLoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/facebook.

    Every field is optional at this layer: an incomplete assertion is a
    Facebook login error (401), which the Account Resolver raises, not a
    schema error (422). The Facebook SDK's own names (accessToken, userID)
    are accepted alongside the canonical ones so clients can forward the
    SDK response unchanged. Numeric user ids are coerced to strings.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    provider_access_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("providerAccessToken", "accessToken")
    )
    email: Optional[str] = None
    provider_user_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("providerUserId", "userID"))

    def to_assertion(self) -> FederatedAssertion:
        return FederatedAssertion(
            provider_access_token=self.provider_access_token,
            email=self.email,
            provider_user_id=self.provider_user_id,
        )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. The internal id and password hash never appear."""

    model_config = ConfigDict(frozen=True)

    email: str
    uuid: str


class AuthTokenResponse(BaseModel):
    """Response body for login, refresh and Facebook login."""

    model_config = ConfigDict(frozen=True)

    authToken: str


class MessageResponse(BaseModel):
    """Error envelope: {"message": "..."} on every 4xx/5xx."""

    model_config = ConfigDict(frozen=True)

    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
