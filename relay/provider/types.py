"""Payload and configuration types for the identity provider."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_validator

UNKNOWN_EMAIL = "unknown@unknown.com"
UNKNOWN_NAME = "Unknown Person"


class ProviderEndpoints(BaseModel):
    """Where the provider's authorization, token and userinfo endpoints live."""

    model_config = ConfigDict(frozen=True)

    authorize_url: str
    token_url: str
    userinfo_url: str


class ClientCredentials(BaseModel):
    """This application's registration with the provider."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str
    redirect_uri: str


class ProviderTokenResponse(BaseModel):
    """Token endpoint response; ``scope`` is rewritten after reconciliation."""

    access_token: str
    expires_in: int
    token_type: Literal["Bearer"]
    scope: str
    refresh_token: str | None = None


class UserInfo(BaseModel):
    """Userinfo endpoint response. Every field has a default so a sparse
    profile never fails validation."""

    email: str = UNKNOWN_EMAIL
    name: str = UNKNOWN_NAME
    picture: str = ""
    id: str | None = None
    verified_email: bool | None = None
    given_name: str | None = None
    family_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        """Treat explicit nulls like absent fields."""
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data
