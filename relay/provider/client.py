"""Calls to the identity provider's token and userinfo endpoints."""

import json
import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from relay.errors import UnknownError, UpstreamError, redact
from relay.provider.types import (
    ClientCredentials,
    ProviderEndpoints,
    ProviderTokenResponse,
    UserInfo,
)
from relay.validation import validate_with

logger = logging.getLogger(__name__)


def build_authorization_url(
    endpoints: ProviderEndpoints,
    credentials: ClientCredentials,
    *,
    scope: str,
    state: str,
) -> str:
    """Build the provider authorization URL for a web-server (code) client."""
    params = {
        "response_type": "code",
        "state": state,
        "redirect_uri": credentials.redirect_uri,
        "client_id": credentials.client_id,
        "scope": scope,
    }
    return f"{endpoints.authorize_url}?{urlencode(params)}"


class ProviderClient:
    """Performs the code exchange and userinfo lookup, one round trip each."""

    def __init__(
        self,
        endpoints: ProviderEndpoints,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoints = endpoints
        self._transport = transport

    @property
    def endpoints(self) -> ProviderEndpoints:
        return self._endpoints

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    async def exchange_code_for_token(
        self, code: str, credentials: ClientCredentials
    ) -> ProviderTokenResponse:
        """POST the authorization code to the token endpoint."""
        url = self._endpoints.token_url
        payload = {
            "code": code,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "redirect_uri": credentials.redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            async with self._client() as client:
                resp = await client.post(
                    url, data=payload, headers={"Accept": "application/json"}
                )
            if not resp.is_success:
                raise UpstreamError(resp.status_code, resp.text)
            body: Any = resp.json()
        except UpstreamError:
            raise
        except (httpx.HTTPError, ValueError) as e:
            sent = {**payload, "client_secret": redact(credentials.client_secret)}
            raise UnknownError(
                f"Request to {url} failed. Payload sent was: {json.dumps(sent)}"
            ) from e

        token = validate_with(ProviderTokenResponse, body, "token response")
        logger.debug("Exchanged authorization code, granted scope %r", token.scope)
        return token

    async def fetch_user_info(self, access_token: str) -> UserInfo:
        """GET the userinfo endpoint; absent profile fields are defaulted."""
        url = self._endpoints.userinfo_url
        try:
            async with self._client() as client:
                resp = await client.get(url, params={"access_token": access_token})
            if not resp.is_success:
                raise UpstreamError(resp.status_code, resp.text)
            body: Any = resp.json()
        except UpstreamError:
            raise
        except (httpx.HTTPError, ValueError) as e:
            raise UnknownError(
                f"Failed to get user info from {url} using access token "
                f"{redact(access_token)}"
            ) from e

        return validate_with(UserInfo, body, "user info")
