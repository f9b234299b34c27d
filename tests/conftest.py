"""Shared test fixtures for the OAuth session relay."""

from collections.abc import AsyncIterator, Callable
from pathlib import Path

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from relay.core.app import create_app
from relay.core.settings import OAuthSettings
from relay.crypto.keys import generate_rsa_keypair
from relay.crypto.types import KeyPair
from relay.provider.client import ProviderClient
from relay.tokens import entity

CLIENT_ID = "relay-client.apps.example.com"
CLIENT_SECRET = "s3cr3t-client-secret-value"
REDIRECT_URI = "http://test/api/auth/finish-oauth"
AUTHORIZE_URL = "https://provider.test/authorize"
TOKEN_URL = "https://provider.test/token"
USERINFO_URL = "https://provider.test/userinfo"
SCOPE = "openid email profile"
GRANTED_SCOPE = (
    "openid https://provider.test/auth/userinfo.email "
    "https://provider.test/auth/userinfo.profile"
)
USER_EMAIL = "ada@example.com"


class FakeProvider:
    """Answers token and userinfo requests through an httpx MockTransport."""

    def __init__(self) -> None:
        self.token_status = 200
        self.token_body: object = {
            "access_token": "ya29.access-token",
            "expires_in": 3599,
            "token_type": "Bearer",
            "scope": GRANTED_SCOPE,
        }
        self.userinfo_status = 200
        self.userinfo_body: object = {
            "id": "100205282399326678960",
            "email": USER_EMAIL,
            "verified_email": True,
            "name": "Ada Lovelace",
            "given_name": "Ada",
            "family_name": "Lovelace",
            "picture": "https://provider.test/ada.png",
        }
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if request.url.path == "/token":
            return _respond(self.token_status, self.token_body)
        if request.url.path == "/userinfo":
            return _respond(self.userinfo_status, self.userinfo_body)
        return httpx.Response(404, text="not found")


def _respond(status: int, body: object) -> httpx.Response:
    if isinstance(body, str):
        return httpx.Response(status, text=body)
    return httpx.Response(status, json=body)


@pytest.fixture(scope="session")
def key_pair() -> KeyPair:
    """One RSA keypair for the whole run; generation is slow."""
    return generate_rsa_keypair()


@pytest.fixture
def key_dir(tmp_path: Path, key_pair: KeyPair) -> Path:
    """A directory holding the session keypair as public.pem / private.pem."""
    directory = tmp_path / "keys"
    directory.mkdir()
    (directory / "public.pem").write_text(key_pair.public_key)
    (directory / "private.pem").write_text(key_pair.private_key)
    return directory


@pytest.fixture
def settings(key_dir: Path) -> OAuthSettings:
    return OAuthSettings(
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        redirect_uri=REDIRECT_URI,
        scope=SCOPE,
        state_ttl=60,
        session_ttl=3600,
        key_dir=str(key_dir),
        authorize_url=AUTHORIZE_URL,
        token_url=TOKEN_URL,
        userinfo_url=USERINFO_URL,
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_client(
    settings: OAuthSettings, fake_provider: FakeProvider
) -> ProviderClient:
    return ProviderClient(settings.endpoints(), transport=fake_provider.transport)


@pytest.fixture
async def client(
    settings: OAuthSettings, provider_client: ProviderClient
) -> AsyncIterator[AsyncClient]:
    """Create an httpx test client for the app with the fake provider."""
    app = create_app(settings, provider_client)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def advance_clock(monkeypatch: pytest.MonkeyPatch) -> Callable[[float], None]:
    """Move the token clock forward by a number of seconds."""

    def _advance(seconds: float) -> None:
        offset = int(seconds * 1000)
        current = entity.now_ms
        monkeypatch.setattr(entity, "now_ms", lambda: current() + offset)

    return _advance
