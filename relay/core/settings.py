"""Application settings loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.crypto.keys import resolve_key_paths
from relay.crypto.types import KeyPaths
from relay.provider.types import ClientCredentials, ProviderEndpoints

STATE_TTL_DEFAULT = 300
SESSION_TTL_DEFAULT = 86_400
GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v1/userinfo"


class OAuthSettings(BaseSettings):
    """OAuth client, token lifetime and key file settings."""

    model_config = SettingsConfigDict(env_prefix="OAUTH_")

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:3000/api/auth/finish-oauth"
    scope: str = "openid email profile"
    state_ttl: int = Field(default=STATE_TTL_DEFAULT, gt=10, lt=600)
    session_ttl: int = Field(default=SESSION_TTL_DEFAULT, gt=0)
    private_key_path: str = "private.pem"
    public_key_path: str = "public.pem"
    key_dir: str = "."
    environment: str = "development"
    cookie_name: str = "jwt"
    authorize_url: str = GOOGLE_AUTHORIZE_URL
    token_url: str = GOOGLE_TOKEN_URL
    userinfo_url: str = GOOGLE_USERINFO_URL
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        """Secure cookies are only set in production."""
        return self.environment.lower() == "production"

    def credentials(self) -> ClientCredentials:
        return ClientCredentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
        )

    def endpoints(self) -> ProviderEndpoints:
        return ProviderEndpoints(
            authorize_url=self.authorize_url,
            token_url=self.token_url,
            userinfo_url=self.userinfo_url,
        )

    def key_paths(self) -> KeyPaths:
        """Resolve the configured key files against ``key_dir``."""
        return resolve_key_paths(
            self.public_key_path, self.private_key_path, base_dir=self.key_dir
        )
