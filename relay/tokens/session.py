"""Session token issued after a successful login and stored in a cookie."""

from typing import Any

from pydantic import BaseModel, ConfigDict

from relay.provider.types import UserInfo
from relay.tokens import entity
from relay.validation import validate_with


class SessionToken(BaseModel):
    """Verified identity claims with an epoch-ms expiration."""

    model_config = ConfigDict(frozen=True)

    email: str
    name: str
    picture: str
    expiration: entity.Expiration

    @classmethod
    def create(
        cls, email: str, name: str, picture: str, ttl_seconds: float
    ) -> "SessionToken":
        return cls(
            email=email,
            name=name,
            picture=picture,
            expiration=entity.expiration_after(ttl_seconds),
        )

    @classmethod
    def from_user_info(cls, user: UserInfo, ttl_seconds: float) -> "SessionToken":
        return cls.create(user.email, user.name, user.picture, ttl_seconds)

    @classmethod
    def verify(cls, token: str, public_key: str) -> "SessionToken":
        """Recover a token produced by :meth:`sign`.

        Raises ``ValidationError`` for foreign or altered tokens and
        ``AuthExpiredError`` once the signed lifetime has passed.
        """
        return entity.verify(token, public_key, cls.validate_claims)

    @classmethod
    def validate_claims(cls, data: object) -> "SessionToken":
        return validate_with(cls, data, "session token")

    def sign(self, private_key: str) -> str:
        """Sign with the lifetime remaining now, not the original TTL."""
        return entity.sign(self, private_key)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump()

    def has_expired(self) -> bool:
        return entity.has_expired(self)

    def expires_in(self) -> int:
        return entity.expires_in(self)
