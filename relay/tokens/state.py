"""CSRF-protecting state carried through the provider round trip.

The state records where the user came from and when the login attempt
expires. It is signed into the ``state`` parameter of the authorization
request and read back once when the provider redirects to the finish step.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict

from relay.tokens import entity
from relay.validation import validate_with


class State(BaseModel):
    """Referer to return to after login, and an epoch-ms expiration."""

    model_config = ConfigDict(frozen=True)

    referer: str
    expiration: entity.Expiration

    @classmethod
    def create(cls, referer: str, ttl_seconds: float) -> "State":
        """New state expiring ``|ttl_seconds|`` from now."""
        return cls(referer=referer, expiration=entity.expiration_after(ttl_seconds))

    @classmethod
    def decrypt(cls, token: str, public_key: str) -> "State":
        """Recover a state from :meth:`encrypt` output. Does not check expiry."""
        return entity.decrypt(token, public_key, cls.validate_claims)

    @classmethod
    def validate_claims(cls, data: object) -> "State":
        return validate_with(cls, data, "State")

    def encrypt(self, private_key: str) -> str:
        return entity.encrypt(self, private_key)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump()

    def has_expired(self) -> bool:
        return entity.has_expired(self)

    def expires_in(self) -> int:
        return entity.expires_in(self)
