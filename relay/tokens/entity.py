"""Shared encrypt/sign/verify and expiration semantics for signed tokens."""

import math
import time
from collections.abc import Callable
from typing import Annotated, Any, Protocol, TypeVar

from pydantic import BeforeValidator

from relay.crypto.signing import decode_token, encode_token

MS_PER_SECOND = 1000
FALLBACK_TTL_MS = 86_400_000

T = TypeVar("T")


class SignedEntity(Protocol):
    """A JSON-serializable record that can travel as a signed token."""

    def to_json(self) -> dict[str, Any]: ...


def coerce_expiration(value: object) -> int:
    """Truncate a finite number, or a numeric string, to whole epoch ms."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if not isinstance(value, (str, int, float)):
        raise ValueError("expiration must be numeric")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError("expiration must be a finite number")
    return int(number)


Expiration = Annotated[int, BeforeValidator(coerce_expiration)]


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def expiration_after(ttl_seconds: float) -> int:
    """Epoch-ms expiration ``|ttl_seconds|`` from now."""
    return now_ms() + int(abs(ttl_seconds * MS_PER_SECOND))


def expiration_of(entity: SignedEntity) -> int:
    """The entity's expiration, or one day from now if it is unset or unparseable."""
    raw = entity.to_json().get("expiration")
    fallback = now_ms() + FALLBACK_TTL_MS
    if not raw:
        return fallback
    try:
        return coerce_expiration(raw)
    except ValueError:
        return fallback


def has_expired(entity: SignedEntity) -> bool:
    return now_ms() > expiration_of(entity)


def expires_in(entity: SignedEntity) -> int:
    """Whole seconds until expiration; negative once expired."""
    return (expiration_of(entity) - now_ms()) // MS_PER_SECOND


def encrypt(entity: SignedEntity, private_key: str) -> str:
    """Serialize and sign the entity with no expiry claim."""
    return encode_token(entity.to_json(), private_key)


def sign(entity: SignedEntity, private_key: str) -> str:
    """Serialize and sign the entity, carrying its remaining lifetime as ``exp``."""
    expires_at = now_ms() // MS_PER_SECOND + expires_in(entity)
    return encode_token(entity.to_json(), private_key, expires_at=expires_at)


def decrypt(token: str, public_key: str, validate: Callable[[object], T]) -> T:
    """Invert :func:`encrypt` and validate the recovered payload."""
    return validate(decode_token(token, public_key))


def verify(token: str, public_key: str, validate: Callable[[object], T]) -> T:
    """Invert :func:`sign`, rejecting tokens without or past their ``exp``."""
    return validate(decode_token(token, public_key, require_expiry=True))

