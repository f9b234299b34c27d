"""RS256 compact-JWS encoding of token payloads.

Tokens are signed with the private key and read back with the public key.
This makes them tamper-evident, not confidential: anyone holding the public
key can read the payload.
"""

import binascii
from typing import Any

import jwt
from jwt.types import Options
from jwt.utils import base64url_decode, base64url_encode

from relay.errors import AuthExpiredError, ValidationError

ALGORITHM = "RS256"
JWS_SEGMENTS = 3


def encode_token(
    payload: dict[str, Any],
    private_key_pem: str,
    expires_at: int | None = None,
) -> str:
    """Sign ``payload``; ``expires_at`` (epoch seconds) becomes the ``exp`` claim."""
    claims = dict(payload)
    if expires_at is not None:
        claims["exp"] = expires_at
    return jwt.encode(claims, private_key_pem, algorithm=ALGORITHM)


def _check_canonical(token: str) -> None:
    """Reject segments whose base64url text is not the canonical encoding.

    Unused trailing bits let two different strings decode to the same bytes;
    a modified token must never verify.
    """
    segments = token.split(".")
    if len(segments) != JWS_SEGMENTS:
        raise ValidationError("Token is not a signed payload")
    for segment in segments:
        try:
            canonical = base64url_encode(base64url_decode(segment)).decode("ascii")
        except (binascii.Error, ValueError) as e:
            raise ValidationError("Token is not valid base64url") from e
        if canonical != segment:
            raise ValidationError("Token is not canonically encoded")


def decode_token(
    token: str, public_key_pem: str, *, require_expiry: bool = False
) -> dict[str, Any]:
    """Verify the signature (and ``exp`` when present) and return the claims."""
    _check_canonical(token)
    options: Options = {}
    if require_expiry:
        options["require"] = ["exp"]
    try:
        return jwt.decode(
            token,
            public_key_pem,
            algorithms=[ALGORITHM],
            options=options,
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthExpiredError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise ValidationError(f"Token could not be verified: {e}") from e
