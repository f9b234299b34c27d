"""Type definitions for key material."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class KeyPair(BaseModel):
    """PEM contents of an RSA keypair used to sign and verify tokens."""

    model_config = ConfigDict(frozen=True)

    public_key: str
    private_key: str


class KeyPaths(BaseModel):
    """Absolute locations of the two key files."""

    model_config = ConfigDict(frozen=True)

    public_key_path: Path
    private_key_path: Path
