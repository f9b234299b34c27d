"""RSA keypair generation and the process-wide key store."""

import logging
import os
import re
import threading
from pathlib import Path
from typing import Literal

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from relay.crypto.types import KeyPair, KeyPaths
from relay.errors import KeyFormatError

logger = logging.getLogger(__name__)

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
DEFAULT_KEY_SUFFIX = ".pem"
PRIVATE_KEY_MODE = 0o600

KeyKind = Literal["PUBLIC", "PRIVATE"]

_BEGIN_RE = re.compile(
    r"^-----BEGIN (?P<algo>RSA |EC )?(?P<kind>PUBLIC|PRIVATE) KEY-----$", re.MULTILINE
)
_END_RE = re.compile(
    r"^-----END (?P<algo>RSA |EC )?(?P<kind>PUBLIC|PRIVATE) KEY-----$", re.MULTILINE
)


def generate_rsa_keypair() -> KeyPair:
    """Generate a new RSA-2048 keypair as SPKI / PKCS#8 PEM strings."""
    private_key = rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT,
        key_size=RSA_KEY_SIZE,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return KeyPair(public_key=public_pem, private_key=private_pem)


def _resolve_one(raw: str, base_dir: Path) -> Path:
    path = Path(raw)
    if not path.suffix:
        path = path.with_suffix(DEFAULT_KEY_SUFFIX)
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def resolve_key_paths(
    public_key_path: str, private_key_path: str, base_dir: str | None = None
) -> KeyPaths:
    """Resolve relative key paths against ``base_dir`` and default to ``.pem``."""
    base = Path(base_dir) if base_dir else Path.cwd()
    return KeyPaths(
        public_key_path=_resolve_one(public_key_path, base),
        private_key_path=_resolve_one(private_key_path, base),
    )


def read_key_file(path: Path, kind: KeyKind) -> str:
    """Read a PEM key file, checking its BEGIN/END markers match ``kind``."""
    if not path.is_file():
        raise KeyFormatError(f"Key path is not a file: {path}")
    try:
        contents = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise KeyFormatError(f"Could not read key file: {path}") from e

    begin = _BEGIN_RE.search(contents)
    end = _END_RE.search(contents, begin.end() if begin else 0)
    if begin is None or end is None:
        raise KeyFormatError(f"Could not get valid PEM key from: {path}")
    if begin.group("algo", "kind") != end.group("algo", "kind"):
        raise KeyFormatError(f"Mismatched BEGIN/END markers in key file: {path}")
    if begin.group("kind") != kind:
        raise KeyFormatError(
            f"Expected a {kind.lower()} key in {path}, "
            f"found a {begin.group('kind').lower()} key"
        )
    return contents


def _write_private_key(path: Path, pem: str) -> None:
    """Create the file owner-only before any key bytes reach it."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PRIVATE_KEY_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        os.fchmod(f.fileno(), PRIVATE_KEY_MODE)
        f.write(pem)


def _write_keypair(paths: KeyPaths, pair: KeyPair) -> None:
    try:
        for path in (paths.public_key_path, paths.private_key_path):
            path.parent.mkdir(parents=True, exist_ok=True)
        paths.public_key_path.write_text(pair.public_key, encoding="utf-8")
        _write_private_key(paths.private_key_path, pair.private_key)
    except OSError as e:
        raise KeyFormatError(
            "Failed to write newly generated key pair to "
            f"{paths.public_key_path} and {paths.private_key_path}"
        ) from e


def load_or_create_keypair(paths: KeyPaths) -> KeyPair:
    """Read both key files, or generate and persist a pair when neither exists."""
    public_exists = paths.public_key_path.exists()
    private_exists = paths.private_key_path.exists()

    if not public_exists and not private_exists:
        pair = generate_rsa_keypair()
        _write_keypair(paths, pair)
        logger.info(
            "Generated RSA key pair and saved to %s and %s",
            paths.public_key_path,
            paths.private_key_path,
        )
        return pair

    if not public_exists:
        raise KeyFormatError(
            f"Private key {paths.private_key_path} exists but its public key "
            f"{paths.public_key_path} is missing"
        )
    if not private_exists:
        raise KeyFormatError(
            f"Public key {paths.public_key_path} exists but its private key "
            f"{paths.private_key_path} is missing"
        )

    return KeyPair(
        public_key=read_key_file(paths.public_key_path, "PUBLIC"),
        private_key=read_key_file(paths.private_key_path, "PRIVATE"),
    )


class KeyStore:
    """Resolves the keypair once per process and serves it read-only."""

    def __init__(self, paths: KeyPaths) -> None:
        self._paths = paths
        self._lock = threading.Lock()
        self._pair: KeyPair | None = None

    @property
    def paths(self) -> KeyPaths:
        return self._paths

    def get_or_init(self) -> KeyPair:
        """Return the cached pair, loading or generating it on first use."""
        pair = self._pair
        if pair is not None:
            return pair
        with self._lock:
            if self._pair is None:
                self._pair = load_or_create_keypair(self._paths)
            return self._pair
