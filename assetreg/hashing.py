# assetreg/hashing.py
"""
Content identifiers and principals.

An asset identifier is a 32-byte content hash. Internally it is always
carried as 64 lower-case hex characters without a ``0x`` prefix, so the
same content maps to the same key however the caller spelled it.
"""

import hashlib
import re
from pathlib import Path
from typing import Optional, Union

from .errors import InvalidAssetId, RegistryError

ASSET_ID_BYTES = 32
DEFAULT_ALGORITHM = "sha3_256"

# Algorithms producing a 32-byte digest
SUPPORTED_ALGORITHMS = ("sha3_256", "sha256", "blake2b")

_HEX_ID = re.compile(r"^[0-9a-f]{64}$")
_ZERO_ADDRESS = re.compile(r"^0x0+$")


def normalize_asset_id(value: Union[str, bytes, bytearray]) -> str:
    """
    Normalize an asset identifier.

    Args:
        value: 32 raw bytes, or 64 hex characters with optional 0x prefix

    Returns:
        Lower-case hex digest without prefix

    Raises:
        InvalidAssetId: if the value is not a 32-byte identifier
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ASSET_ID_BYTES:
            raise InvalidAssetId(value)
        return bytes(value).hex()

    if not isinstance(value, str):
        raise InvalidAssetId(value)

    hex_value = value.strip().lower()
    if hex_value.startswith("0x"):
        hex_value = hex_value[2:]
    if not _HEX_ID.match(hex_value):
        raise InvalidAssetId(value)
    return hex_value


def _new_hasher(algorithm: str):
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ValueError(
            f"Unsupported hash algorithm: {algorithm} "
            f"(expected one of {', '.join(SUPPORTED_ALGORITHMS)})"
        )
    if algorithm == "blake2b":
        return hashlib.blake2b(digest_size=ASSET_ID_BYTES)
    return hashlib.new(algorithm)


def hash_bytes(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Compute the asset identifier of in-memory content."""
    hasher = _new_hasher(algorithm)
    hasher.update(data)
    return hasher.hexdigest()


def hash_file(path: Path | str, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    Compute the asset identifier of a file.

    Uses SHA-3-256 by default.

    Args:
        path: File to hash
        algorithm: Hash algorithm (sha3_256, sha256, blake2b)

    Returns:
        Full hex digest (no truncation)

    Raises:
        RegistryError: if the file cannot be read (missing, a directory, ...)
    """
    hasher = _new_hasher(algorithm)
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                hasher.update(chunk)
    except OSError as e:
        raise RegistryError(f"Cannot read asset file {path}: {e}") from e
    return hasher.hexdigest()


def is_null_principal(principal: Optional[str]) -> bool:
    """
    Check whether a principal is the null principal.

    None, empty or whitespace-only strings, and the all-zero address
    (``0x0000...``) are all treated as null. So is anything that is not a
    string, since principals are opaque strings.
    """
    if principal is None or not isinstance(principal, str):
        return True
    stripped = principal.strip()
    if not stripped:
        return True
    return bool(_ZERO_ADDRESS.match(stripped.lower()))
