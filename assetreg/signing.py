# assetreg/signing.py
"""
Registry signatures for the event log.

The registry holds one RSA key pair. When signing is enabled, each event
is signed as it is appended, so observers holding the public key can check
that the audit trail was produced by this registry and not altered.

Signatures are RSA-SHA256 (PKCS#1 v1.5) over canonical JSON: sorted keys,
no whitespace.
"""

import base64
import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import RegistryError
from .events import Event

SIGNATURE_TYPE = "RsaSignature2017"


def _canonicalize(data: Dict[str, Any]) -> str:
    """Canonical JSON for signing."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _generate_keypair() -> tuple[bytes, bytes]:
    """Generate RSA key pair for signing."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return private_pem, _public_pem(private_key)


def _public_pem(private_key) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@dataclass
class RegistryKey:
    """
    The registry's signing identity.

    Attributes:
        private_key: PEM-encoded private key (kept secret)
        public_key: PEM-encoded public key (shared with observers)
    """
    private_key: bytes
    public_key: bytes

    @property
    def key_id(self) -> str:
        """Short fingerprint of the public key."""
        return hashlib.sha256(self.public_key).hexdigest()[:16]

    @classmethod
    def generate(cls) -> "RegistryKey":
        """Create a new key pair."""
        private_pem, public_pem = _generate_keypair()
        return cls(private_key=private_pem, public_key=public_pem)

    @classmethod
    def load(cls, path: Path | str) -> "RegistryKey":
        """Load a key from a PEM private key file."""
        try:
            private_pem = Path(path).read_bytes()
            private_key = serialization.load_pem_private_key(private_pem, password=None)
        except (OSError, ValueError, TypeError) as e:
            raise RegistryError(f"Cannot load registry key {path}: {e}") from e
        return cls(private_key=private_pem, public_key=_public_pem(private_key))

    def save(self, path: Path | str) -> Path:
        """Write the private key (mode 600) and a .pub file beside it."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.private_key)
        os.chmod(path, 0o600)
        path.with_suffix(".pub").write_bytes(self.public_key)
        return path


def _signed_document(event: Event) -> str:
    return _canonicalize({
        "eventId": event.event_id,
        "sequence": event.sequence,
        **event.payload(),
    })


def sign_event(event: Event, key: RegistryKey) -> Event:
    """
    Sign an event with the registry key.

    The signature covers the event ID, its sequence number and its payload.

    Returns:
        The same event with its signature attached
    """
    private_key = serialization.load_pem_private_key(key.private_key, password=None)
    signature_bytes = private_key.sign(
        _signed_document(event).encode(),
        padding.PKCS1v15(),
        hashes.SHA256(),
    )
    event.signature = {
        "type": SIGNATURE_TYPE,
        "creator": key.key_id,
        "signatureValue": base64.b64encode(signature_bytes).decode("utf-8"),
    }
    return event


def verify_event(event: Event, public_key_pem: bytes) -> bool:
    """
    Verify an event's signature.

    Args:
        event: The event with signature
        public_key_pem: PEM-encoded registry public key

    Returns:
        True if signature is valid
    """
    if not event.signature:
        return False

    try:
        public_key = serialization.load_pem_public_key(public_key_pem)
        signature_bytes = base64.b64decode(event.signature["signatureValue"])
        public_key.verify(
            signature_bytes,
            _signed_document(event).encode(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return True

    except (InvalidSignature, KeyError, ValueError):
        return False
