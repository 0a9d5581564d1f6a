"""
intentledger/core/crypto.py

Journal signing key.

The fact journal is the execution environment's durable log. Every envelope
it writes is Ed25519-signed so consumers can detect after-the-fact edits.
Registries never sign anything and never see this key.

Key contracts:
    public_key_hex          : @property → 64-char lowercase hex
    sign(data)              : bytes → base64url str, no padding
    verify_detached(...)    : @staticmethod — verifies with only a pubkey hex
"""

import base64
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)


class JournalKey:
    """
    Ed25519 key used by FactJournal.

    Construction:
        JournalKey.generate()
        JournalKey.from_file(path)            PEM (PKCS8) private key
        JournalKey.load_or_create(path)       from_file, or generate + save
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_hex: str = (
            private_key.public_key()
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    @classmethod
    def generate(cls) -> "JournalKey":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "JournalKey":
        """
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not an Ed25519 PEM private key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except (ValueError, TypeError) as exc:
            raise ValueError(
                f"Failed to load Ed25519 key from {path}: {exc}"
            ) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(f"Key file {path} does not contain an Ed25519 private key")
        return cls(private_key)

    @classmethod
    def load_or_create(cls, path: Path) -> "JournalKey":
        path = Path(path)
        if path.exists():
            return cls.from_file(path)
        key = cls.generate()
        key.save(path)
        return key

    @property
    def public_key_hex(self) -> str:
        """64-character lowercase hex of the raw public key. A property, not a method."""
        return self._public_key_hex

    def sign(self, data: bytes) -> str:
        """Sign raw bytes. Returns base64url, no '=' padding (86 chars)."""
        raw_sig = self._private_key.sign(data)
        return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")

    @staticmethod
    def verify_detached(data: bytes, signature_b64: str, public_key_hex: str) -> bool:
        """
        Verify a signature using only the signer's public key hex.

        Returns True if valid. False for ANY failure. Never raises.
        """
        try:
            if not isinstance(public_key_hex, str) or len(public_key_hex) != 64:
                return False
            pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))

            padded  = signature_b64 + "=" * (-len(signature_b64) % 4)
            raw_sig = base64.urlsafe_b64decode(padded)
            if len(raw_sig) != 64:
                return False

            pub.verify(raw_sig, data)
            return True
        except (InvalidSignature, ValueError, TypeError):
            return False

    def save(self, path: Path) -> None:
        """Write the private key as PEM. Creates parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        pem = self._private_key.private_bytes(
            encoding=             Encoding.PEM,
            format=               PrivateFormat.PKCS8,
            encryption_algorithm= NoEncryption(),
        )
        path.write_bytes(pem)

    def __repr__(self) -> str:
        return f"JournalKey(public_key_hex={self._public_key_hex[:16]}...)"
