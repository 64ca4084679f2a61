"""ProofSnap — Ed25519 device identity and signer.

The device key pair is created once by the onboarding flow
(``DeviceIdentity.generate``) and kept in a secure key store. The signer only
reads it; it never creates keys on its own.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from proofsnap.core.exceptions import InvalidDigestError, NoKeyError

logger = logging.getLogger(__name__)

PRIVATE_KEY_NAME = "proofsnap_private_key"
PUBLIC_KEY_NAME = "proofsnap_public_key"


# ── Secure key stores ──


class KeyStore(ABC):
    """Secure, access-controlled byte store used only for the device key."""

    @abstractmethod
    def get(self, name: str) -> bytes | None: ...

    @abstractmethod
    def set(self, name: str, value: bytes) -> None: ...


class MemoryKeyStore(KeyStore):
    def __init__(self) -> None:
        self._items: dict[str, bytes] = {}

    def get(self, name: str) -> bytes | None:
        return self._items.get(name)

    def set(self, name: str, value: bytes) -> None:
        self._items[name] = bytes(value)


class FileKeyStore(KeyStore):
    """One owner-only file per key name."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        if not name or "/" in name or name.startswith("."):
            raise ValueError(f"Invalid key name: {name!r}")
        return self.directory / name

    def get(self, name: str) -> bytes | None:
        path = self._path(name)
        if not path.is_file():
            return None
        return path.read_bytes()

    def set(self, name: str, value: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True, mode=0o700)
        path = self._path(name)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as fh:
            fh.write(value)


# ── Device identity ──


def _raw_public(public_key: ed25519.Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw)


@dataclass
class DeviceIdentity:
    """The long-lived Ed25519 key pair of one installation."""

    private_key: ed25519.Ed25519PrivateKey

    @property
    def public_key_hex(self) -> str:
        return _raw_public(self.private_key.public_key()).hex()

    @classmethod
    def generate(cls, key_store: KeyStore) -> DeviceIdentity:
        """Create a new key pair and persist it (onboarding)."""
        private_key = ed25519.Ed25519PrivateKey.generate()
        private_raw = private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        key_store.set(PRIVATE_KEY_NAME, private_raw)
        key_store.set(PUBLIC_KEY_NAME, _raw_public(private_key.public_key()))
        identity = cls(private_key=private_key)
        logger.info("Device identity created (public key %s...)", identity.public_key_hex[:16])
        return identity

    @classmethod
    def load(cls, key_store: KeyStore) -> DeviceIdentity | None:
        private_raw = key_store.get(PRIVATE_KEY_NAME)
        if not private_raw:
            return None
        return cls(private_key=ed25519.Ed25519PrivateKey.from_private_bytes(private_raw))

    @staticmethod
    def has_keys(key_store: KeyStore) -> bool:
        return key_store.get(PRIVATE_KEY_NAME) is not None


# ── Signer ──


def _decode_hex(value: str, what: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except (TypeError, ValueError) as exc:
        raise InvalidDigestError(f"{what} is not valid hex", {"value": str(value)[:80]}) from exc


class Signer:
    """Signs digests with the stored device key.

    The digest is decoded from hex and its raw bytes are signed.
    """

    def __init__(self, key_store: KeyStore) -> None:
        self.key_store = key_store

    def _identity(self) -> DeviceIdentity:
        identity = DeviceIdentity.load(self.key_store)
        if identity is None:
            raise NoKeyError("No private key found. Generate keys first.")
        return identity

    def sign(self, digest_hex: str) -> str:
        message = _decode_hex(digest_hex, "Digest")
        return self._identity().private_key.sign(message).hex()

    def public_key(self) -> str:
        stored = self.key_store.get(PUBLIC_KEY_NAME)
        if stored:
            return stored.hex()
        return self._identity().public_key_hex

    @staticmethod
    def verify(digest_hex: str, signature_hex: str, key_hex: str) -> bool:
        try:
            message = bytes.fromhex(digest_hex)
            signature = bytes.fromhex(signature_hex)
            public_key = ed25519.Ed25519PublicKey.from_public_bytes(bytes.fromhex(key_hex))
            public_key.verify(signature, message)
        except (InvalidSignature, TypeError, ValueError):
            return False
        return True
