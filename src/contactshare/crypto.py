"""
contactshare identity cryptography
Ed25519 identity key pairs and public key validation
"""

import os
import base64
import logging
from typing import Callable, Optional
from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives import serialization

from .codec.canonical_utils import stable_hash
from .errors import InvalidKeyError

logger = logging.getLogger(__name__)

ED25519_PUBLIC_KEY_BYTES = 32

KeyValidator = Callable[[bytes], None]


def compute_key_id(public_key: bytes) -> str:
    """Compute stable key_id as hash of the base64 public key"""
    return stable_hash(base64.b64encode(public_key).decode('ascii'))


def validate_ed25519_public_key(public_key: bytes) -> None:
    """
    Check that raw bytes form a loadable Ed25519 public key

    Raises:
        InvalidKeyError: If the key has the wrong length or format
    """
    if len(public_key) != ED25519_PUBLIC_KEY_BYTES:
        raise InvalidKeyError(
            f"Public key must be {ED25519_PUBLIC_KEY_BYTES} bytes, got {len(public_key)}"
        )
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(public_key)
    except ValueError as e:
        raise InvalidKeyError(f"Public key rejected: {e}") from e


def fixed_length_key_validator(length: int) -> KeyValidator:
    """Build a validator accepting any key of exactly `length` bytes"""
    if length <= 0:
        raise ValueError("Key length must be positive")

    def _validate(public_key: bytes) -> None:
        if len(public_key) != length:
            raise InvalidKeyError(f"Public key must be {length} bytes, got {len(public_key)}")

    return _validate


class IdentityKeyPair:
    """Ed25519 key pair backing the local identity"""

    def __init__(self, private_key: Optional[ed25519.Ed25519PrivateKey] = None):
        """
        Initialize key pair
        Args:
            private_key: Optional existing private key, generates new one if None
        """
        if private_key is None:
            private_key = ed25519.Ed25519PrivateKey.generate()
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._key_id = compute_key_id(self.public_key_bytes)

    @property
    def private_key(self) -> ed25519.Ed25519PrivateKey:
        """Get private key (never logged or exported in a payload)"""
        return self._private_key

    @property
    def public_key(self) -> ed25519.Ed25519PublicKey:
        return self._public_key

    @property
    def public_key_bytes(self) -> bytes:
        """Raw public key bytes, the identity carried by a contact"""
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )

    @property
    def public_key_b64(self) -> str:
        return base64.b64encode(self.public_key_bytes).decode('ascii')

    @property
    def key_id(self) -> str:
        return self._key_id

    def to_pem(self) -> bytes:
        """Serialize the private key as unencrypted PKCS8 PEM"""
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )

    @classmethod
    def from_pem(cls, data: bytes) -> "IdentityKeyPair":
        private_key = serialization.load_pem_private_key(data, password=None)
        if not isinstance(private_key, ed25519.Ed25519PrivateKey):
            raise ValueError(f"Expected an Ed25519 private key, got {type(private_key).__name__}")
        return cls(private_key)

    @classmethod
    def load_or_create(cls, key_path: str) -> "IdentityKeyPair":
        """Load the key pair stored at key_path, generating and storing one if absent"""
        if os.path.exists(key_path):
            with open(key_path, "rb") as f:
                key_pair = cls.from_pem(f.read())
            logger.info(f"Loaded identity key {key_pair.key_id[:16]} from {key_path}")
            return key_pair

        key_pair = cls()
        # Owner-only, never overwritten
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(key_pair.to_pem())
        logger.info(f"Generated identity key {key_pair.key_id[:16]} at {key_path}")
        return key_pair
