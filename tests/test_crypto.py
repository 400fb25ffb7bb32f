"""
Tests for identity cryptography
Validate key pair generation, persistence and public key validation
"""

import base64
import os
import stat
import sys

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from contactshare.crypto import (
    ED25519_PUBLIC_KEY_BYTES,
    IdentityKeyPair,
    compute_key_id,
    fixed_length_key_validator,
    validate_ed25519_public_key,
)
from contactshare.errors import InvalidKeyError
from tests.factories import make_public_key


class TestIdentityKeyPair:
    """Test identity key pairs"""

    def test_generate(self):
        key_pair = IdentityKeyPair()

        assert len(key_pair.public_key_bytes) == ED25519_PUBLIC_KEY_BYTES
        assert base64.b64decode(key_pair.public_key_b64) == key_pair.public_key_bytes
        assert key_pair.key_id == compute_key_id(key_pair.public_key_bytes)

    def test_distinct_keys(self):
        assert IdentityKeyPair().public_key_bytes != IdentityKeyPair().public_key_bytes

    def test_pem_round_trip(self):
        key_pair = IdentityKeyPair()

        restored = IdentityKeyPair.from_pem(key_pair.to_pem())

        assert restored.public_key_bytes == key_pair.public_key_bytes

    def test_from_pem_rejects_other_algorithms(self):
        ec_key = ec.generate_private_key(ec.SECP256R1())
        pem = ec_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )

        with pytest.raises(ValueError, match="Ed25519"):
            IdentityKeyPair.from_pem(pem)

    def test_load_or_create(self, tmp_path):
        key_path = tmp_path / "identity.pem"

        created = IdentityKeyPair.load_or_create(str(key_path))
        loaded = IdentityKeyPair.load_or_create(str(key_path))

        assert key_path.exists()
        assert loaded.public_key_bytes == created.public_key_bytes

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_created_key_file_is_owner_only(self, tmp_path):
        key_path = tmp_path / "identity.pem"
        old_umask = os.umask(0o022)
        try:
            IdentityKeyPair.load_or_create(str(key_path))
        finally:
            os.umask(old_umask)

        assert stat.S_IMODE(key_path.stat().st_mode) & 0o077 == 0

    def test_load_rejects_corrupt_key_file(self, tmp_path):
        key_path = tmp_path / "identity.pem"
        key_path.write_bytes(b"not a pem")

        with pytest.raises(ValueError):
            IdentityKeyPair.load_or_create(str(key_path))


class TestKeyValidation:
    """Test public key validators"""

    def test_ed25519_accepts_valid_key(self):
        validate_ed25519_public_key(make_public_key(7))

    @pytest.mark.parametrize("key", [b"", b"ABC", b"\x01" * 31, b"\x01" * 33])
    def test_ed25519_rejects_wrong_length(self, key):
        with pytest.raises(InvalidKeyError):
            validate_ed25519_public_key(key)

    def test_fixed_length_validator(self):
        validate = fixed_length_key_validator(3)

        validate(b"ABC")
        with pytest.raises(InvalidKeyError):
            validate(b"ABCD")

    def test_fixed_length_must_be_positive(self):
        with pytest.raises(ValueError):
            fixed_length_key_validator(0)
