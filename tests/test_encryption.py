"""Tests for sealed-box encryption."""
import base64

import pytest
from nacl.public import PrivateKey, SealedBox

from github_secrets.secrets.domains.encryption import (
    SEAL_OVERHEAD,
    decode_public_key,
    encrypt_secret,
    seal,
)
from github_secrets.secrets.domains.errors import EncryptionError
from github_secrets.secrets.domains.models import PublicKeyInfo


@pytest.fixture
def recipient():
    return PrivateKey.generate()


class TestSeal:
    @pytest.mark.parametrize("plaintext", [b"x", b"test-secret-value", b"\x00" * 1024, "ünïcødé".encode("utf-8")])
    def test_ciphertext_is_48_bytes_longer(self, recipient, plaintext):
        ciphertext = seal(plaintext, bytes(recipient.public_key))
        assert len(ciphertext) == len(plaintext) + SEAL_OVERHEAD == len(plaintext) + 48

    def test_same_input_gives_different_ciphertexts(self, recipient):
        first = seal(b"test-value", bytes(recipient.public_key))
        second = seal(b"test-value", bytes(recipient.public_key))
        assert first != second

    def test_recipient_can_open_both_ciphertexts(self, recipient):
        box = SealedBox(recipient)
        for _ in range(2):
            ciphertext = seal(b"test-value", bytes(recipient.public_key))
            assert box.decrypt(ciphertext) == b"test-value"

    def test_each_call_uses_a_fresh_ephemeral_key(self, recipient):
        first = seal(b"value", bytes(recipient.public_key))
        second = seal(b"value", bytes(recipient.public_key))
        assert first[:32] != second[:32]
        assert bytes(recipient.public_key) not in (first[:32], second[:32])

    def test_accepts_bytearray(self, recipient):
        ciphertext = seal(bytearray(b"value"), bytes(recipient.public_key))
        assert SealedBox(recipient).decrypt(ciphertext) == b"value"

    def test_rejects_short_key(self):
        with pytest.raises(EncryptionError) as exc_info:
            seal(b"value", b"too-short-key")
        assert "Invalid public key length" in str(exc_info.value)


class TestEncryptSecret:
    def test_returns_base64_with_key_id(self, recipient):
        public_key = PublicKeyInfo(key_id="568250167242549743", key=bytes(recipient.public_key))
        encrypted = encrypt_secret(b"hunter2", public_key)

        assert encrypted.key_id == "568250167242549743"
        raw = base64.b64decode(encrypted.ciphertext)
        assert len(raw) == len(b"hunter2") + 48
        assert SealedBox(recipient).decrypt(raw) == b"hunter2"


class TestDecodePublicKey:
    def test_decodes_valid_key(self, recipient):
        encoded = base64.b64encode(bytes(recipient.public_key)).decode()
        info = decode_public_key("key-1", encoded)
        assert info.key_id == "key-1"
        assert info.key == bytes(recipient.public_key)

    def test_invalid_base64(self):
        with pytest.raises(EncryptionError) as exc_info:
            decode_public_key("key-1", "not-valid-base64!!!")
        assert "Failed to decode public key" in str(exc_info.value)

    def test_wrong_length(self):
        with pytest.raises(EncryptionError) as exc_info:
            decode_public_key("key-1", base64.b64encode(b"too-short-key").decode())
        assert "Invalid public key length" in str(exc_info.value)
