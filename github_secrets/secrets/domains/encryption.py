"""Sealed-box encryption of secret values.

GitHub expects secrets sealed with libsodium's crypto_box_seal: an
ephemeral X25519 key pair per call, a nonce derived from the ephemeral and
recipient public keys, and XSalsa20-Poly1305. The output is
ephemeral_public_key || ciphertext_with_tag, 48 bytes longer than the input.
"""
import base64
import logging

from nacl import exceptions as nacl_exceptions
from nacl.public import PublicKey, SealedBox

from .errors import EncryptionError
from .models import EncryptedSecret, PublicKeyInfo

logger = logging.getLogger(__name__)

PUBLIC_KEY_SIZE = PublicKey.SIZE
SEAL_OVERHEAD = 48


def seal(plaintext: bytes, recipient_public_key: bytes) -> bytes:
    """
    Seal plaintext for the holder of recipient_public_key.

    Args:
        plaintext: Bytes to encrypt
        recipient_public_key: Raw 32-byte Curve25519 public key

    Returns:
        Raw ciphertext, len(plaintext) + 48 bytes

    Raises:
        EncryptionError: If the public key is malformed
    """
    if len(recipient_public_key) != PUBLIC_KEY_SIZE:
        raise EncryptionError(
            f"Invalid public key length. Expected {PUBLIC_KEY_SIZE} bytes, got {len(recipient_public_key)}"
        )
    try:
        box = SealedBox(PublicKey(bytes(recipient_public_key)))
        return box.encrypt(bytes(plaintext))
    except nacl_exceptions.CryptoError as e:
        raise EncryptionError("Failed to seal secret value") from e


def encrypt_secret(value, public_key: PublicKeyInfo) -> EncryptedSecret:
    """Seal a secret value and base64-encode it for the GitHub API."""
    ciphertext = seal(value, public_key.key)
    logger.debug(f"Sealed {len(value)} bytes with key {public_key.key_id}")
    return EncryptedSecret(
        key_id=public_key.key_id,
        ciphertext=base64.b64encode(ciphertext).decode("ascii"),
    )


def decode_public_key(key_id: str, encoded_key: str) -> PublicKeyInfo:
    """Decode the base64 key returned by the public-key endpoint."""
    try:
        raw = base64.b64decode(encoded_key, validate=True)
    except (ValueError, TypeError) as e:
        raise EncryptionError("Failed to decode public key") from e
    if len(raw) != PUBLIC_KEY_SIZE:
        raise EncryptionError(
            f"Invalid public key length. Expected {PUBLIC_KEY_SIZE} bytes, got {len(raw)}"
        )
    return PublicKeyInfo(key_id=key_id, key=raw)
