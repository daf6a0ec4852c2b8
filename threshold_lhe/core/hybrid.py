"""Authenticated symmetric encryption of the message payload.

The only thing this module shares with the homomorphic layer is the 32-byte
ephemeral key. Both supported algorithms take a 256-bit key and a 96-bit
nonce; the nonce is always generated here, never accepted from a caller.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from threshold_lhe.errors import AuthenticationFailure, EncodingError, InvalidParameters

log = structlog.get_logger()

KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16

AEAD_ALGORITHM = "chacha20-poly1305"

ALGORITHMS = {
    "chacha20-poly1305": ChaCha20Poly1305,
    "aes-256-gcm": AESGCM,
}


@dataclass(frozen=True)
class SymmetricCiphertext:
    """AEAD output: nonce plus ciphertext with the tag appended."""

    nonce: bytes
    ciphertext: bytes

    def __post_init__(self) -> None:
        if len(self.nonce) != NONCE_BYTES:
            raise EncodingError(f"Nonce must be {NONCE_BYTES} bytes, got {len(self.nonce)}")
        if len(self.ciphertext) < TAG_BYTES:
            raise EncodingError("Ciphertext is shorter than the authentication tag")


def _cipher(key: bytes | bytearray, algorithm: str):
    try:
        cls = ALGORITHMS[algorithm]
    except KeyError:
        raise InvalidParameters(f"Unsupported AEAD algorithm {algorithm!r}")
    if len(key) != KEY_BYTES:
        raise InvalidParameters(f"AEAD key must be {KEY_BYTES} bytes, got {len(key)}")
    return cls(bytes(key))


def generate_key() -> bytearray:
    """Fresh random key in a mutable buffer so the owner can wipe it."""
    return bytearray(secrets.token_bytes(KEY_BYTES))


def wipe(buffer: bytearray) -> None:
    """Overwrite a key buffer with zeros."""
    buffer[:] = bytes(len(buffer))


def encrypt(
    key: bytes | bytearray,
    message: bytes,
    associated_data: bytes | None = None,
    algorithm: str = AEAD_ALGORITHM,
) -> SymmetricCiphertext:
    """Encrypt ``message`` under ``key`` with a freshly drawn nonce."""
    cipher = _cipher(key, algorithm)
    nonce = secrets.token_bytes(NONCE_BYTES)
    return SymmetricCiphertext(nonce=nonce, ciphertext=cipher.encrypt(nonce, bytes(message), associated_data))


def decrypt(
    key: bytes | bytearray,
    nonce: bytes,
    ciphertext: bytes,
    associated_data: bytes | None = None,
    algorithm: str = AEAD_ALGORITHM,
) -> bytes:
    """Authenticated decryption. Any mismatch raises AuthenticationFailure with no output."""
    cipher = _cipher(key, algorithm)
    if len(nonce) != NONCE_BYTES:
        raise AuthenticationFailure(f"Nonce must be {NONCE_BYTES} bytes, got {len(nonce)}")
    try:
        return cipher.decrypt(bytes(nonce), bytes(ciphertext), associated_data)
    except InvalidTag as e:
        log.warning("aead_authentication_failed", algorithm=algorithm, ciphertext_len=len(ciphertext))
        raise AuthenticationFailure("AEAD authentication failed") from e
