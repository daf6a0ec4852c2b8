"""Tests for the AEAD payload layer."""

import pytest

from threshold_lhe.core import hybrid
from threshold_lhe.core.hybrid import NONCE_BYTES, TAG_BYTES, SymmetricCiphertext
from threshold_lhe.errors import AuthenticationFailure, EncodingError, InvalidParameters

ALGORITHMS = sorted(hybrid.ALGORITHMS)


def _flip(data: bytes, bit: int) -> bytes:
    out = bytearray(data)
    out[bit // 8] ^= 1 << (bit % 8)
    return bytes(out)


@pytest.mark.parametrize("algorithm", ALGORITHMS)
class TestAEAD:
    def test_roundtrip(self, algorithm: str) -> None:
        key = hybrid.generate_key()
        ct = hybrid.encrypt(key, b"hello world", algorithm=algorithm)
        assert len(ct.nonce) == NONCE_BYTES
        assert len(ct.ciphertext) == len(b"hello world") + TAG_BYTES
        assert hybrid.decrypt(key, ct.nonce, ct.ciphertext, algorithm=algorithm) == b"hello world"

    def test_empty_message(self, algorithm: str) -> None:
        key = hybrid.generate_key()
        ct = hybrid.encrypt(key, b"", algorithm=algorithm)
        assert len(ct.ciphertext) == TAG_BYTES
        assert hybrid.decrypt(key, ct.nonce, ct.ciphertext, algorithm=algorithm) == b""

    def test_associated_data(self, algorithm: str) -> None:
        key = hybrid.generate_key()
        ct = hybrid.encrypt(key, b"msg", b"trade-7", algorithm=algorithm)
        assert hybrid.decrypt(key, ct.nonce, ct.ciphertext, b"trade-7", algorithm=algorithm) == b"msg"
        with pytest.raises(AuthenticationFailure):
            hybrid.decrypt(key, ct.nonce, ct.ciphertext, b"trade-8", algorithm=algorithm)
        with pytest.raises(AuthenticationFailure):
            hybrid.decrypt(key, ct.nonce, ct.ciphertext, None, algorithm=algorithm)

    def test_ciphertext_bit_flips_rejected(self, algorithm: str) -> None:
        key = hybrid.generate_key()
        ct = hybrid.encrypt(key, b"sensitive payload", algorithm=algorithm)
        for bit in (0, 7, 8 * len(ct.ciphertext) - 1):
            with pytest.raises(AuthenticationFailure):
                hybrid.decrypt(key, ct.nonce, _flip(ct.ciphertext, bit), algorithm=algorithm)

    def test_nonce_bit_flip_rejected(self, algorithm: str) -> None:
        key = hybrid.generate_key()
        ct = hybrid.encrypt(key, b"sensitive payload", algorithm=algorithm)
        with pytest.raises(AuthenticationFailure):
            hybrid.decrypt(key, _flip(ct.nonce, 3), ct.ciphertext, algorithm=algorithm)

    def test_wrong_key_rejected(self, algorithm: str) -> None:
        ct = hybrid.encrypt(hybrid.generate_key(), b"msg", algorithm=algorithm)
        with pytest.raises(AuthenticationFailure):
            hybrid.decrypt(hybrid.generate_key(), ct.nonce, ct.ciphertext, algorithm=algorithm)

    def test_fresh_nonce_per_call(self, algorithm: str) -> None:
        key = hybrid.generate_key()
        a = hybrid.encrypt(key, b"same", algorithm=algorithm)
        b = hybrid.encrypt(key, b"same", algorithm=algorithm)
        assert a.nonce != b.nonce
        assert a.ciphertext != b.ciphertext


class TestAEADParameters:
    def test_unknown_algorithm(self) -> None:
        with pytest.raises(InvalidParameters, match="Unsupported"):
            hybrid.encrypt(hybrid.generate_key(), b"x", algorithm="rot13")

    def test_short_key(self) -> None:
        with pytest.raises(InvalidParameters, match="32 bytes"):
            hybrid.encrypt(b"\x00" * 16, b"x")

    def test_short_nonce_rejected(self) -> None:
        key = hybrid.generate_key()
        ct = hybrid.encrypt(key, b"x")
        with pytest.raises(AuthenticationFailure):
            hybrid.decrypt(key, ct.nonce[:8], ct.ciphertext)

    def test_algorithms_not_interchangeable(self) -> None:
        key = hybrid.generate_key()
        ct = hybrid.encrypt(key, b"x", algorithm="chacha20-poly1305")
        with pytest.raises(AuthenticationFailure):
            hybrid.decrypt(key, ct.nonce, ct.ciphertext, algorithm="aes-256-gcm")


class TestKeyHandling:
    def test_generate_key_is_mutable_buffer(self) -> None:
        key = hybrid.generate_key()
        assert isinstance(key, bytearray)
        assert len(key) == hybrid.KEY_BYTES

    def test_wipe_zeroes_buffer(self) -> None:
        key = hybrid.generate_key()
        hybrid.wipe(key)
        assert key == bytearray(hybrid.KEY_BYTES)


class TestSymmetricCiphertext:
    def test_bad_nonce_length(self) -> None:
        with pytest.raises(EncodingError, match="Nonce"):
            SymmetricCiphertext(nonce=b"\x00" * 11, ciphertext=b"\x00" * TAG_BYTES)

    def test_shorter_than_tag(self) -> None:
        with pytest.raises(EncodingError, match="tag"):
            SymmetricCiphertext(nonce=b"\x00" * NONCE_BYTES, ciphertext=b"\x00" * (TAG_BYTES - 1))
