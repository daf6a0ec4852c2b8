"""Fixed-width byte helpers shared by the published artifact types."""

from __future__ import annotations

from threshold_lhe.errors import DecodeFailure, EncodingError

KEY_BYTES = 32
LIMB_BITS = 16
LIMB_BYTES = LIMB_BITS // 8
LIMB_COUNT = KEY_BYTES // LIMB_BYTES
LIMB_BOUND = 1 << LIMB_BITS


def key_to_limbs(key: bytes | bytearray) -> list[int]:
    """Split a 32-byte key into 16-bit little-endian limbs."""
    if len(key) != KEY_BYTES:
        raise EncodingError(f"Key must be {KEY_BYTES} bytes, got {len(key)}")
    return [int.from_bytes(key[i : i + LIMB_BYTES], "little") for i in range(0, KEY_BYTES, LIMB_BYTES)]


def limbs_to_key(limbs: list[int]) -> bytearray:
    """Inverse of key_to_limbs. Raises DecodeFailure if a limb is out of range."""
    if len(limbs) != LIMB_COUNT:
        raise DecodeFailure(f"Expected {LIMB_COUNT} key limbs, got {len(limbs)}")
    out = bytearray()
    for limb in limbs:
        if not 0 <= limb < LIMB_BOUND:
            raise DecodeFailure(f"Key limb {limb} is outside [0, {LIMB_BOUND})")
        out += limb.to_bytes(LIMB_BYTES, "little")
    return out


def split_fixed(data: bytes, width: int, count: int) -> list[bytes]:
    """Cut ``data`` into exactly ``count`` chunks of ``width`` bytes."""
    if len(data) != width * count:
        raise EncodingError(f"Expected {width * count} bytes, got {len(data)}")
    return [data[i : i + width] for i in range(0, width * count, width)]

