"""Linearly homomorphic ElGamal over BN254 G1.

A plaintext m is carried as m*G, so ciphertexts add and scale the way their
plaintexts do:

    Enc(pk, a) + Enc(pk, b) = Enc(pk, a + b)
    k * Enc(pk, a)          = Enc(pk, k * a)

Decryption recovers m*G; turning that back into m is a bounded discrete-log
search, so only plaintexts below ``DEFAULT_DECODE_BOUND`` are decodable.
The threshold protocol keeps every plaintext in range by splitting the
symmetric key into 16-bit limbs.

Re-encryption moves a ciphertext from a node's key to a target key without
the node ever holding m*G: the target mask is added before the node's own
mask is stripped.
"""

from __future__ import annotations

import hmac
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from functools import lru_cache

import structlog

from threshold_lhe.core.field import FieldElement, FieldLike, to_field
from threshold_lhe.core.group import POINT_BYTES, GroupElement
from threshold_lhe.core.sharing import lagrange_coefficients, validate_selection
from threshold_lhe.errors import DecodeFailure, EncodingError, InvalidParameters, InvalidSecretKey, ParameterMismatch

log = structlog.get_logger()

CIPHERTEXT_BYTES = 2 * POINT_BYTES

# Baby-step/giant-step split for the default 16-bit decode range
_BABY_STEPS = 1 << 8
DEFAULT_DECODE_BOUND = 1 << 16


@dataclass(frozen=True)
class KeyPair:
    """A secret scalar and its public point. The secret is hidden from repr."""

    secret_key: FieldElement = field(repr=False)
    public_key: GroupElement

    @classmethod
    def from_secret(cls, secret_key: FieldLike) -> KeyPair:
        sk = to_field(secret_key)
        if sk.is_zero():
            raise InvalidSecretKey("Secret key must be nonzero")
        return cls(secret_key=sk, public_key=GroupElement.base_mul(sk))

    def secret_bytes(self) -> bytes:
        """Serialize the secret key for the owner's own custody."""
        return self.secret_key.to_bytes()

    @classmethod
    def from_secret_bytes(cls, data: bytes) -> KeyPair:
        return cls.from_secret(FieldElement.from_bytes(data))


@dataclass(frozen=True)
class Ciphertext:
    """ElGamal pair (C1, C2) = (r*G, m*G + r*pk)."""

    c1: GroupElement
    c2: GroupElement

    def __add__(self, other: Ciphertext) -> Ciphertext:
        return add(self, other)

    def __sub__(self, other: Ciphertext) -> Ciphertext:
        return subtract(self, other)

    def __neg__(self) -> Ciphertext:
        return negate(self)

    def __mul__(self, scalar: FieldLike) -> Ciphertext:
        return scale(self, scalar)

    __rmul__ = __mul__

    def to_bytes(self) -> bytes:
        return self.c1.to_bytes() + self.c2.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> Ciphertext:
        if len(data) != CIPHERTEXT_BYTES:
            raise EncodingError(f"Ciphertext must be {CIPHERTEXT_BYTES} bytes, got {len(data)}")
        return cls(
            c1=GroupElement.from_bytes(data[:POINT_BYTES]),
            c2=GroupElement.from_bytes(data[POINT_BYTES:]),
        )


def gen_keypair(ctx: object | None = None) -> KeyPair:
    """Generate a fresh keypair. The group is fixed, so ``ctx`` is not consulted."""
    return KeyPair.from_secret(FieldElement.random_nonzero())


def _check_public_key(public_key: GroupElement) -> None:
    if not isinstance(public_key, GroupElement):
        raise TypeError(f"Public key must be a GroupElement, got {type(public_key).__name__}")
    if public_key.is_identity():
        raise InvalidParameters("Public key is the identity element")


def encrypt(public_key: GroupElement, plaintext: FieldLike) -> Ciphertext:
    """Encrypt one field element under ``public_key`` with a fresh nonce."""
    _check_public_key(public_key)
    m = to_field(plaintext)
    r = FieldElement.random_nonzero()
    return Ciphertext(
        c1=GroupElement.base_mul(r),
        c2=GroupElement.base_mul(m) + public_key * r,
    )


def add(a: Ciphertext, b: Ciphertext) -> Ciphertext:
    return Ciphertext(c1=a.c1 + b.c1, c2=a.c2 + b.c2)


def subtract(a: Ciphertext, b: Ciphertext) -> Ciphertext:
    return Ciphertext(c1=a.c1 - b.c1, c2=a.c2 - b.c2)


def negate(a: Ciphertext) -> Ciphertext:
    return Ciphertext(c1=-a.c1, c2=-a.c2)


def scale(a: Ciphertext, scalar: FieldLike) -> Ciphertext:
    k = to_field(scalar)
    return Ciphertext(c1=a.c1 * k, c2=a.c2 * k)


def inner_product(ciphertexts: Sequence[Ciphertext], scalars: Sequence[FieldLike]) -> Ciphertext:
    """sum_i scalars[i] * ciphertexts[i]."""
    if len(ciphertexts) != len(scalars):
        raise ParameterMismatch(
            f"inner_product needs equal lengths, got {len(ciphertexts)} ciphertexts and {len(scalars)} scalars"
        )
    if not ciphertexts:
        raise ParameterMismatch("inner_product needs at least one ciphertext")
    acc = Ciphertext(c1=GroupElement.identity(), c2=GroupElement.identity())
    for ct, k in zip(ciphertexts, scalars):
        acc = add(acc, scale(ct, k))
    return acc


def verify_secret_key(secret_key: FieldLike, public_key: GroupElement) -> None:
    """Raise InvalidSecretKey unless secret_key * G == public_key."""
    sk = to_field(secret_key)
    if sk.is_zero() or not hmac.compare_digest(GroupElement.base_mul(sk).to_bytes(), public_key.to_bytes()):
        raise InvalidSecretKey("Secret key does not match the registered public key")


def re_encrypt(
    ciphertext: Ciphertext,
    secret_key: FieldLike,
    target_public_key: GroupElement,
    source_public_key: GroupElement | None = None,
) -> Ciphertext:
    """Transform Enc(pk_own, m) into Enc(pk_target, m) without decrypting.

    Output is (r'*G, C2 + r'*pk_target - sk*C1). The fresh target mask is
    applied before the node's own mask is removed, so the intermediate value
    is never m*G.

    Args:
        ciphertext: Encryption under the caller's own public key.
        secret_key: The caller's secret key.
        target_public_key: Key the result should be decryptable under.
        source_public_key: The key ``ciphertext`` was produced for; when given,
            ``secret_key`` must match it.
    """
    _check_public_key(target_public_key)
    sk = to_field(secret_key)
    if source_public_key is not None:
        verify_secret_key(sk, source_public_key)
    elif sk.is_zero():
        raise InvalidSecretKey("Secret key must be nonzero")

    r = FieldElement.random_nonzero()
    blinded = ciphertext.c2 + target_public_key * r
    return Ciphertext(c1=GroupElement.base_mul(r), c2=blinded - ciphertext.c1 * sk)


def combine(
    ciphertexts: Sequence[Ciphertext],
    chosen_indices: Sequence[FieldLike],
    threshold: int,
    known_indices: Iterable[FieldLike] | None = None,
) -> Ciphertext:
    """Homomorphic Lagrange interpolation at zero.

    Given re-encryptions of shares f(x_i) under one key, returns an
    encryption of f(0) under that key. Needs no secret material.
    """
    if len(ciphertexts) != len(chosen_indices):
        raise ParameterMismatch(
            f"Got {len(ciphertexts)} ciphertexts for {len(chosen_indices)} indices"
        )
    points = validate_selection(chosen_indices, threshold, known_indices)
    return inner_product(ciphertexts, lagrange_coefficients(points))


def decrypt_to_point(secret_key: FieldLike, ciphertext: Ciphertext) -> GroupElement:
    """Strip the mask: C2 - sk*C1 = m*G."""
    return ciphertext.c2 - ciphertext.c1 * to_field(secret_key)


@lru_cache(maxsize=4)
def _baby_steps(count: int) -> dict[bytes, int]:
    table = {}
    point = GroupElement.identity()
    g = GroupElement.generator()
    for j in range(count):
        table[point.to_bytes()] = j
        point = point + g
    return table


def decode(point: GroupElement, bound: int = DEFAULT_DECODE_BOUND) -> FieldElement:
    """Find m in [0, bound) with m*G == point, by baby-step/giant-step."""
    if bound < 1:
        raise InvalidParameters(f"Decode bound must be positive, got {bound}")
    baby = _BABY_STEPS if bound >= _BABY_STEPS else bound
    table = _baby_steps(baby)
    giant = -GroupElement.base_mul(baby)
    giant_steps = -(-bound // baby)
    candidate = point
    for i in range(giant_steps):
        j = table.get(candidate.to_bytes())
        if j is not None:
            m = i * baby + j
            if m < bound:
                return FieldElement(m)
            break
        candidate = candidate + giant
    raise DecodeFailure(f"Decrypted value is outside [0, {bound})")


def decrypt(secret_key: FieldLike, ciphertext: Ciphertext, bound: int = DEFAULT_DECODE_BOUND) -> FieldElement:
    """Decrypt and decode a plaintext known to lie in [0, bound)."""
    return decode(decrypt_to_point(secret_key, ciphertext), bound)
