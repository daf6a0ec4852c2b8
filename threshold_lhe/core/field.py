"""Arithmetic in the BN254 scalar field.

Indices, Shamir shares, private keys and encryption nonces are all elements
of this field. It is also the order of the BN254 G1 group, so a field
element can be used directly as a scalar multiplier on group points.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Union

from threshold_lhe.errors import EncodingError, NoInverse

# BN254 scalar field prime (order of the G1 group)
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617

SCALAR_BYTES = 32


@dataclass(frozen=True)
class FieldElement:
    """An integer modulo ``FIELD_MODULUS``. Any int is reduced on construction."""

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TypeError(f"FieldElement requires an int, got {type(self.value).__name__}")
        object.__setattr__(self, "value", self.value % FIELD_MODULUS)

    @classmethod
    def random(cls) -> FieldElement:
        return cls(secrets.randbelow(FIELD_MODULUS))

    @classmethod
    def random_nonzero(cls) -> FieldElement:
        """Uniform element of [1, p)."""
        return cls(secrets.randbelow(FIELD_MODULUS - 1) + 1)

    @classmethod
    def from_bytes(cls, data: bytes) -> FieldElement:
        """Decode a canonical 32-byte big-endian encoding (values >= p are rejected)."""
        if len(data) != SCALAR_BYTES:
            raise EncodingError(f"Field element must be {SCALAR_BYTES} bytes, got {len(data)}")
        value = int.from_bytes(data, "big")
        if value >= FIELD_MODULUS:
            raise EncodingError("Field element encoding is not reduced")
        return cls(value)

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(SCALAR_BYTES, "big")

    def is_zero(self) -> bool:
        return self.value == 0

    def inverse(self) -> FieldElement:
        """Multiplicative inverse via Fermat's little theorem: x^(p-2)."""
        if self.value == 0:
            raise NoInverse("Zero has no multiplicative inverse")
        return FieldElement(pow(self.value, FIELD_MODULUS - 2, FIELD_MODULUS))

    def __add__(self, other: FieldLike) -> FieldElement:
        o = _maybe_coerce(other)
        if o is None:
            return NotImplemented
        return FieldElement(self.value + o.value)

    __radd__ = __add__

    def __sub__(self, other: FieldLike) -> FieldElement:
        o = _maybe_coerce(other)
        if o is None:
            return NotImplemented
        return FieldElement(self.value - o.value)

    def __rsub__(self, other: FieldLike) -> FieldElement:
        o = _maybe_coerce(other)
        if o is None:
            return NotImplemented
        return FieldElement(o.value - self.value)

    def __mul__(self, other: FieldLike) -> FieldElement:
        o = _maybe_coerce(other)
        if o is None:
            return NotImplemented
        return FieldElement(self.value * o.value)

    __rmul__ = __mul__

    def __truediv__(self, other: FieldLike) -> FieldElement:
        o = _maybe_coerce(other)
        if o is None:
            return NotImplemented
        return self * o.inverse()

    def __rtruediv__(self, other: FieldLike) -> FieldElement:
        o = _maybe_coerce(other)
        if o is None:
            return NotImplemented
        return o * self.inverse()

    def __neg__(self) -> FieldElement:
        return FieldElement(-self.value)

    def __pow__(self, exponent: int) -> FieldElement:
        if exponent < 0:
            return self.inverse() ** (-exponent)
        return FieldElement(pow(self.value, exponent, FIELD_MODULUS))

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"FieldElement({self.value})"


FieldLike = Union[FieldElement, int]


def _maybe_coerce(value: object) -> FieldElement | None:
    if isinstance(value, FieldElement):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return FieldElement(value)
    return None


def _coerce(value: FieldLike) -> FieldElement:
    result = _maybe_coerce(value)
    if result is not None:
        return result
    raise TypeError(f"Cannot use {type(value).__name__} as a field element")


def to_field(value: FieldLike) -> FieldElement:
    """Accept an int or FieldElement and return a FieldElement."""
    return _coerce(value)


ZERO = FieldElement(0)
ONE = FieldElement(1)
