"""The BN254 G1 group used by the homomorphic encryption layer.

Thin value-type wrapper over ``py_ecc.optimized_bn128`` points (projective
coordinates) with a canonical 32-byte compressed encoding. G1 has prime
order equal to the scalar field modulus and cofactor 1, so every point that
decodes onto the curve is in the prime-order group.
"""

from __future__ import annotations

from functools import lru_cache

from py_ecc.optimized_bn128 import FQ, G1, add, double, eq, field_modulus, multiply, neg, normalize
from py_ecc.optimized_bn128 import b as CURVE_B

from threshold_lhe.core.field import FIELD_MODULUS, FieldLike, to_field
from threshold_lhe.errors import EncodingError

POINT_BYTES = 32

_INFINITY_FLAG = 0x80
_Y_ODD_FLAG = 0x40
_FLAG_MASK = _INFINITY_FLAG | _Y_ODD_FLAG
_SCALAR_BITS = FIELD_MODULUS.bit_length()


def _infinity() -> tuple[FQ, FQ, FQ]:
    return (FQ.one(), FQ.one(), FQ.zero())


def _is_infinity(point: tuple[FQ, FQ, FQ]) -> bool:
    return point[2] == FQ.zero()


@lru_cache(maxsize=1)
def _generator_doublings() -> tuple[tuple[FQ, FQ, FQ], ...]:
    """2^i * G for every bit position of a scalar."""
    table = [G1]
    for _ in range(_SCALAR_BITS - 1):
        table.append(double(table[-1]))
    return tuple(table)


class GroupElement:
    """An immutable point of BN254 G1, written additively."""

    __slots__ = ("_point",)

    def __init__(self, point: tuple[FQ, FQ, FQ]) -> None:
        self._point = point

    @classmethod
    def generator(cls) -> GroupElement:
        return cls(G1)

    @classmethod
    def identity(cls) -> GroupElement:
        return cls(_infinity())

    @classmethod
    def base_mul(cls, scalar: FieldLike) -> GroupElement:
        """scalar * G using the precomputed doubling table.

        Every bit position performs the same addition and the result is
        selected by the bit, so the work done does not depend on the scalar.
        """
        k = to_field(scalar).value
        acc = _infinity()
        for i, power in enumerate(_generator_doublings()):
            candidates = (acc, add(acc, power))
            acc = candidates[(k >> i) & 1]
        return cls(acc)

    @classmethod
    def from_bytes(cls, data: bytes) -> GroupElement:
        """Decode a compressed point, validating that it lies on the curve."""
        if len(data) != POINT_BYTES:
            raise EncodingError(f"Group element must be {POINT_BYTES} bytes, got {len(data)}")
        flags = data[0] & _FLAG_MASK
        if flags & _INFINITY_FLAG:
            if data != bytes([_INFINITY_FLAG]) + bytes(POINT_BYTES - 1):
                raise EncodingError("Non-canonical encoding of the point at infinity")
            return cls.identity()

        x = int.from_bytes(bytes([data[0] & 0x3F]) + data[1:], "big")
        if x >= field_modulus:
            raise EncodingError("Point x-coordinate is not reduced")
        rhs = (pow(x, 3, field_modulus) + CURVE_B.n) % field_modulus
        # field_modulus = 3 mod 4, so a square root is rhs^((q+1)/4)
        y = pow(rhs, (field_modulus + 1) // 4, field_modulus)
        if y * y % field_modulus != rhs:
            raise EncodingError("Point is not on the curve")
        want_odd = bool(flags & _Y_ODD_FLAG)
        if (y & 1) != want_odd:
            if y == 0:
                raise EncodingError("Invalid y-parity flag")
            y = field_modulus - y
        return cls((FQ(x), FQ(y), FQ.one()))

    def to_bytes(self) -> bytes:
        if _is_infinity(self._point):
            return bytes([_INFINITY_FLAG]) + bytes(POINT_BYTES - 1)
        x, y = normalize(self._point)
        out = bytearray(x.n.to_bytes(POINT_BYTES, "big"))
        if y.n & 1:
            out[0] |= _Y_ODD_FLAG
        return bytes(out)

    def is_identity(self) -> bool:
        return _is_infinity(self._point)

    def __add__(self, other: GroupElement) -> GroupElement:
        if not isinstance(other, GroupElement):
            return NotImplemented
        return GroupElement(add(self._point, other._point))

    def __sub__(self, other: GroupElement) -> GroupElement:
        if not isinstance(other, GroupElement):
            return NotImplemented
        return GroupElement(add(self._point, neg(other._point)))

    def __neg__(self) -> GroupElement:
        return GroupElement(neg(self._point))

    def __mul__(self, scalar: FieldLike) -> GroupElement:
        k = to_field(scalar).value
        if k == 0 or _is_infinity(self._point):
            return GroupElement.identity()
        return GroupElement(multiply(self._point, k))

    __rmul__ = __mul__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GroupElement):
            return NotImplemented
        return eq(self._point, other._point)

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"GroupElement({self.to_bytes().hex()})"


GENERATOR = GroupElement.generator()
