"""Tests for the BN254 G1 group wrapper and its point encoding."""

import pytest
from py_ecc.optimized_bn128 import field_modulus

from threshold_lhe.core.field import FIELD_MODULUS, FieldElement
from threshold_lhe.core.group import GENERATOR, POINT_BYTES, GroupElement
from threshold_lhe.errors import EncodingError


class TestGroupArithmetic:
    def test_base_mul_matches_generic_mul(self) -> None:
        k = FieldElement.random()
        assert GroupElement.base_mul(k) == GENERATOR * k

    def test_base_mul_edge_scalars(self) -> None:
        for k in (1, 2, (1 << 253) - 1, 1 << 253, FIELD_MODULUS - 1):
            assert GroupElement.base_mul(k) == GENERATOR * k

    def test_scalar_mul_distributes(self) -> None:
        a, b = FieldElement(123456789), FieldElement(987654321)
        assert GroupElement.base_mul(a + b) == GroupElement.base_mul(a) + GroupElement.base_mul(b)

    def test_group_order(self) -> None:
        assert (GENERATOR * (FIELD_MODULUS - 1)) + GENERATOR == GroupElement.identity()

    def test_subtract_self_is_identity(self) -> None:
        p = GroupElement.base_mul(55)
        assert (p - p).is_identity()

    def test_negation(self) -> None:
        p = GroupElement.base_mul(8)
        assert -p == GroupElement.base_mul(-8)

    def test_zero_scalar(self) -> None:
        assert (GENERATOR * 0).is_identity()
        assert GroupElement.base_mul(0).is_identity()

    def test_field_element_left_multiplication(self) -> None:
        assert FieldElement(3) * GENERATOR == GENERATOR + GENERATOR + GENERATOR

    def test_identity_is_neutral(self) -> None:
        p = GroupElement.base_mul(99)
        assert p + GroupElement.identity() == p


class TestGroupEncoding:
    def test_generator_encoding(self) -> None:
        # G1 generator is (1, 2): x = 1, y even
        assert GENERATOR.to_bytes() == (1).to_bytes(POINT_BYTES, "big")

    def test_roundtrip(self) -> None:
        p = GroupElement.base_mul(FieldElement.random())
        assert GroupElement.from_bytes(p.to_bytes()) == p

    def test_negation_flips_parity_flag(self) -> None:
        p = GroupElement.base_mul(FieldElement.random())
        a, b = p.to_bytes(), (-p).to_bytes()
        assert a[0] ^ b[0] == 0x40
        assert a[1:] == b[1:]
        assert GroupElement.from_bytes(b) == -p

    def test_identity_roundtrip(self) -> None:
        encoded = GroupElement.identity().to_bytes()
        assert encoded == b"\x80" + bytes(31)
        assert GroupElement.from_bytes(encoded).is_identity()

    def test_noncanonical_identity_rejected(self) -> None:
        with pytest.raises(EncodingError, match="infinity"):
            GroupElement.from_bytes(b"\x80" + bytes(30) + b"\x01")

    def test_wrong_length_rejected(self) -> None:
        with pytest.raises(EncodingError):
            GroupElement.from_bytes(bytes(33))

    def test_unreduced_x_rejected(self) -> None:
        with pytest.raises(EncodingError, match="not reduced"):
            GroupElement.from_bytes(field_modulus.to_bytes(POINT_BYTES, "big"))

    def test_point_off_curve_rejected(self) -> None:
        x = 0
        while pow((x**3 + 3) % field_modulus, (field_modulus - 1) // 2, field_modulus) == 1:
            x += 1
        with pytest.raises(EncodingError, match="not on the curve"):
            GroupElement.from_bytes(x.to_bytes(POINT_BYTES, "big"))

    def test_hash_consistent_with_equality(self) -> None:
        a = GroupElement.base_mul(5)
        b = GENERATOR * 5
        assert a == b
        assert hash(a) == hash(b)
