"""Shamir (t, n) secret sharing over the BN254 scalar field."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import structlog

from threshold_lhe.core.field import ONE, ZERO, FieldElement, FieldLike, to_field
from threshold_lhe.errors import DuplicateIndex, InsufficientShares, InvalidParameters, UnknownIndex

log = structlog.get_logger()


@dataclass(frozen=True)
class ShamirShare:
    """A single Shamir share: (index, value) where value = f(index) for secret polynomial f."""

    index: FieldElement
    value: FieldElement


def _normalize_indices(indices: Iterable[FieldLike]) -> list[FieldElement]:
    """Convert to field elements and reject zero or repeated indices."""
    seen: set[FieldElement] = set()
    result = []
    for raw in indices:
        idx = to_field(raw)
        if idx.is_zero():
            raise InvalidParameters("Node indices must be nonzero")
        if idx in seen:
            raise DuplicateIndex(idx.value)
        seen.add(idx)
        result.append(idx)
    return result


def _evaluate(coeffs: Sequence[FieldElement], x: FieldElement) -> FieldElement:
    # Horner, highest degree first
    acc = ZERO
    for c in reversed(coeffs):
        acc = acc * x + c
    return acc


def split(secret: FieldLike, indices: Sequence[FieldLike], t: int) -> list[ShamirShare]:
    """Split a secret into one share per index with reconstruction threshold t.

    Args:
        secret: The value to share (constant term of the polynomial).
        indices: Distinct nonzero evaluation points, one per share.
        t: Minimum number of shares needed to reconstruct.

    Returns:
        Shares in the same order as ``indices``.
    """
    points = _normalize_indices(indices)
    if not 1 <= t <= len(points):
        raise InvalidParameters(f"Threshold must be in [1, {len(points)}], got {t}")

    # a_0 = secret, a_1..a_{t-1} uniformly random
    coeffs = [to_field(secret)] + [FieldElement.random() for _ in range(t - 1)]
    return [ShamirShare(index=x, value=_evaluate(coeffs, x)) for x in points]


def lagrange_coefficients(chosen_indices: Sequence[FieldLike]) -> list[FieldElement]:
    """Lagrange basis values at x=0 for the given evaluation points.

    L_i(0) = prod_{j != i} (0 - x_j) / (x_i - x_j)
    """
    points = _normalize_indices(chosen_indices)
    coeffs = []
    for i, xi in enumerate(points):
        numerator = ONE
        denominator = ONE
        for j, xj in enumerate(points):
            if i == j:
                continue
            numerator = numerator * (-xj)
            denominator = denominator * (xi - xj)
        coeffs.append(numerator / denominator)
    return coeffs


def validate_selection(
    chosen_indices: Sequence[FieldLike],
    threshold: int,
    known_indices: Iterable[FieldLike] | None = None,
) -> list[FieldElement]:
    """Check a set of indices chosen for reconstruction.

    Raises DuplicateIndex, UnknownIndex (not in ``known_indices``), or
    InsufficientShares (fewer than ``threshold`` distinct indices).
    """
    points = []
    seen: set[FieldElement] = set()
    for raw in chosen_indices:
        idx = to_field(raw)
        if idx in seen:
            log.warning("duplicate_index", index=idx.value)
            raise DuplicateIndex(idx.value)
        seen.add(idx)
        points.append(idx)

    if known_indices is not None:
        known = {to_field(k) for k in known_indices}
        for idx in points:
            if idx not in known:
                log.warning("unknown_index", index=idx.value)
                raise UnknownIndex(idx.value)

    for idx in points:
        if idx.is_zero():
            raise UnknownIndex(0)

    if len(points) < threshold:
        log.warning("insufficient_shares", required=threshold, received=len(points))
        raise InsufficientShares(threshold, len(points))
    return points


def reconstruct(
    shares: Sequence[ShamirShare],
    chosen_indices: Sequence[FieldLike],
    threshold: int,
    known_indices: Iterable[FieldLike] | None = None,
) -> FieldElement:
    """Reconstruct the secret from the shares at ``chosen_indices``.

    Args:
        shares: Available shares; those not chosen are ignored.
        chosen_indices: Which shares to interpolate through (at least ``threshold``).
        threshold: The t the shares were split with.
        known_indices: If given, every chosen index must belong to this set.

    Returns:
        The constant term f(0).
    """
    points = validate_selection(chosen_indices, threshold, known_indices)
    by_index = {s.index: s for s in shares}
    for idx in points:
        if idx not in by_index:
            raise UnknownIndex(idx.value)

    secret = ZERO
    for idx, coeff in zip(points, lagrange_coefficients(points)):
        secret = secret + by_index[idx].value * coeff
    return secret
