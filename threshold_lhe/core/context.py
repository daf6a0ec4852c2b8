"""Immutable per-trade system parameters."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from threshold_lhe.core.field import FIELD_MODULUS, FieldElement, FieldLike, to_field
from threshold_lhe.core.group import GENERATOR, GroupElement
from threshold_lhe.core.hybrid import AEAD_ALGORITHM, ALGORITHMS
from threshold_lhe.errors import InvalidParameters, UnknownIndex

log = structlog.get_logger()

MAX_NODES = 20


@dataclass(frozen=True)
class ThresholdContext:
    """Committee size, threshold, node indices and the fixed group parameters.

    Build it with ``ThresholdContext.create`` (or ``ThresholdPKE.gen_context``),
    which validates every field; the instance is then safe to share.
    """

    total_nodes: int
    threshold: int
    indices: tuple[FieldElement, ...]
    aead_algorithm: str = AEAD_ALGORITHM
    field_modulus: int = FIELD_MODULUS
    generator: GroupElement = GENERATOR

    @classmethod
    def create(
        cls,
        total_nodes: int,
        threshold: int,
        indices: Sequence[FieldLike],
        aead_algorithm: str = AEAD_ALGORITHM,
    ) -> ThresholdContext:
        if any(not isinstance(v, int) or isinstance(v, bool) for v in (total_nodes, threshold)):
            raise InvalidParameters("total_nodes and threshold must be integers")
        if not 1 <= total_nodes <= MAX_NODES:
            raise InvalidParameters(f"total_nodes must be in [1, {MAX_NODES}], got {total_nodes}")
        if not 1 <= threshold <= total_nodes:
            raise InvalidParameters(f"threshold must be in [1, {total_nodes}], got {threshold}")
        if len(indices) != total_nodes:
            raise InvalidParameters(f"Expected {total_nodes} indices, got {len(indices)}")
        if aead_algorithm not in ALGORITHMS:
            raise InvalidParameters(f"Unsupported AEAD algorithm {aead_algorithm!r}")

        points = []
        for raw in indices:
            try:
                idx = to_field(raw)
            except TypeError as e:
                raise InvalidParameters(str(e)) from e
            if idx.is_zero():
                raise InvalidParameters("Node indices must be nonzero")
            if idx in points:
                raise InvalidParameters(f"Duplicate node index {idx.value}")
            points.append(idx)

        ctx = cls(
            total_nodes=total_nodes,
            threshold=threshold,
            indices=tuple(points),
            aead_algorithm=aead_algorithm,
        )
        log.info("context_created", total_nodes=total_nodes, threshold=threshold, aead=aead_algorithm)
        return ctx

    @property
    def n(self) -> int:
        return self.total_nodes

    @property
    def t(self) -> int:
        return self.threshold

    def position(self, index: FieldLike) -> int:
        """Position of ``index`` in the context's index order."""
        idx = to_field(index)
        try:
            return self.indices.index(idx)
        except ValueError:
            raise UnknownIndex(idx.value)

    def has_index(self, index: FieldLike) -> bool:
        return to_field(index) in self.indices
