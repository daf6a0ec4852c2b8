"""Attachment point for zero-knowledge proofs on protocol outputs.

No proof system ships with the package. Every protocol output carries a
``proof`` field that is ``UNPROVEN`` unless a ``Prover`` was supplied, so a
proof system can be added later without changing the data flow.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Union

if TYPE_CHECKING:
    from threshold_lhe.core.context import ThresholdContext
    from threshold_lhe.core.group import GroupElement
    from threshold_lhe.core.lhe import Ciphertext


@dataclass(frozen=True)
class Unproven:
    """No proof attached."""

    attached = False


@dataclass(frozen=True)
class AttachedProof:
    """Opaque proof bytes produced by a named proof system."""

    system: str
    data: bytes
    attached = True


Proof = Union[Unproven, AttachedProof]

UNPROVEN = Unproven()


class Prover(Protocol):
    """Hooks a proof system implements to attach proofs to protocol outputs."""

    def prove_sharing(
        self,
        ctx: ThresholdContext,
        node_public_keys: Sequence[GroupElement],
        node_limbs: Sequence[Sequence[Ciphertext]],
    ) -> AttachedProof:
        """Prove the per-node ciphertexts are consistent shares of one value."""
        ...

    def prove_re_encryption(
        self,
        ctx: ThresholdContext,
        source: Sequence[Ciphertext],
        result: Sequence[Ciphertext],
        source_public_key: GroupElement,
        target_public_key: GroupElement,
    ) -> AttachedProof:
        """Prove ``result`` re-encrypts ``source`` toward ``target_public_key``."""
        ...
