"""Threshold linearly-homomorphic encryption for one-time data publication."""

from threshold_lhe.core.context import MAX_NODES, ThresholdContext
from threshold_lhe.core.field import FIELD_MODULUS, FieldElement
from threshold_lhe.core.group import GENERATOR, GroupElement
from threshold_lhe.core.hybrid import AEAD_ALGORITHM, SymmetricCiphertext
from threshold_lhe.core.lhe import Ciphertext, KeyPair
from threshold_lhe.core.proofs import UNPROVEN, AttachedProof
from threshold_lhe.core.protocol import (
    CombinedCiphertext,
    NodeCiphertext,
    ReEncryptedCiphertext,
    SealedMessage,
    ThresholdPKE,
)
from threshold_lhe.core.sharing import ShamirShare
from threshold_lhe.core.trade import Trade, TradeStatus
from threshold_lhe.utils.encoding import KEY_BYTES, LIMB_BITS, LIMB_COUNT

__all__ = [
    "AEAD_ALGORITHM",
    "FIELD_MODULUS",
    "GENERATOR",
    "KEY_BYTES",
    "LIMB_BITS",
    "LIMB_COUNT",
    "MAX_NODES",
    "UNPROVEN",
    "AttachedProof",
    "Ciphertext",
    "CombinedCiphertext",
    "FieldElement",
    "GroupElement",
    "KeyPair",
    "NodeCiphertext",
    "ReEncryptedCiphertext",
    "SealedMessage",
    "ShamirShare",
    "SymmetricCiphertext",
    "ThresholdContext",
    "ThresholdPKE",
    "Trade",
    "TradeStatus",
]
