"""Per-trade lifecycle tracking.

Wraps the stateless ``ThresholdPKE`` calls in the order a trade goes through:

    CONTEXT_CREATED -> KEYS_REGISTERED -> ENCRYPTED -> PARTIALLY_RE_ENCRYPTED*
        -> COMBINED -> DECRYPTED

The tracker only ever sees public material. Node and buyer secret keys are
passed straight through to the call that needs them and are not stored.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum, auto

import structlog

from threshold_lhe.core.context import ThresholdContext
from threshold_lhe.core.field import FieldElement, FieldLike, to_field
from threshold_lhe.core.group import GroupElement
from threshold_lhe.core.lhe import KeyPair
from threshold_lhe.core.protocol import (
    CombinedCiphertext,
    NodeCiphertext,
    ReEncryptedCiphertext,
    SealedMessage,
    ThresholdPKE,
)
from threshold_lhe.errors import DuplicateIndex, InsufficientShares, InvalidTransition, ParameterMismatch, TPKEError

log = structlog.get_logger()


class TradeStatus(Enum):
    CONTEXT_CREATED = auto()
    KEYS_REGISTERED = auto()
    ENCRYPTED = auto()
    PARTIALLY_RE_ENCRYPTED = auto()
    COMBINED = auto()
    DECRYPTED = auto()
    FAILED = auto()


@dataclass
class Trade:
    """Tracks one message from publication to the buyer opening it."""

    ctx: ThresholdContext
    status: TradeStatus = TradeStatus.CONTEXT_CREATED
    node_public_keys: tuple[GroupElement, ...] = ()
    buyer_public_key: GroupElement | None = None
    sealed: SealedMessage | None = None
    re_encryptions: dict[FieldElement, ReEncryptedCiphertext] = field(default_factory=dict)
    combined: CombinedCiphertext | None = None
    created_at: float = field(default_factory=time.time)
    completed_at: float | None = None

    def _require(self, *allowed: TradeStatus) -> None:
        if self.status not in allowed:
            raise InvalidTransition(
                f"Trade is {self.status.name}, expected one of {', '.join(s.name for s in allowed)}"
            )

    def _fail(self, reason: str) -> None:
        self.status = TradeStatus.FAILED
        self.completed_at = time.time()
        log.error("trade_failed", reason=reason)

    def register_keys(
        self,
        node_public_keys: Sequence[KeyPair | GroupElement],
        buyer_public_key: KeyPair | GroupElement | None = None,
    ) -> None:
        """Record the committee's public keys (in context index order)."""
        self._require(TradeStatus.CONTEXT_CREATED, TradeStatus.KEYS_REGISTERED)
        pks = tuple(pk.public_key if isinstance(pk, KeyPair) else pk for pk in node_public_keys)
        if len(pks) != self.ctx.total_nodes:
            raise ParameterMismatch(f"Expected {self.ctx.total_nodes} node public keys, got {len(pks)}")
        self.node_public_keys = pks
        if buyer_public_key is not None:
            self.set_buyer(buyer_public_key)
        self.status = TradeStatus.KEYS_REGISTERED
        log.info("trade_keys_registered", nodes=len(pks))

    def set_buyer(self, buyer_public_key: KeyPair | GroupElement) -> None:
        """Record who paid. Allowed until the first re-encryption arrives."""
        self._require(TradeStatus.CONTEXT_CREATED, TradeStatus.KEYS_REGISTERED, TradeStatus.ENCRYPTED)
        if isinstance(buyer_public_key, KeyPair):
            buyer_public_key = buyer_public_key.public_key
        self.buyer_public_key = buyer_public_key

    def seal(self, message: bytes, associated_data: bytes | None = None) -> SealedMessage:
        """Seller publishes the message for the registered committee."""
        self._require(TradeStatus.KEYS_REGISTERED)
        self.sealed = ThresholdPKE.encrypt_bytes(self.ctx, self.node_public_keys, message, associated_data)
        self.status = TradeStatus.ENCRYPTED
        return self.sealed

    def node_ciphertext(self, index: FieldLike) -> NodeCiphertext:
        """The published ciphertext assigned to the node at ``index``."""
        self._require(TradeStatus.ENCRYPTED, TradeStatus.PARTIALLY_RE_ENCRYPTED)
        return self.sealed.node_ciphertexts[self.ctx.position(index)]

    def submit_re_encryption(self, re_encrypted: ReEncryptedCiphertext) -> int:
        """Accept one node's contribution. Returns the number collected so far."""
        self._require(TradeStatus.ENCRYPTED, TradeStatus.PARTIALLY_RE_ENCRYPTED)
        if self.buyer_public_key is None:
            raise InvalidTransition("No buyer registered for this trade")
        self.ctx.position(re_encrypted.index)
        if re_encrypted.index in self.re_encryptions:
            log.warning("re_encryption_already_submitted", index=re_encrypted.index.value)
            raise DuplicateIndex(re_encrypted.index.value)
        if re_encrypted.target_public_key != self.buyer_public_key:
            log.warning("re_encryption_wrong_target", index=re_encrypted.index.value)
            raise ParameterMismatch("Re-encryption does not target the registered buyer")
        self.re_encryptions[re_encrypted.index] = re_encrypted
        self.status = TradeStatus.PARTIALLY_RE_ENCRYPTED
        log.info(
            "re_encryption_collected",
            index=re_encrypted.index.value,
            collected=len(self.re_encryptions),
            threshold=self.ctx.threshold,
        )
        return len(self.re_encryptions)

    @property
    def ready(self) -> bool:
        return len(self.re_encryptions) >= self.ctx.threshold

    def combine(self, chosen_indices: Sequence[FieldLike] | None = None) -> CombinedCiphertext:
        """Combine collected contributions.

        By default the first ``t`` to arrive are used; pass ``chosen_indices``
        to pick a different subset.
        """
        self._require(TradeStatus.PARTIALLY_RE_ENCRYPTED)
        if chosen_indices is None:
            if not self.ready:
                raise InsufficientShares(self.ctx.threshold, len(self.re_encryptions))
            chosen = list(self.re_encryptions)[: self.ctx.threshold]
        else:
            chosen = [to_field(i) for i in chosen_indices]
            for idx in chosen:
                self.ctx.position(idx)
        contributions = [self.re_encryptions[idx] for idx in chosen if idx in self.re_encryptions]
        if len(contributions) < len(chosen):
            missing = [idx.value for idx in chosen if idx not in self.re_encryptions]
            log.warning("combine_uncollected_indices", missing=missing)
            raise InsufficientShares(self.ctx.threshold, len(contributions))
        self.combined = ThresholdPKE.combine(self.ctx, contributions, chosen)
        self.status = TradeStatus.COMBINED
        return self.combined

    def open(self, buyer_secret_key: KeyPair | FieldLike, associated_data: bytes | None = None) -> bytes:
        """Buyer decrypts. A failure moves the trade to FAILED and re-raises."""
        self._require(TradeStatus.COMBINED)
        try:
            message = ThresholdPKE.decrypt_bytes(
                self.ctx,
                buyer_secret_key,
                self.combined,
                self.sealed.nonce,
                self.sealed.payload_ciphertext,
                associated_data,
            )
        except TPKEError as e:
            self._fail(type(e).__name__)
            raise
        self.status = TradeStatus.DECRYPTED
        self.completed_at = time.time()
        log.info("trade_complete", contributors=len(self.re_encryptions))
        return message
