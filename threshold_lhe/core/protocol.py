"""Seller / node / aggregator / buyer protocol for one-time data publication.

1. Seller: ``encrypt_bytes`` draws an ephemeral AEAD key, Shamir-shares it
   (limb by limb) across the committee, encrypts share j under node j's key
   and AEAD-encrypts the message. The key is wiped afterwards.
2. Node: ``re_encrypt`` moves its own ciphertext to the buyer's key without
   decrypting it.
3. Aggregator: ``combine`` takes >= t re-encryptions and applies Lagrange
   weights homomorphically, yielding an encryption of the key under the
   buyer's key. It holds no secrets.
4. Buyer: ``decrypt_bytes`` recovers the key and opens the payload.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import structlog

from threshold_lhe.config import Config
from threshold_lhe.core import hybrid, lhe
from threshold_lhe.core.context import ThresholdContext
from threshold_lhe.core.field import SCALAR_BYTES, FieldElement, FieldLike, to_field
from threshold_lhe.core.group import POINT_BYTES, GroupElement
from threshold_lhe.core.hybrid import SymmetricCiphertext
from threshold_lhe.core.lhe import CIPHERTEXT_BYTES, Ciphertext, KeyPair
from threshold_lhe.core.proofs import UNPROVEN, Proof, Prover
from threshold_lhe.core.sharing import lagrange_coefficients, split, validate_selection
from threshold_lhe.errors import (
    DecryptionFailure,
    EncodingError,
    InvalidParameters,
    InvalidSecretKey,
    ParameterMismatch,
    TPKEError,
)
from threshold_lhe.utils.encoding import LIMB_BOUND, LIMB_COUNT, key_to_limbs, limbs_to_key, split_fixed

log = structlog.get_logger()

KEY_CIPHERTEXT_BYTES = LIMB_COUNT * CIPHERTEXT_BYTES


def _encode_limbs(limbs: Sequence[Ciphertext]) -> bytes:
    if len(limbs) != LIMB_COUNT:
        raise EncodingError(f"Expected {LIMB_COUNT} limb ciphertexts, got {len(limbs)}")
    return b"".join(ct.to_bytes() for ct in limbs)


def _decode_limbs(data: bytes) -> tuple[Ciphertext, ...]:
    return tuple(Ciphertext.from_bytes(chunk) for chunk in split_fixed(data, CIPHERTEXT_BYTES, LIMB_COUNT))


@dataclass(frozen=True)
class NodeCiphertext:
    """The seller's ciphertext for one node: its key share, limb by limb."""

    index: FieldElement
    public_key: GroupElement
    limbs: tuple[Ciphertext, ...]
    proof: Proof = UNPROVEN

    ENCODED_BYTES = SCALAR_BYTES + POINT_BYTES + KEY_CIPHERTEXT_BYTES

    def to_bytes(self) -> bytes:
        return self.index.to_bytes() + self.public_key.to_bytes() + _encode_limbs(self.limbs)

    @classmethod
    def from_bytes(cls, data: bytes) -> NodeCiphertext:
        if len(data) != cls.ENCODED_BYTES:
            raise EncodingError(f"NodeCiphertext must be {cls.ENCODED_BYTES} bytes, got {len(data)}")
        return cls(
            index=FieldElement.from_bytes(data[:SCALAR_BYTES]),
            public_key=GroupElement.from_bytes(data[SCALAR_BYTES : SCALAR_BYTES + POINT_BYTES]),
            limbs=_decode_limbs(data[SCALAR_BYTES + POINT_BYTES :]),
        )


@dataclass(frozen=True)
class ReEncryptedCiphertext:
    """One node's share, now encrypted under the buyer's key."""

    index: FieldElement
    target_public_key: GroupElement
    limbs: tuple[Ciphertext, ...]
    proof: Proof = UNPROVEN

    ENCODED_BYTES = SCALAR_BYTES + POINT_BYTES + KEY_CIPHERTEXT_BYTES

    def to_bytes(self) -> bytes:
        return self.index.to_bytes() + self.target_public_key.to_bytes() + _encode_limbs(self.limbs)

    @classmethod
    def from_bytes(cls, data: bytes) -> ReEncryptedCiphertext:
        if len(data) != cls.ENCODED_BYTES:
            raise EncodingError(f"ReEncryptedCiphertext must be {cls.ENCODED_BYTES} bytes, got {len(data)}")
        return cls(
            index=FieldElement.from_bytes(data[:SCALAR_BYTES]),
            target_public_key=GroupElement.from_bytes(data[SCALAR_BYTES : SCALAR_BYTES + POINT_BYTES]),
            limbs=_decode_limbs(data[SCALAR_BYTES + POINT_BYTES :]),
        )


@dataclass(frozen=True)
class CombinedCiphertext:
    """The ephemeral key encrypted under the buyer's key."""

    target_public_key: GroupElement
    limbs: tuple[Ciphertext, ...]
    proof: Proof = UNPROVEN

    ENCODED_BYTES = POINT_BYTES + KEY_CIPHERTEXT_BYTES

    def to_bytes(self) -> bytes:
        return self.target_public_key.to_bytes() + _encode_limbs(self.limbs)

    @classmethod
    def from_bytes(cls, data: bytes) -> CombinedCiphertext:
        if len(data) != cls.ENCODED_BYTES:
            raise EncodingError(f"CombinedCiphertext must be {cls.ENCODED_BYTES} bytes, got {len(data)}")
        return cls(
            target_public_key=GroupElement.from_bytes(data[:POINT_BYTES]),
            limbs=_decode_limbs(data[POINT_BYTES:]),
        )


@dataclass(frozen=True)
class SealedMessage:
    """Everything the seller publishes: n node ciphertexts plus the AEAD payload.

    Unpacks as ``(node_ciphertexts, nonce, payload_ciphertext)``.
    """

    node_ciphertexts: tuple[NodeCiphertext, ...]
    payload: SymmetricCiphertext
    proof: Proof = UNPROVEN

    @property
    def nonce(self) -> bytes:
        return self.payload.nonce

    @property
    def payload_ciphertext(self) -> bytes:
        return self.payload.ciphertext

    def __iter__(self) -> Iterator:
        return iter((self.node_ciphertexts, self.nonce, self.payload_ciphertext))


def _secret_scalar(secret_key: KeyPair | FieldLike) -> FieldElement:
    if isinstance(secret_key, KeyPair):
        return secret_key.secret_key
    return to_field(secret_key)


def _public_key(key: KeyPair | GroupElement) -> GroupElement:
    if isinstance(key, KeyPair):
        return key.public_key
    return key


class ThresholdPKE:
    """Stateless entry points for every role. All methods are pure functions of their arguments."""

    @staticmethod
    def gen_context(
        total_nodes: int | None = None,
        threshold: int | None = None,
        indices: Sequence[FieldLike] | None = None,
        aead_algorithm: str | None = None,
    ) -> ThresholdContext:
        """Validate committee parameters and build the shared context.

        Omitting both ``total_nodes`` and ``threshold`` uses the configured
        committee defaults (TPKE_DEFAULT_NODES / TPKE_DEFAULT_THRESHOLD),
        which are validated first. ``indices`` defaults to 1..n and
        ``aead_algorithm`` to TPKE_AEAD.
        """
        config = Config()
        if total_nodes is None and threshold is None:
            for warning in config.validate():
                log.warning("config_warning", warning=warning)
            total_nodes, threshold = config.default_nodes, config.default_threshold
        elif total_nodes is None or threshold is None:
            raise InvalidParameters("total_nodes and threshold must be given together")
        if indices is None:
            if not isinstance(total_nodes, int) or isinstance(total_nodes, bool):
                raise InvalidParameters("total_nodes must be an integer")
            indices = range(1, total_nodes + 1)
        if aead_algorithm is None:
            aead_algorithm = config.aead_algorithm
        return ThresholdContext.create(total_nodes, threshold, indices, aead_algorithm)

    @staticmethod
    def gen_keypair(ctx: ThresholdContext | None = None) -> KeyPair:
        return lhe.gen_keypair(ctx)

    @staticmethod
    def gen_lagrange_coeffs(chosen_indices: Sequence[FieldLike]) -> list[FieldElement]:
        return lagrange_coefficients(chosen_indices)

    @staticmethod
    def encrypt(
        ctx: ThresholdContext,
        node_public_keys: Sequence[KeyPair | GroupElement],
        plaintext_limbs: Sequence[FieldLike],
    ) -> list[NodeCiphertext]:
        """Share each plaintext limb across the committee and encrypt share j to node j.

        Every limb must be decodable, i.e. in [0, 2^16), for the buyer to
        recover it; ``encrypt_bytes`` guarantees this for the key limbs.
        """
        pks = [_public_key(pk) for pk in node_public_keys]
        if len(pks) != ctx.total_nodes:
            log.warning("public_key_count_mismatch", expected=ctx.total_nodes, got=len(pks))
            raise ParameterMismatch(f"Expected {ctx.total_nodes} node public keys, got {len(pks)}")
        for pk in pks:
            if not isinstance(pk, GroupElement) or pk.is_identity():
                raise InvalidParameters("Node public keys must be non-identity group elements")
        values = [to_field(limb) for limb in plaintext_limbs]
        for limb in values:
            if limb.value >= LIMB_BOUND:
                raise InvalidParameters(f"Plaintext limb {limb.value} is outside [0, {LIMB_BOUND})")

        per_node: list[list[Ciphertext]] = [[] for _ in range(ctx.total_nodes)]
        for limb in values:
            shares = split(limb, ctx.indices, ctx.threshold)
            for j, share in enumerate(shares):
                per_node[j].append(lhe.encrypt(pks[j], share.value))

        return [
            NodeCiphertext(index=idx, public_key=pk, limbs=tuple(limbs))
            for idx, pk, limbs in zip(ctx.indices, pks, per_node)
        ]

    @staticmethod
    def encrypt_bytes(
        ctx: ThresholdContext,
        node_public_keys: Sequence[KeyPair | GroupElement],
        message: bytes,
        associated_data: bytes | None = None,
        prover: Prover | None = None,
    ) -> SealedMessage:
        """Seller side: hybrid-encrypt ``message`` for the committee."""
        if len(node_public_keys) != ctx.total_nodes:
            log.warning("public_key_count_mismatch", expected=ctx.total_nodes, got=len(node_public_keys))
            raise ParameterMismatch(f"Expected {ctx.total_nodes} node public keys, got {len(node_public_keys)}")

        key = hybrid.generate_key()
        try:
            node_cts = ThresholdPKE.encrypt(ctx, node_public_keys, key_to_limbs(key))
            payload = hybrid.encrypt(key, message, associated_data, ctx.aead_algorithm)
        finally:
            hybrid.wipe(key)

        proof: Proof = UNPROVEN
        if prover is not None:
            proof = prover.prove_sharing(
                ctx, [ct.public_key for ct in node_cts], [ct.limbs for ct in node_cts]
            )

        log.info("message_sealed", nodes=ctx.total_nodes, threshold=ctx.threshold, payload_bytes=len(message))
        return SealedMessage(node_ciphertexts=tuple(node_cts), payload=payload, proof=proof)

    @staticmethod
    def re_encrypt(
        ctx: ThresholdContext,
        node_ciphertext: NodeCiphertext,
        node_secret_key: KeyPair | FieldLike,
        buyer_public_key: KeyPair | GroupElement,
        prover: Prover | None = None,
    ) -> ReEncryptedCiphertext:
        """Node side: blind-transform this node's ciphertext toward the buyer.

        Fresh randomness on every call, so two calls give different (but
        equally valid) outputs.
        """
        ctx.position(node_ciphertext.index)
        sk = _secret_scalar(node_secret_key)
        target = _public_key(buyer_public_key)
        try:
            lhe.verify_secret_key(sk, node_ciphertext.public_key)
        except InvalidSecretKey:
            log.warning("re_encrypt_key_mismatch", index=node_ciphertext.index.value)
            raise

        limbs = tuple(lhe.re_encrypt(ct, sk, target) for ct in node_ciphertext.limbs)

        proof: Proof = UNPROVEN
        if prover is not None:
            proof = prover.prove_re_encryption(
                ctx, node_ciphertext.limbs, limbs, node_ciphertext.public_key, target
            )

        log.info("node_re_encrypted", index=node_ciphertext.index.value)
        return ReEncryptedCiphertext(
            index=node_ciphertext.index,
            target_public_key=target,
            limbs=limbs,
            proof=proof,
        )

    @staticmethod
    def combine(
        ctx: ThresholdContext,
        re_encrypted_ciphertexts: Sequence[ReEncryptedCiphertext],
        chosen_indices: Sequence[FieldLike],
    ) -> CombinedCiphertext:
        """Aggregator side: homomorphic Lagrange interpolation of >= t re-encryptions.

        ``chosen_indices[i]`` must be the index of ``re_encrypted_ciphertexts[i]``.
        """
        if len(re_encrypted_ciphertexts) != len(chosen_indices):
            raise ParameterMismatch(
                f"Got {len(re_encrypted_ciphertexts)} re-encryptions for {len(chosen_indices)} indices"
            )
        points = validate_selection(chosen_indices, ctx.threshold, ctx.indices)

        target = re_encrypted_ciphertexts[0].target_public_key
        limb_count = len(re_encrypted_ciphertexts[0].limbs)
        for ct, idx in zip(re_encrypted_ciphertexts, points):
            if ct.index != idx:
                raise ParameterMismatch(f"Re-encryption from node {ct.index.value} listed as node {idx.value}")
            if ct.target_public_key != target:
                raise ParameterMismatch("Re-encryptions target different public keys")
            if len(ct.limbs) != limb_count:
                raise ParameterMismatch(
                    f"Re-encryption from node {idx.value} has {len(ct.limbs)} limbs, expected {limb_count}"
                )

        coeffs = lagrange_coefficients(points)
        limbs = tuple(
            lhe.inner_product([ct.limbs[k] for ct in re_encrypted_ciphertexts], coeffs)
            for k in range(limb_count)
        )
        log.info("shares_combined", contributors=len(points), indices=[p.value for p in points])
        return CombinedCiphertext(target_public_key=target, limbs=limbs)

    @staticmethod
    def decrypt(
        ctx: ThresholdContext,
        secret_key: KeyPair | FieldLike,
        combined: CombinedCiphertext,
    ) -> list[FieldElement]:
        """Recover the plaintext limbs; each must decode into [0, 2^16)."""
        sk = _secret_scalar(secret_key)
        return [lhe.decrypt(sk, ct, LIMB_BOUND) for ct in combined.limbs]

    @staticmethod
    def decrypt_bytes(
        ctx: ThresholdContext,
        buyer_secret_key: KeyPair | FieldLike,
        combined: CombinedCiphertext,
        nonce: bytes,
        payload_ciphertext: bytes,
        associated_data: bytes | None = None,
    ) -> bytes:
        """Buyer side: recover the ephemeral key, then open the payload.

        Raises:
            DecryptionFailure: wrapping DecodeFailure, AuthenticationFailure,
                or any other protocol error; ``cause`` holds the original.
        """
        try:
            limbs = ThresholdPKE.decrypt(ctx, buyer_secret_key, combined)
            key = limbs_to_key([limb.value for limb in limbs])
            try:
                return hybrid.decrypt(key, nonce, payload_ciphertext, associated_data, ctx.aead_algorithm)
            finally:
                hybrid.wipe(key)
        except TPKEError as e:
            log.warning("decryption_failed", reason=type(e).__name__)
            raise DecryptionFailure(f"Decryption failed: {e}", cause=e) from e
