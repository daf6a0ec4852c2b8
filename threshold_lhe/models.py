"""Pydantic envelopes for publishing protocol artifacts as JSON.

Binary values travel as hex. Each model checks the exact byte length of its
fields and converts to and from the core dataclasses; transport itself is
left to the embedding application.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from threshold_lhe.core.hybrid import NONCE_BYTES, TAG_BYTES, SymmetricCiphertext
from threshold_lhe.core.protocol import (
    CombinedCiphertext,
    NodeCiphertext,
    ReEncryptedCiphertext,
    SealedMessage,
)

_HEX_RE = re.compile(r"^(0x)?[0-9a-fA-F]+$")

MAX_PAYLOAD_HEX = 2 * 16 * 1024 * 1024


def _validate_hex(v: str, field_name: str, expected_bytes: int | None = None) -> str:
    if not _HEX_RE.match(v):
        raise ValueError(f"{field_name} must be a hex string")
    digits = v[2:] if v.startswith("0x") else v
    if len(digits) % 2:
        raise ValueError(f"{field_name} must have an even number of hex digits")
    if expected_bytes is not None and len(digits) != 2 * expected_bytes:
        raise ValueError(f"{field_name} must encode exactly {expected_bytes} bytes")
    return digits.lower()


def _bytes(v: str) -> bytes:
    return bytes.fromhex(v)


class NodeCiphertextModel(BaseModel):
    """One node's share ciphertext as published by the seller."""

    data: str

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: str) -> str:
        return _validate_hex(v, "data", NodeCiphertext.ENCODED_BYTES)

    @classmethod
    def from_domain(cls, ct: NodeCiphertext) -> NodeCiphertextModel:
        return cls(data=ct.to_bytes().hex())

    def to_domain(self) -> NodeCiphertext:
        return NodeCiphertext.from_bytes(_bytes(self.data))


class ReEncryptedCiphertextModel(BaseModel):
    """A node's re-encryption toward the buyer, as sent to the aggregator."""

    data: str

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: str) -> str:
        return _validate_hex(v, "data", ReEncryptedCiphertext.ENCODED_BYTES)

    @classmethod
    def from_domain(cls, ct: ReEncryptedCiphertext) -> ReEncryptedCiphertextModel:
        return cls(data=ct.to_bytes().hex())

    def to_domain(self) -> ReEncryptedCiphertext:
        return ReEncryptedCiphertext.from_bytes(_bytes(self.data))


class CombinedCiphertextModel(BaseModel):
    """The aggregator's output for the buyer."""

    data: str

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: str) -> str:
        return _validate_hex(v, "data", CombinedCiphertext.ENCODED_BYTES)

    @classmethod
    def from_domain(cls, ct: CombinedCiphertext) -> CombinedCiphertextModel:
        return cls(data=ct.to_bytes().hex())

    def to_domain(self) -> CombinedCiphertext:
        return CombinedCiphertext.from_bytes(_bytes(self.data))


class SealedMessageModel(BaseModel):
    """Everything the seller publishes for one trade."""

    node_ciphertexts: list[NodeCiphertextModel] = Field(min_length=1, max_length=20)
    nonce: str
    payload: str = Field(max_length=MAX_PAYLOAD_HEX)

    @field_validator("nonce")
    @classmethod
    def validate_nonce(cls, v: str) -> str:
        return _validate_hex(v, "nonce", NONCE_BYTES)

    @field_validator("payload")
    @classmethod
    def validate_payload(cls, v: str) -> str:
        v = _validate_hex(v, "payload")
        if len(v) < 2 * TAG_BYTES:
            raise ValueError("payload is shorter than the authentication tag")
        return v

    @classmethod
    def from_domain(cls, sealed: SealedMessage) -> SealedMessageModel:
        return cls(
            node_ciphertexts=[NodeCiphertextModel.from_domain(ct) for ct in sealed.node_ciphertexts],
            nonce=sealed.nonce.hex(),
            payload=sealed.payload_ciphertext.hex(),
        )

    def to_domain(self) -> SealedMessage:
        return SealedMessage(
            node_ciphertexts=tuple(m.to_domain() for m in self.node_ciphertexts),
            payload=SymmetricCiphertext(nonce=_bytes(self.nonce), ciphertext=_bytes(self.payload)),
        )
