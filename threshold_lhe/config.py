"""Protocol configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from threshold_lhe.core.context import MAX_NODES
from threshold_lhe.core.hybrid import AEAD_ALGORITHM, ALGORITHMS
from threshold_lhe.utils.encoding import KEY_BYTES, LIMB_BITS, LIMB_COUNT

load_dotenv()


def _int_env(key: str, default: str) -> int:
    val = os.getenv(key, default)
    try:
        return int(val)
    except (ValueError, TypeError, OverflowError):
        raise ValueError(f"Invalid integer for {key}: {val!r}")


@dataclass(frozen=True)
class Config:
    # Symmetric layer
    aead_algorithm: str = os.getenv("TPKE_AEAD", AEAD_ALGORITHM)

    # Committee defaults used when a caller does not pick n/t explicitly
    default_nodes: int = _int_env("TPKE_DEFAULT_NODES", "3")
    default_threshold: int = _int_env("TPKE_DEFAULT_THRESHOLD", "2")

    # Protocol constants
    max_nodes: int = MAX_NODES
    key_bytes: int = KEY_BYTES
    limb_bits: int = LIMB_BITS

    @property
    def limb_count(self) -> int:
        return LIMB_COUNT

    def validate(self, *, strict: bool = False) -> list[str]:
        """Validate config. Returns list of warnings (empty = all good).

        Args:
            strict: If True, raise ValueError on any warning.
        """
        warnings = []
        if self.aead_algorithm not in ALGORITHMS:
            raise ValueError(
                f"TPKE_AEAD must be one of {', '.join(sorted(ALGORITHMS))}, got {self.aead_algorithm!r}"
            )
        if not (1 <= self.default_nodes <= self.max_nodes):
            raise ValueError(f"TPKE_DEFAULT_NODES must be 1-{self.max_nodes}, got {self.default_nodes}")
        if not (1 <= self.default_threshold <= self.default_nodes):
            raise ValueError(
                f"TPKE_DEFAULT_THRESHOLD must be 1-{self.default_nodes}, got {self.default_threshold}"
            )
        if self.default_threshold == 1:
            warnings.append("TPKE_DEFAULT_THRESHOLD=1 lets any single node recover the key")
        elif self.default_threshold == self.default_nodes and self.default_nodes > 1:
            warnings.append("TPKE_DEFAULT_THRESHOLD equals TPKE_DEFAULT_NODES; one offline node blocks every trade")
        if strict and warnings:
            raise ValueError("Config validation failed in strict mode:\n" + "\n".join(f"  - {w}" for w in warnings))
        return warnings
