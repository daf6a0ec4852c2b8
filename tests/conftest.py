"""Shared test fixtures for the threshold_lhe test suite."""

from __future__ import annotations

import os

# Pin protocol config so a local .env cannot change what the tests exercise.
os.environ["TPKE_AEAD"] = "chacha20-poly1305"
os.environ["TPKE_DEFAULT_NODES"] = "3"
os.environ["TPKE_DEFAULT_THRESHOLD"] = "2"

import pytest  # noqa: E402

from threshold_lhe.core.lhe import KeyPair, gen_keypair  # noqa: E402


@pytest.fixture(scope="session")
def node_keys() -> list[KeyPair]:
    """Keypairs for up to five committee members."""
    return [gen_keypair() for _ in range(5)]


@pytest.fixture(scope="session")
def buyer() -> KeyPair:
    return gen_keypair()


@pytest.fixture(scope="session")
def other_buyer() -> KeyPair:
    return gen_keypair()
