"""Pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from zkpool.config import PoolConfig
from zkpool.core.ledger import InMemoryLedger
from zkpool.core.pool import Pool
from zkpool.crypto.hasher import Sha256FieldHasher
from zkpool.crypto.verifier import development_setup

DENOMINATION = 10**17
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
MALLORY = "0x" + "ee" * 20


@pytest.fixture
def hasher():
    """Cheap deterministic node hasher."""
    return Sha256FieldHasher()


@pytest.fixture
def setup_pair():
    """Matching development prover and verifier."""
    return development_setup(b"\x07" * 32)


@pytest.fixture
def prover(setup_pair):
    return setup_pair[0]


@pytest.fixture
def verifier(setup_pair):
    return setup_pair[1]


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def make_pool(hasher, verifier, ledger):
    """Factory for pools sharing the fixture collaborators."""

    def _make(levels: int = 4, emit_claimant: bool = True, **overrides) -> Pool:
        config = PoolConfig(levels=levels, denomination=DENOMINATION, emit_claimant=emit_claimant)
        return Pool(
            config,
            overrides.get("hasher", hasher),
            overrides.get("verifier", verifier),
            overrides.get("ledger", ledger),
        )

    return _make


@pytest.fixture
def pool(make_pool):
    """Depth-4 pool (16 leaves)."""
    return make_pool()
