"""Main package initialization."""

__version__ = "0.1.0"
__description__ = "Fixed-denomination ZK pool: incremental Merkle accumulator with proof-gated withdrawals"

from .config import PoolConfig, PoolSettings, configure_logging
from .core.merkle_tree import MerkleAccumulator, MerkleProof, build_merkle_proof
from .core.root_history import RootHistory
from .core.nullifier import DoubleSpendGuard
from .core.ledger import InMemoryLedger
from .core.pool import Pool
from .models.schemas import DepositEvent, WithdrawalEvent, WithdrawalState

__all__ = [
    "PoolConfig",
    "PoolSettings",
    "configure_logging",
    "MerkleAccumulator",
    "MerkleProof",
    "build_merkle_proof",
    "RootHistory",
    "DoubleSpendGuard",
    "InMemoryLedger",
    "Pool",
    "DepositEvent",
    "WithdrawalEvent",
    "WithdrawalState",
]
