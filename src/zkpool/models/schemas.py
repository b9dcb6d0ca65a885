"""Pydantic data models for pool events, state and API payloads."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WithdrawalState(str, Enum):
    """Withdrawal state machine."""

    PENDING = "pending"
    ROOT_CHECKED = "root_checked"
    NULLIFIER_CHECKED = "nullifier_checked"
    PROOF_VERIFIED = "proof_verified"
    PAID = "paid"
    REJECTED = "rejected"


class DepositEvent(BaseModel):
    """Emitted after a deposit commits."""

    model_config = ConfigDict(frozen=True)

    commitment: int = Field(..., description="Inserted commitment")
    leaf_index: int = Field(..., ge=0, description="Index of the new leaf")
    tree_path: List[int] = Field(..., description="levels + 1 nodes, leaf first, root last")
    hash_directions: List[int] = Field(..., description="levels bits, 1 = node hashed as right input")
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def root(self) -> int:
        return self.tree_path[-1]


class WithdrawalEvent(BaseModel):
    """Emitted after a withdrawal pays out."""

    model_config = ConfigDict(frozen=True)

    nullifier_hash: int
    root: int
    amount: int = Field(..., gt=0)
    claimant: Optional[str] = Field(default=None, description="Omitted when claimant emission is off")
    timestamp: datetime = Field(default_factory=datetime.now)


class PoolState(BaseModel):
    """Read-only snapshot of pool state."""

    levels: int
    denomination: int
    next_index: int
    capacity: int
    last_root: Optional[str] = Field(default=None, description="Latest root (hex)")
    root_history: List[str] = Field(default_factory=list, description="Roots in window, oldest first (hex)")
    root_history_size: int
    num_commitments: int
    num_nullifiers: int
    balance: int = 0


class ProofPayload(BaseModel):
    """Groth16 proof points as hex or decimal strings."""

    a: List[str] = Field(..., min_length=2, max_length=2)
    b: List[List[str]] = Field(..., min_length=2, max_length=2)
    c: List[str] = Field(..., min_length=2, max_length=2)


class DepositRequest(BaseModel):
    """Request model for deposit operations."""

    commitment: str = Field(..., description="Commitment (hex)")
    amount: int = Field(..., ge=0, description="Value sent with the deposit")


class DepositResponse(BaseModel):
    """Response model for deposit operations."""

    commitment: str
    leaf_index: int
    tree_path: List[str]
    hash_directions: List[int]
    root: str
    timestamp: datetime


class WithdrawalRequest(BaseModel):
    """Request model for withdrawal operations."""

    proof: ProofPayload
    root: str = Field(..., description="Root the proof was built against (hex)")
    nullifier_hash: str = Field(..., description="Nullifier hash (hex)")
    claimant: str = Field(..., description="Recipient address")


class WithdrawalResponse(BaseModel):
    """Response model for withdrawal operations."""

    nullifier_hash: str
    claimant: Optional[str] = None
    amount: int
    status: WithdrawalState
    timestamp: datetime
