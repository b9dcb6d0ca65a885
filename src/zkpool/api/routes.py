"""REST API endpoints exposing a Pool."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from zkpool import __version__
from zkpool.core.pool import Pool
from zkpool.crypto.verifier import Groth16Proof
from zkpool.exceptions import (
    CommitmentReusedError,
    NullifierAlreadyUsedError,
    ReentrancyError,
    ZKPoolException,
)
from zkpool.models.schemas import (
    DepositRequest,
    DepositResponse,
    PoolState,
    WithdrawalRequest,
    WithdrawalResponse,
    WithdrawalState,
)
from zkpool.storage import EventStore
from zkpool.utils.encoding import field_to_hex, parse_field

logger = logging.getLogger(__name__)

# one-time-use and lock conflicts are 409, everything else the caller sent is 400
CONFLICT_ERRORS = (CommitmentReusedError, NullifierAlreadyUsedError, ReentrancyError)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
    version: str = __version__


class RootStatusResponse(BaseModel):
    root: str
    known: bool


class UsageResponse(BaseModel):
    value: str
    used: bool


def _parse(value: str, name: str) -> int:
    try:
        return parse_field(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} is not a number: {value}")


def create_app(pool: Pool, store: Optional[EventStore] = None) -> FastAPI:
    """
    Build the HTTP application around an existing pool.

    Args:
        pool: Pool instance served by this app
        store: Optional event store subscribed to pool events
    """
    app = FastAPI(
        title="ZK Pool REST API",
        description="Fixed-denomination pool with proof-gated withdrawals",
        version=__version__,
    )

    if store is not None:
        pool.subscribe(store.handle_event)

    @app.exception_handler(ZKPoolException)
    async def pool_exception_handler(request: Request, exc: ZKPoolException):
        status = 409 if isinstance(exc, CONFLICT_ERRORS) else 400
        return JSONResponse(status_code=status, content={"detail": str(exc), "code": exc.code})

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(status="operational")

    @app.get("/state", response_model=PoolState)
    async def state():
        return pool.get_state()

    @app.post("/deposit", response_model=DepositResponse)
    async def deposit(request: DepositRequest):
        commitment = _parse(request.commitment, "commitment")
        event = pool.deposit(commitment, request.amount)
        return DepositResponse(
            commitment=field_to_hex(event.commitment),
            leaf_index=event.leaf_index,
            tree_path=[field_to_hex(node) for node in event.tree_path],
            hash_directions=event.hash_directions,
            root=field_to_hex(event.root),
            timestamp=event.timestamp,
        )

    @app.post("/withdraw", response_model=WithdrawalResponse)
    async def withdraw(request: WithdrawalRequest):
        try:
            proof = Groth16Proof.from_dict(request.proof.model_dump())
            claimant = request.claimant
            root = parse_field(request.root)
            nullifier_hash = parse_field(request.nullifier_hash)
        except (ValueError, IndexError) as e:
            raise HTTPException(status_code=400, detail=f"Malformed withdrawal request: {e}")

        try:
            event = pool.withdraw(proof, root, nullifier_hash, claimant)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return WithdrawalResponse(
            nullifier_hash=field_to_hex(event.nullifier_hash),
            claimant=event.claimant,
            amount=event.amount,
            status=WithdrawalState.PAID,
            timestamp=event.timestamp,
        )

    @app.get("/roots")
    async def roots():
        return {
            "roots": [field_to_hex(r) for r in pool.root_history_window()],
            "size": pool.root_history_size,
        }

    @app.get("/roots/{root}", response_model=RootStatusResponse)
    async def root_status(root: str):
        return RootStatusResponse(root=root, known=pool.is_known_root(_parse(root, "root")))

    @app.get("/commitments/{commitment}", response_model=UsageResponse)
    async def commitment_status(commitment: str):
        return UsageResponse(value=commitment, used=pool.is_commitment_used(_parse(commitment, "commitment")))

    @app.get("/nullifiers/{nullifier_hash}", response_model=UsageResponse)
    async def nullifier_status(nullifier_hash: str):
        return UsageResponse(value=nullifier_hash, used=pool.is_spent(_parse(nullifier_hash, "nullifier hash")))

    return app
