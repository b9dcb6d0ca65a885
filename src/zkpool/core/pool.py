"""Pool: deposit and withdrawal orchestration for a fixed-denomination pool.

The Pool owns every piece of mutable state (accumulator, root history,
double-spend guard, held balance) and is the only thing that mutates it.
Hash, proof verification and value transfer are injected collaborators.

Transaction Flow:

    DEPOSIT:
        1. Reject if the tree is full              -> CapacityExceededError
        2. Reject a commitment already deposited   -> CommitmentReusedError
        3. Reject a paid amount != denomination    -> WrongDenominationError
        4. Reject a commitment outside the field   -> OutOfFieldError
        5. Take the paid value into the ledger
        6. Insert commitment into the accumulator
        7. Record the new root in the root history
        8. Mark the commitment used
        9. Emit DepositEvent(commitment, tree_path, hash_directions)

    WITHDRAWAL (state machine):
        PENDING
          -> ROOT_CHECKED       root is in the history window
          -> NULLIFIER_CHECKED  nullifier hash not yet spent (checked only)
          -> PROOF_VERIFIED     verifier accepts [root, nullifier_hash, claimant]
          -> PAID               nullifier marked, denomination transferred
        any failure -> REJECTED, nothing changed

Cheap checks run before proof verification, and the nullifier is marked
only after the proof is accepted. Marking and payout are one unit: if the
transfer fails the nullifier is released again.

Every mutating entry point holds a non-reentrancy lock for its whole
duration, so a recipient called during payout cannot re-enter the pool.
"""

import logging
from contextlib import contextmanager
from typing import Callable, List, Optional, Sequence, Union

from zkpool.config import PoolConfig, PoolSettings
from zkpool.core.merkle_tree import MerkleAccumulator
from zkpool.core.nullifier import DoubleSpendGuard
from zkpool.core.ledger import ValueTransfer
from zkpool.core.root_history import RootHistory
from zkpool.crypto.hasher import Hasher, compute_default_nodes, get_hasher, zero_leaf
from zkpool.crypto.verifier import Groth16Proof, ProofVerifier, public_signals
from zkpool.exceptions import (
    CapacityExceededError,
    InvalidProofError,
    PayoutFailedError,
    ReentrancyError,
    StaleOrUnknownRootError,
    WithdrawalError,
    WrongDenominationError,
)
from zkpool.models.schemas import DepositEvent, PoolState, WithdrawalEvent, WithdrawalState
from zkpool.utils.encoding import field_to_hex, normalize_address, short_hex
from zkpool.utils.field import check_in_field

logger = logging.getLogger(__name__)

PoolEvent = Union[DepositEvent, WithdrawalEvent]
EventListener = Callable[[PoolEvent], None]


class WithdrawalFlow:
    """Tracks one withdrawal request through the state machine."""

    _ORDER = [
        WithdrawalState.PENDING,
        WithdrawalState.ROOT_CHECKED,
        WithdrawalState.NULLIFIER_CHECKED,
        WithdrawalState.PROOF_VERIFIED,
        WithdrawalState.PAID,
    ]

    def __init__(self, nullifier_hash: int):
        self.nullifier_hash = nullifier_hash
        self.state = WithdrawalState.PENDING

    def advance(self, state: WithdrawalState) -> None:
        expected = self._ORDER[self._ORDER.index(self.state) + 1]
        if state != expected:
            raise RuntimeError(f"Illegal withdrawal transition {self.state.value} -> {state.value}")
        logger.debug(f"Withdrawal {short_hex(self.nullifier_hash)}: {self.state.value} -> {state.value}")
        self.state = state

    def reject(self, error: WithdrawalError) -> None:
        error.reached_state = self.state
        logger.warning(
            f"Withdrawal {short_hex(self.nullifier_hash)} rejected "
            f"after {self.state.value}: {error.code}"
        )
        self.state = WithdrawalState.REJECTED


class Pool:
    """
    Fixed-denomination anonymity pool.

    Collaborators:
        hasher:   node combiner used by the accumulator
        verifier: ProofVerifier over [root, nullifier_hash, claimant]
        ledger:   value custody, ``receive(amount)`` and
                  ``transfer(to, amount) -> bool``
    """

    def __init__(
        self,
        config: PoolConfig,
        hasher: Hasher,
        verifier: ProofVerifier,
        ledger: ValueTransfer,
        default_nodes: Optional[Sequence[int]] = None,
        empty_leaf: Optional[int] = None,
    ):
        """
        Initialize an empty pool.

        Raises:
            TreeTooDeepError: If config.levels exceeds the maximum depth
        """
        self.config = config
        self.tree = MerkleAccumulator(config.levels, hasher, default_nodes, empty_leaf)
        self.root_history = RootHistory(config.root_history_size)
        self.guard = DoubleSpendGuard()
        self.verifier = verifier
        self.ledger = ledger

        self.balance = 0
        self.events: List[PoolEvent] = []
        self._listeners: List[EventListener] = []
        self._locked = False

    @classmethod
    def from_settings(cls, settings: PoolSettings, verifier: ProofVerifier, ledger: ValueTransfer) -> "Pool":
        """Build a pool with the configured hasher and empty-leaf seed."""
        config = settings.to_pool_config()
        hasher = get_hasher(settings.hasher)
        empty_leaf = zero_leaf(settings.zero_leaf_seed)
        default_nodes = compute_default_nodes(hasher, config.levels, empty_leaf)
        return cls(config, hasher, verifier, ledger, default_nodes=default_nodes, empty_leaf=empty_leaf)

    @property
    def denomination(self) -> int:
        return self.config.denomination

    @contextmanager
    def _nonreentrant(self, operation: str):
        if self._locked:
            raise ReentrancyError(f"Re-entrant call to {operation} while pool is executing")
        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    # ========== MUTATING OPERATIONS ==========

    def deposit(self, commitment: int, paid_amount: int) -> DepositEvent:
        """
        Lock ``paid_amount`` under ``commitment``.

        Args:
            commitment: Field element hiding (secret, nullifier)
            paid_amount: Value sent with the call; must equal the denomination

        Returns:
            DepositEvent: Commitment, leaf index, tree path and hash directions

        Raises:
            CapacityExceededError: If the tree is full
            CommitmentReusedError: If the commitment was already deposited
            WrongDenominationError: If paid_amount != denomination
            OutOfFieldError: If the commitment is not a field element
            ReentrancyError: If called while another operation is executing
        """
        with self._nonreentrant("deposit"):
            if self.tree.is_full():
                raise CapacityExceededError(f"Tree is full (max {self.tree.capacity} leaves)")
            self.guard.check_commitment(commitment)
            if paid_amount != self.denomination:
                raise WrongDenominationError(
                    f"Deposit must be exactly {self.denomination}, got {paid_amount}"
                )

            check_in_field(commitment)

            # take the value first; nothing below can fail once it is in
            self.ledger.receive(paid_amount)
            result = self.tree.insert(commitment)
            self.root_history.record(result.root, result.leaf_index)
            self.guard.mark_commitment(commitment)
            self.balance += paid_amount

            event = DepositEvent(
                commitment=commitment,
                leaf_index=result.leaf_index,
                tree_path=result.path,
                hash_directions=result.directions,
            )
            self.events.append(event)

        logger.info(f"Deposit {result.leaf_index}: commitment {short_hex(commitment)}")
        self._notify(event)
        return event

    def withdraw(self, proof: Groth16Proof, root: int, nullifier_hash: int, claimant: str) -> WithdrawalEvent:
        """
        Pay the denomination to ``claimant`` against a valid proof.

        Args:
            proof: Proof over public signals [root, nullifier_hash, claimant]
            root: Root the proof was built against
            nullifier_hash: Public hash of the spent note's nullifier
            claimant: Recipient address (the caller)

        Returns:
            WithdrawalEvent: Nullifier hash, root, amount and (optionally) claimant

        Raises:
            StaleOrUnknownRootError: If root is not in the history window
            NullifierAlreadyUsedError: If nullifier_hash was already spent
            InvalidProofError: If the verifier rejects the proof
            PayoutFailedError: If the transfer fails (nothing is kept marked)
            ReentrancyError: If called while another operation is executing
            ValueError: If claimant is not an address
        """
        claimant = normalize_address(claimant)

        with self._nonreentrant("withdraw"):
            flow = WithdrawalFlow(nullifier_hash)
            try:
                self._process_withdrawal(flow, proof, root, nullifier_hash, claimant)
            except WithdrawalError as e:
                flow.reject(e)
                raise

            event = WithdrawalEvent(
                nullifier_hash=nullifier_hash,
                root=root,
                amount=self.denomination,
                claimant=claimant if self.config.emit_claimant else None,
            )
            self.events.append(event)

        logger.info(f"Withdrawal {short_hex(nullifier_hash)} paid {self.denomination}")
        self._notify(event)
        return event

    def _process_withdrawal(
        self, flow: WithdrawalFlow, proof: Groth16Proof, root: int, nullifier_hash: int, claimant: str
    ) -> None:
        if not self.root_history.is_valid(root):
            raise StaleOrUnknownRootError("Cannot find your merkle root")
        flow.advance(WithdrawalState.ROOT_CHECKED)

        self.guard.check_nullifier(nullifier_hash)
        flow.advance(WithdrawalState.NULLIFIER_CHECKED)

        if not self.verifier.verify(proof, public_signals(root, nullifier_hash, claimant)):
            raise InvalidProofError("Invalid withdraw proof")
        flow.advance(WithdrawalState.PROOF_VERIFIED)

        self.guard.mark_nullifier(nullifier_hash)
        try:
            paid = self.ledger.transfer(claimant, self.denomination)
        except Exception:
            self.guard._revert_nullifier(nullifier_hash)
            raise
        if not paid:
            self.guard._revert_nullifier(nullifier_hash)
            raise PayoutFailedError(f"Payment of {self.denomination} to {claimant} failed")

        self.balance -= self.denomination
        flow.advance(WithdrawalState.PAID)

    # ========== EVENTS ==========

    def subscribe(self, listener: EventListener) -> None:
        """Register a callable notified with each event after it commits."""
        self._listeners.append(listener)

    def _notify(self, event: PoolEvent) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                # observers never undo a committed operation
                logger.error(f"Event listener {listener!r} failed: {e}", exc_info=True)

    # ========== READ-ONLY ACCESSORS ==========

    @property
    def next_index(self) -> int:
        return self.tree.next_index

    def is_commitment_used(self, commitment: int) -> bool:
        return self.guard.is_commitment_used(commitment)

    def is_spent(self, nullifier_hash: int) -> bool:
        return self.guard.is_spent(nullifier_hash)

    def is_spent_array(self, nullifier_hashes: Sequence[int]) -> List[bool]:
        return [self.guard.is_spent(n) for n in nullifier_hashes]

    def is_known_root(self, root: int) -> bool:
        return self.root_history.is_valid(root)

    def get_last_root(self) -> Optional[int]:
        return self.root_history.last_root

    def root_history_window(self) -> List[int]:
        """Roots currently accepted for withdrawals, oldest first."""
        return self.root_history.roots()

    @property
    def root_history_size(self) -> int:
        return self.root_history.size

    @property
    def last_tree_path(self) -> List[int]:
        return self.tree.last_tree_path

    def default_node(self, level: int) -> int:
        return self.tree.default_node(level)

    def get_state(self) -> PoolState:
        """Return a snapshot of pool state."""
        last_root = self.get_last_root()
        return PoolState(
            levels=self.config.levels,
            denomination=self.denomination,
            next_index=self.next_index,
            capacity=self.tree.capacity,
            last_root=field_to_hex(last_root) if last_root is not None else None,
            root_history=[field_to_hex(r) for r in self.root_history_window()],
            root_history_size=self.root_history_size,
            num_commitments=self.guard.commitment_count,
            num_nullifiers=self.guard.nullifier_count,
            balance=self.balance,
        )

    def __repr__(self) -> str:
        return (
            f"Pool(levels={self.config.levels}, denomination={self.denomination}, "
            f"deposits={self.next_index}/{self.tree.capacity})"
        )
