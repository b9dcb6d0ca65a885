"""One-time-use guards for commitments and nullifier hashes.

Two independent, append-only sets:

    - used commitments: a commitment occupies at most one leaf
    - spent nullifier hashes: at most one successful withdrawal per nullifier

Checking and marking are separate operations so the pool can check early
(before proof verification) and mark late (after it succeeds).
"""

import logging
from typing import Set

from zkpool.exceptions import CommitmentReusedError, NullifierAlreadyUsedError
from zkpool.utils.encoding import field_to_hex, short_hex

logger = logging.getLogger(__name__)


class DoubleSpendGuard:
    """Tracks used commitments and spent nullifier hashes."""

    def __init__(self):
        """Initialize empty guard sets."""
        self._commitments: Set[int] = set()
        self._nullifiers: Set[int] = set()

    def is_commitment_used(self, commitment: int) -> bool:
        return commitment in self._commitments

    def is_spent(self, nullifier_hash: int) -> bool:
        """Check if a nullifier hash has been spent."""
        return nullifier_hash in self._nullifiers

    def check_commitment(self, commitment: int) -> None:
        """
        Raises:
            CommitmentReusedError: If commitment was already deposited
        """
        if commitment in self._commitments:
            raise CommitmentReusedError(f"Commitment {field_to_hex(commitment)} already submitted")

    def check_nullifier(self, nullifier_hash: int) -> None:
        """
        Raises:
            NullifierAlreadyUsedError: If nullifier hash was already spent
        """
        if nullifier_hash in self._nullifiers:
            raise NullifierAlreadyUsedError(f"Nullifier {field_to_hex(nullifier_hash)} already spent")

    def mark_commitment(self, commitment: int) -> None:
        """
        Mark commitment as used.

        Raises:
            CommitmentReusedError: If already marked
        """
        self.check_commitment(commitment)
        self._commitments.add(commitment)

    def mark_nullifier(self, nullifier_hash: int) -> None:
        """
        Mark nullifier hash as spent.

        Raises:
            NullifierAlreadyUsedError: If already marked
        """
        self.check_nullifier(nullifier_hash)
        self._nullifiers.add(nullifier_hash)
        logger.debug(f"Nullifier {short_hex(nullifier_hash)} marked spent")

    def _revert_nullifier(self, nullifier_hash: int) -> None:
        # only for rolling back an uncommitted withdrawal
        self._nullifiers.discard(nullifier_hash)
        logger.debug(f"Nullifier {short_hex(nullifier_hash)} released by rollback")

    @property
    def commitment_count(self) -> int:
        return len(self._commitments)

    @property
    def nullifier_count(self) -> int:
        return len(self._nullifiers)
