"""Bounded window of recently valid Merkle roots.

A withdrawer reads a root, builds a proof off-line and submits it later.
Deposits landing in between advance the tree, so a proof is accepted
against any root still in the window rather than only the latest one.
"""

import logging
from typing import List, Optional

from zkpool.utils.encoding import short_hex

logger = logging.getLogger(__name__)

ROOT_HISTORY_SIZE = 30


class RootHistory:
    """Fixed-capacity ring buffer of roots indexed by ``leaf_index mod size``."""

    def __init__(self, size: int = ROOT_HISTORY_SIZE):
        if size < 1:
            raise ValueError("Root history size must be positive")
        self.size = size
        self._slots: List[Optional[int]] = [None] * size
        self._latest_slot: Optional[int] = None

    def record(self, root: int, leaf_index: int) -> int:
        """
        Store ``root`` in slot ``leaf_index mod size``.

        Args:
            root: Root produced by inserting leaf ``leaf_index``
            leaf_index: Index of the leaf whose insertion produced the root

        Returns:
            int: The slot written
        """
        slot = leaf_index % self.size
        evicted = self._slots[slot]
        self._slots[slot] = root
        self._latest_slot = slot
        if evicted is not None:
            logger.debug(f"Root {short_hex(evicted)} evicted from slot {slot}")
        return slot

    def is_valid(self, root: int) -> bool:
        """True iff ``root`` is in any slot of the window."""
        if root is None:
            return False
        for known in self._slots:
            if known is not None and known == root:
                return True
        return False

    def slot(self, slot: int) -> Optional[int]:
        return self._slots[slot]

    @property
    def latest_slot(self) -> Optional[int]:
        return self._latest_slot

    @property
    def last_root(self) -> Optional[int]:
        """Most recently recorded root, or None before the first deposit."""
        if self._latest_slot is None:
            return None
        return self._slots[self._latest_slot]

    def roots(self) -> List[int]:
        """Roots currently in the window, oldest first."""
        if self._latest_slot is None:
            return []
        ordered = []
        for offset in range(1, self.size + 1):
            root = self._slots[(self._latest_slot + offset) % self.size]
            if root is not None:
                ordered.append(root)
        return ordered

    def __len__(self) -> int:
        return sum(1 for root in self._slots if root is not None)

    def __contains__(self, root: int) -> bool:
        return self.is_valid(root)
