"""Incremental Merkle accumulator for deposit commitments.

Leaves are appended left to right into a fixed-depth binary tree. The tree
never stores its leaves: insertion only needs, per level, the most recent
node that sits in a left (even) position, plus the root of an empty subtree
of each height. Insertion is O(levels) hashes.

Tree Structure:
    - Depth: ``levels`` (0..MAX_LEVELS), capacity 2**levels leaves
    - Path: levels + 1 nodes, path[0] = leaf, path[levels] = root
    - Directions: one bit per level, 1 when the node was hashed as the
      right input (its left sibling came from the filled-subtree cache)

Example:
    >>> tree = MerkleAccumulator(levels=2, hasher=Sha256FieldHasher())
    >>> result = tree.insert(commitment)
    >>> result.directions
    [0, 0]
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from zkpool.crypto.hasher import ZERO_LEAF_SEED, Hasher, compute_default_nodes, zero_leaf
from zkpool.exceptions import CapacityExceededError, InvalidLeafIndexError, TreeTooDeepError
from zkpool.utils.field import check_in_field
from zkpool.utils.encoding import field_to_hex, short_hex

logger = logging.getLogger(__name__)

MAX_LEVELS = 10


@dataclass(frozen=True)
class InsertionResult:
    """Outcome of a single leaf insertion."""

    leaf_index: int
    path: List[int]
    directions: List[int]

    @property
    def root(self) -> int:
        return self.path[-1]


@dataclass
class MerkleProof:
    """Merkle inclusion proof as consumed by a withdrawal prover."""

    leaf: int
    leaf_index: int
    path_elements: List[int]  # sibling at each level, bottom-up
    path_indices: List[int]  # 1 when the proved node is the right child
    root: int

    def compute_root(self, hasher: Hasher) -> int:
        """Fold the leaf up through the siblings."""
        current = self.leaf
        for sibling, is_right in zip(self.path_elements, self.path_indices):
            if is_right:
                current = hasher.combine(sibling, current)
            else:
                current = hasher.combine(current, sibling)
        return current

    def verify(self, hasher: Hasher, root: Optional[int] = None) -> bool:
        """Check the proof against ``root`` (or the stored root)."""
        expected = self.root if root is None else root
        return self.compute_root(hasher) == expected

    def to_dict(self) -> dict:
        return {
            "leaf": field_to_hex(self.leaf),
            "leaf_index": self.leaf_index,
            "path_elements": [field_to_hex(x) for x in self.path_elements],
            "path_indices": list(self.path_indices),
            "root": field_to_hex(self.root),
        }


class MerkleAccumulator:
    """
    Append-only Merkle tree with O(levels) insertion.

    State kept between insertions:
        - next_index: number of leaves inserted so far
        - filled_subtrees: per level, the latest left-positioned node
        - last_path: the full path of the latest insertion
        - default_nodes: root of an empty subtree per height (immutable)
    """

    def __init__(
        self,
        levels: int,
        hasher: Hasher,
        default_nodes: Optional[Sequence[int]] = None,
        empty_leaf: Optional[int] = None,
    ):
        """
        Initialize empty accumulator.

        Args:
            levels: Tree depth (0..MAX_LEVELS)
            hasher: Field-checked node combiner
            default_nodes: Empty-subtree roots per height; derived from the
                hasher when omitted
            empty_leaf: Value of an empty leaf; taken from default_nodes[0]
                when those are given, else zero_leaf(ZERO_LEAF_SEED)

        Raises:
            TreeTooDeepError: If levels > MAX_LEVELS
            ValueError: If levels is negative or default_nodes has wrong length
        """
        if levels > MAX_LEVELS:
            raise TreeTooDeepError(f"Tree depth {levels} exceeds maximum of {MAX_LEVELS}")
        if levels < 0:
            raise ValueError("Tree depth must be non-negative")

        if empty_leaf is None:
            empty_leaf = default_nodes[0] if default_nodes else zero_leaf(ZERO_LEAF_SEED)
        if default_nodes is None:
            default_nodes = compute_default_nodes(hasher, levels, empty_leaf)
        if len(default_nodes) != levels:
            raise ValueError(f"Expected {levels} default nodes, got {len(default_nodes)}")

        self.levels = levels
        self.capacity = 2**levels
        self.hasher = hasher
        self._default_nodes = tuple(check_in_field(node) for node in default_nodes)
        self._empty_leaf = check_in_field(empty_leaf)

        self.next_index = 0
        self._filled_subtrees: List[int] = list(self._default_nodes)
        self._last_path: List[int] = []

    def insert(self, leaf: int) -> InsertionResult:
        """
        Append a leaf and return its path, hash directions and new root.

        The whole path is computed before any state changes, so a failure
        (full tree, out-of-field operand) leaves the accumulator untouched.

        Args:
            leaf: Commitment (field element)

        Returns:
            InsertionResult: leaf index, path[0..levels], directions[0..levels-1]

        Raises:
            CapacityExceededError: If the tree is full
            OutOfFieldError: If the leaf is not a field element
        """
        if self.next_index >= self.capacity:
            raise CapacityExceededError(f"Tree is full (max {self.capacity} leaves)")

        index = self.next_index
        path = [leaf]
        directions = []
        filled = list(self._filled_subtrees)

        for level in range(self.levels):
            node = path[level]
            if (index >> level) & 1 == 0:
                directions.append(0)
                filled[level] = node
                left, right = node, self._default_nodes[level]
            else:
                directions.append(1)
                left, right = filled[level], node
            path.append(self.hasher.combine(left, right))

        if self.levels == 0:
            check_in_field(leaf)

        # commit
        self._filled_subtrees = filled
        self._last_path = path
        self.next_index = index + 1

        logger.debug(f"Inserted leaf {index} -> root {short_hex(path[-1])}")
        return InsertionResult(leaf_index=index, path=path, directions=directions)

    @property
    def root(self) -> int:
        """Current root (the empty-tree root before any insertion)."""
        if self._last_path:
            return self._last_path[-1]
        return self.empty_root()

    def empty_root(self) -> int:
        """Root of the tree with no leaves."""
        if self.levels == 0:
            return self._empty_leaf
        top = self._default_nodes[-1]
        return self.hasher.combine(top, top)

    def default_node(self, level: int) -> int:
        """Root of an empty subtree of height ``level``."""
        if level < 0 or level >= self.levels:
            raise InvalidLeafIndexError(f"Invalid level: {level}")
        return self._default_nodes[level]

    @property
    def default_nodes(self) -> List[int]:
        return list(self._default_nodes)

    @property
    def filled_subtrees(self) -> List[int]:
        return list(self._filled_subtrees)

    @property
    def last_tree_path(self) -> List[int]:
        """Path produced by the latest insertion (empty before the first)."""
        return list(self._last_path)

    def is_full(self) -> bool:
        return self.next_index >= self.capacity

    def get_state(self) -> dict:
        """
        Get the current state of the tree for serialization.

        Returns:
            dict: Depth, counts, cache and root as hex strings
        """
        return {
            "levels": self.levels,
            "capacity": self.capacity,
            "next_index": self.next_index,
            "filled_subtrees": [field_to_hex(x) for x in self._filled_subtrees],
            "last_tree_path": [field_to_hex(x) for x in self._last_path],
            "root": field_to_hex(self.root),
        }

    def __len__(self) -> int:
        """Return the number of leaves in the tree."""
        return self.next_index

    def __repr__(self) -> str:
        return (
            f"MerkleAccumulator(levels={self.levels}, "
            f"leaves={self.next_index}/{self.capacity}, "
            f"root={short_hex(self.root)})"
        )


def compute_layers(leaves: Sequence[int], levels: int, hasher: Hasher, default_nodes: Sequence[int]) -> List[List[int]]:
    """
    Build every layer of the tree from the full list of leaves.

    Missing right-hand nodes are filled with the empty-subtree value of
    that height. Used to rebuild proofs off-line from published leaves.
    """
    layers = [list(leaves)]
    for level in range(levels):
        below = layers[level]
        above = []
        for i in range(0, len(below), 2):
            left = below[i]
            right = below[i + 1] if i + 1 < len(below) else default_nodes[level]
            above.append(hasher.combine(left, right))
        layers.append(above)
    return layers


def build_merkle_proof(
    leaves: Sequence[int],
    leaf_index: int,
    levels: int,
    hasher: Hasher,
    default_nodes: Sequence[int],
) -> MerkleProof:
    """
    Produce the sibling path for ``leaf_index`` from all inserted leaves.

    Raises:
        InvalidLeafIndexError: If the index is not a published leaf
    """
    if leaf_index < 0 or leaf_index >= len(leaves):
        raise InvalidLeafIndexError(f"Invalid leaf index: {leaf_index}")

    layers = compute_layers(leaves, levels, hasher, default_nodes)
    elements = []
    indices = []
    position = leaf_index

    for level in range(levels):
        sibling = position ^ 1
        layer = layers[level]
        elements.append(layer[sibling] if sibling < len(layer) else default_nodes[level])
        indices.append(position & 1)
        position >>= 1

    return MerkleProof(
        leaf=leaves[leaf_index],
        leaf_index=leaf_index,
        path_elements=elements,
        path_indices=indices,
        root=layers[levels][0],
    )
