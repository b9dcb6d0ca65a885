"""Two-input node hashers over the BN254 scalar field.

The pool treats the hash as an external, pure compression function. Any
object with a ``combine(left, right) -> int`` method can be injected; the
two implementations here cover development and circuit-compatible use:

    - Sha256FieldHasher: SHA-256(left || right) reduced mod p. Cheap, used
      by tests and local tooling.
    - MiMCSpongeHasher: the MiMC Feistel sponge (220 rounds, x^5) used by
      circom circuits, combined as ``R = S(L, 0); R = S(R + right, C)``.

Both run every operand through the field guard before hashing.

Example:
    >>> hasher = MiMCSpongeHasher()
    >>> parent = hasher.combine(left, right)
"""

import hashlib
from typing import List, Optional, Protocol, Tuple

from Crypto.Hash import keccak

from zkpool.utils.field import FIELD_MODULUS, check_in_field, to_field

MIMC_ROUNDS = 220
MIMC_SEED = b"mimcsponge"
ZERO_LEAF_SEED = "zkpool"


def keccak256(data: bytes) -> bytes:
    """Compute Keccak-256 (pre-standard SHA-3 padding) of data."""
    return keccak.new(digest_bits=256, data=data).digest()


class Hasher(Protocol):
    """Left/right node combiner consumed by the accumulator."""

    def combine(self, left: int, right: int) -> int:
        ...


class FieldHasher:
    """Base class applying the field guard to both operands."""

    name = "abstract"

    def combine(self, left: int, right: int) -> int:
        """
        Hash an ordered pair of field elements into one.

        Raises:
            OutOfFieldError: If either operand is not below the modulus
        """
        check_in_field(left)
        check_in_field(right)
        return self._compress(left, right)

    def _compress(self, left: int, right: int) -> int:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Sha256FieldHasher(FieldHasher):
    """SHA-256 of the two 32-byte big-endian operands, reduced into the field."""

    name = "sha256"

    def _compress(self, left: int, right: int) -> int:
        digest = hashlib.sha256(left.to_bytes(32, "big") + right.to_bytes(32, "big")).digest()
        return to_field(digest)


def mimc_round_constants(rounds: int = MIMC_ROUNDS, seed: bytes = MIMC_SEED) -> List[int]:
    """
    Derive MiMC sponge round constants.

    c[0] and c[rounds-1] are zero; the others come from iterating Keccak-256
    starting from ``seed`` and reducing each digest mod p, matching
    circomlib's MiMCSponge.
    """
    constants = [0] * rounds
    digest = keccak256(seed)
    for i in range(1, rounds):
        digest = keccak256(digest)
        constants[i] = to_field(digest)
    constants[rounds - 1] = 0
    return constants


class MiMCSpongeHasher(FieldHasher):
    """MiMC Feistel sponge with exponent 5, two inputs and two outputs."""

    name = "mimcsponge"

    def __init__(self, key: int = 0, rounds: int = MIMC_ROUNDS):
        self.key = check_in_field(key)
        self.rounds = rounds
        self._constants = mimc_round_constants(rounds)

    def sponge(self, x_left: int, x_right: int) -> Tuple[int, int]:
        """Run one Feistel permutation and return both output lanes."""
        p = FIELD_MODULUS
        k = self.key
        last = self.rounds - 1

        for i, c in enumerate(self._constants):
            t = (x_left + k) % p if i == 0 else (x_left + k + c) % p
            t5 = pow(t, 5, p)
            if i < last:
                x_left, x_right = (x_right + t5) % p, x_left
            else:
                x_right = (x_right + t5) % p

        return x_left, x_right

    def _compress(self, left: int, right: int) -> int:
        r, c = self.sponge(left, 0)
        r = (r + right) % FIELD_MODULUS
        r, c = self.sponge(r, c)
        return r

    def __repr__(self) -> str:
        return f"MiMCSpongeHasher(rounds={self.rounds})"


HASHERS = {
    Sha256FieldHasher.name: Sha256FieldHasher,
    MiMCSpongeHasher.name: MiMCSpongeHasher,
}


def get_hasher(name: str) -> FieldHasher:
    """Instantiate a hasher by its configured name."""
    try:
        return HASHERS[name]()
    except KeyError:
        raise ValueError(f"Unknown hasher: {name!r} (expected one of {sorted(HASHERS)})")


def zero_leaf(seed: str) -> int:
    """Value of an empty leaf: Keccak-256(seed) reduced mod p."""
    return to_field(keccak256(seed.encode("utf-8")))


def compute_default_nodes(hasher: Hasher, levels: int, empty_leaf: Optional[int] = None) -> List[int]:
    """
    Compute the root of an all-empty subtree for each height 0..levels-1.

    Args:
        hasher: Node combiner
        levels: Tree depth
        empty_leaf: Value of an empty leaf (defaults to zero_leaf(ZERO_LEAF_SEED))

    Returns:
        List[int]: ``levels`` default node values, index = subtree height
    """
    current = zero_leaf(ZERO_LEAF_SEED) if empty_leaf is None else check_in_field(empty_leaf)
    nodes = []
    for _ in range(levels):
        nodes.append(current)
        current = hasher.combine(current, current)
    return nodes
