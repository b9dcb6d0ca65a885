"""Withdrawal proof objects and verifier interface.

A withdrawal proof attests, in zero knowledge, that the prover knows the
opening (secret, nullifier) of some commitment under a known root, and that
``nullifier_hash`` was derived from that nullifier. The pool never inspects a
proof itself; it asks a ProofVerifier whether the proof is valid for the
public signal vector::

    [root, nullifier_hash, claimant]

Binding the claimant into the public signals means a proof observed in
transit cannot be resubmitted with a different payout address.

Proof Shape (Groth16):
    - a: G1 point, 2 field elements
    - b: G2 point, 2x2 field elements
    - c: G1 point, 2 field elements

Development Stand-in:
    DevelopmentProver and DevelopmentVerifier share a setup key and derive
    every proof element from HMAC-SHA256(setup_key, public signals). They have
    the same accept/reject behaviour as a real verifier for honest and
    tampered inputs but are NOT sound: anyone holding the setup key can
    produce proofs. Production deployments inject a pairing-based verifier.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from Crypto.Hash import HMAC, SHA256
from Crypto.Random import get_random_bytes

from zkpool.utils.encoding import address_to_field, field_to_hex, parse_field
from zkpool.utils.field import FIELD_MODULUS, is_in_field

logger = logging.getLogger(__name__)

PUBLIC_SIGNAL_COUNT = 3


@dataclass(frozen=True)
class Groth16Proof:
    """Groth16 proof points as field elements."""

    a: Tuple[int, int]
    b: Tuple[Tuple[int, int], Tuple[int, int]]
    c: Tuple[int, int]

    def elements(self) -> List[int]:
        """Flatten to the 8 field elements in (a, b, c) order."""
        return [self.a[0], self.a[1], self.b[0][0], self.b[0][1], self.b[1][0], self.b[1][1], self.c[0], self.c[1]]

    def is_well_formed(self) -> bool:
        """Check that every coordinate is a canonical field element."""
        try:
            return len(self.elements()) == 8 and all(is_in_field(x) for x in self.elements())
        except (TypeError, IndexError):
            return False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary of hex strings."""
        return {
            "a": [field_to_hex(x) for x in self.a],
            "b": [[field_to_hex(x) for x in row] for row in self.b],
            "c": [field_to_hex(x) for x in self.c],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Groth16Proof":
        """Deserialize from dictionary (hex or decimal strings, or ints)."""
        a = data["a"]
        b = data["b"]
        c = data["c"]
        return Groth16Proof(
            a=(parse_field(a[0]), parse_field(a[1])),
            b=(
                (parse_field(b[0][0]), parse_field(b[0][1])),
                (parse_field(b[1][0]), parse_field(b[1][1])),
            ),
            c=(parse_field(c[0]), parse_field(c[1])),
        )


def public_signals(root: int, nullifier_hash: int, claimant: str) -> List[int]:
    """Build the public signal vector ``[root, nullifier_hash, claimant]``."""
    return [root, nullifier_hash, address_to_field(claimant)]


class ProofVerifier(Protocol):
    """Boolean oracle: is ``proof`` valid for these public signals."""

    def verify(self, proof: Groth16Proof, signals: Sequence[int]) -> bool:
        ...


def _derive_elements(setup_key: bytes, signals: Sequence[int]) -> List[int]:
    message = b"".join(int(s).to_bytes(32, "big") for s in signals)
    elements = []
    for i in range(8):
        mac = HMAC.new(setup_key, digestmod=SHA256)
        mac.update(bytes([i]) + message)
        elements.append(int.from_bytes(mac.digest(), "big") % FIELD_MODULUS)
    return elements


class DevelopmentProver:
    """Produce stand-in proofs accepted by a DevelopmentVerifier with the same key."""

    def __init__(self, setup_key: bytes):
        self.setup_key = setup_key

    def prove(self, root: int, nullifier_hash: int, claimant: str) -> Groth16Proof:
        """Create a proof bound to ``[root, nullifier_hash, claimant]``."""
        e = _derive_elements(self.setup_key, public_signals(root, nullifier_hash, claimant))
        return Groth16Proof(a=(e[0], e[1]), b=((e[2], e[3]), (e[4], e[5])), c=(e[6], e[7]))


class DevelopmentVerifier:
    """Verifier matching DevelopmentProver (see module docstring)."""

    def __init__(self, setup_key: bytes):
        self.setup_key = setup_key

    def verify(self, proof: Groth16Proof, signals: Sequence[int]) -> bool:
        """
        Verify a stand-in proof against the public signals.

        Returns:
            bool: True if proof elements match the keyed derivation
        """
        if len(signals) != PUBLIC_SIGNAL_COUNT:
            logger.debug(f"Expected {PUBLIC_SIGNAL_COUNT} public signals, got {len(signals)}")
            return False
        if not proof.is_well_formed():
            return False
        if not all(is_in_field(s) for s in signals):
            return False

        return _derive_elements(self.setup_key, signals) == proof.elements()


def development_setup(setup_key: Optional[bytes] = None) -> Tuple[DevelopmentProver, DevelopmentVerifier]:
    """Create a matching prover/verifier pair (random key when none given)."""
    key = setup_key if setup_key is not None else get_random_bytes(32)
    return DevelopmentProver(key), DevelopmentVerifier(key)
