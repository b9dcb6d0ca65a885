"""Hash and proof-verification collaborators."""

from zkpool.crypto.hasher import (
    Hasher,
    FieldHasher,
    Sha256FieldHasher,
    MiMCSpongeHasher,
    get_hasher,
    compute_default_nodes,
    zero_leaf,
)

from zkpool.crypto.verifier import (
    Groth16Proof,
    ProofVerifier,
    DevelopmentProver,
    DevelopmentVerifier,
    development_setup,
    public_signals,
)

__all__ = [
    'Hasher',
    'FieldHasher',
    'Sha256FieldHasher',
    'MiMCSpongeHasher',
    'get_hasher',
    'compute_default_nodes',
    'zero_leaf',
    'Groth16Proof',
    'ProofVerifier',
    'DevelopmentProver',
    'DevelopmentVerifier',
    'development_setup',
    'public_signals',
]
