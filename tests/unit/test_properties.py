"""Property-based tests using Hypothesis for accumulator and guard invariants."""

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from zkpool.core.merkle_tree import MerkleAccumulator, build_merkle_proof, compute_layers
from zkpool.core.nullifier import DoubleSpendGuard
from zkpool.core.root_history import RootHistory
from zkpool.crypto.hasher import Sha256FieldHasher
from zkpool.exceptions import NullifierAlreadyUsedError
from zkpool.utils.field import FIELD_MODULUS

HASHER = Sha256FieldHasher()

field_elements = st.integers(min_value=0, max_value=FIELD_MODULUS - 1)


@st.composite
def depth_and_leaves(draw):
    levels = draw(st.integers(min_value=1, max_value=6))
    leaves = draw(st.lists(field_elements, min_size=1, max_size=2**levels, unique=True))
    return levels, leaves


class TestAccumulatorProperties:
    """The incremental tree agrees with a full rebuild at every depth."""

    @given(depth_and_leaves())
    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_root_matches_full_rebuild(self, case):
        levels, leaves = case
        tree = MerkleAccumulator(levels, HASHER)

        for count, leaf in enumerate(leaves, start=1):
            result = tree.insert(leaf)
            layers = compute_layers(leaves[:count], levels, HASHER, tree.default_nodes)
            assert result.root == layers[levels][0]

    @given(depth_and_leaves())
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_path_nodes_match_rebuild(self, case):
        levels, leaves = case
        tree = MerkleAccumulator(levels, HASHER)
        for leaf in leaves:
            result = tree.insert(leaf)

        layers = compute_layers(leaves, levels, HASHER, tree.default_nodes)
        index = len(leaves) - 1
        for level in range(levels + 1):
            assert result.path[level] == layers[level][index >> level]

    @given(depth_and_leaves())
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_directions_are_index_bits(self, case):
        levels, leaves = case
        tree = MerkleAccumulator(levels, HASHER)
        for index, leaf in enumerate(leaves):
            result = tree.insert(leaf)
            assert result.directions == [(index >> i) & 1 for i in range(levels)]

    @given(depth_and_leaves(), st.data())
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_every_leaf_proves_against_latest_root(self, case, data):
        levels, leaves = case
        tree = MerkleAccumulator(levels, HASHER)
        for leaf in leaves:
            tree.insert(leaf)

        index = data.draw(st.integers(min_value=0, max_value=len(leaves) - 1))
        proof = build_merkle_proof(leaves, index, levels, HASHER, tree.default_nodes)
        assert proof.verify(HASHER, tree.root)

    @given(st.integers(min_value=0, max_value=6))
    @settings(max_examples=7, deadline=None)
    def test_capacity_is_exact(self, levels):
        tree = MerkleAccumulator(levels, HASHER)
        for leaf in range(2**levels):
            tree.insert(leaf)
        assert tree.is_full()


class TestRootHistoryProperties:
    """The window holds exactly the most recent roots."""

    @given(st.integers(min_value=1, max_value=40), st.integers(min_value=1, max_value=100))
    @settings(max_examples=50)
    def test_window_contents(self, size, inserts):
        history = RootHistory(size)
        for index in range(inserts):
            history.record(1000 + index, index)

        for index in range(inserts):
            assert history.is_valid(1000 + index) == (index >= inserts - size)


class TestGuardProperties:
    """Marked values stay marked."""

    @given(st.lists(field_elements, min_size=1, max_size=30, unique=True))
    @settings(max_examples=30)
    def test_nullifiers_are_one_time(self, nullifiers):
        guard = DoubleSpendGuard()
        for n in nullifiers:
            guard.mark_nullifier(n)
        for n in nullifiers:
            assert guard.is_spent(n)
            with pytest.raises(NullifierAlreadyUsedError):
                guard.mark_nullifier(n)
