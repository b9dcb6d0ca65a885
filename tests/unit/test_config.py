"""Tests for configuration loading."""

import logging

import pytest
from pydantic import ValidationError

from zkpool.config import PoolConfig, PoolSettings, configure_logging
from zkpool.core.ledger import InMemoryLedger
from zkpool.core.pool import Pool
from zkpool.crypto.hasher import Sha256FieldHasher, compute_default_nodes, zero_leaf
from zkpool.exceptions import TreeTooDeepError


class TestPoolConfig:
    """Tests for the immutable pool configuration."""

    def test_defaults(self):
        config = PoolConfig(levels=4, denomination=10)
        assert config.root_history_size == 30
        assert config.emit_claimant is True

    def test_too_deep(self):
        with pytest.raises(TreeTooDeepError):
            PoolConfig(levels=11, denomination=10)

    def test_maximum_depth_allowed(self):
        assert PoolConfig(levels=10, denomination=10).levels == 10

    @pytest.mark.parametrize("levels,denomination", [(-1, 10), (4, 0), (4, -5)])
    def test_invalid_values(self, levels, denomination):
        with pytest.raises(ValidationError):
            PoolConfig(levels=levels, denomination=denomination)

    def test_frozen(self):
        config = PoolConfig(levels=4, denomination=10)
        with pytest.raises(ValidationError):
            config.levels = 5

    def test_pool_rejects_deep_tree_before_building(self, verifier):
        with pytest.raises(TreeTooDeepError):
            Pool(PoolConfig(levels=12, denomination=1), Sha256FieldHasher(), verifier, InMemoryLedger())


class TestPoolSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("LEVELS", "DENOMINATION", "HASHER"):
            monkeypatch.delenv(f"ZKPOOL_{name}", raising=False)
        settings = PoolSettings(_env_file=None)
        assert settings.levels == 10
        assert settings.denomination == 10**18
        assert settings.hasher == "mimcsponge"
        assert settings.zero_leaf_seed == "zkpool"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ZKPOOL_LEVELS", "3")
        monkeypatch.setenv("ZKPOOL_DENOMINATION", "1000")
        monkeypatch.setenv("ZKPOOL_EMIT_CLAIMANT", "false")
        monkeypatch.setenv("ZKPOOL_HASHER", "sha256")

        settings = PoolSettings(_env_file=None)
        config = settings.to_pool_config()

        assert config.levels == 3
        assert config.denomination == 1000
        assert config.emit_claimant is False
        assert settings.hasher == "sha256"

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("ZKPOOL_LEVELS=5\nZKPOOL_DENOMINATION=42\nUNRELATED=1\n")
        settings = PoolSettings(_env_file=str(env_file))
        assert settings.levels == 5
        assert settings.denomination == 42

    def test_from_settings(self, verifier):
        settings = PoolSettings(_env_file=None, levels=3, denomination=7, hasher="sha256", zero_leaf_seed="seed")
        pool = Pool.from_settings(settings, verifier, InMemoryLedger())

        expected = compute_default_nodes(Sha256FieldHasher(), 3, zero_leaf("seed"))
        assert pool.tree.default_nodes == expected
        assert pool.denomination == 7
        assert pool.tree.capacity == 8

    def test_depth_zero_pool_uses_configured_seed(self, verifier):
        settings = PoolSettings(_env_file=None, levels=0, denomination=7, hasher="sha256", zero_leaf_seed="seed")
        pool = Pool.from_settings(settings, verifier, InMemoryLedger())
        assert pool.tree.root == zero_leaf("seed")

    def test_unknown_hasher(self, verifier):
        settings = PoolSettings(_env_file=None, levels=3, hasher="md5")
        with pytest.raises(ValueError):
            Pool.from_settings(settings, verifier, InMemoryLedger())


def test_configure_logging(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
    configure_logging("debug")
    assert calls["level"] == logging.DEBUG
