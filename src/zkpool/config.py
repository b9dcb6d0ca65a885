"""Pool configuration.

PoolConfig is the immutable per-deployment configuration. PoolSettings loads
the same values (plus tooling options) from ``ZKPOOL_*`` environment
variables or a ``.env`` file.
"""

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zkpool.core.merkle_tree import MAX_LEVELS
from zkpool.core.root_history import ROOT_HISTORY_SIZE
from zkpool.exceptions import TreeTooDeepError

WEI_PER_ETHER = 10**18


class PoolConfig(BaseModel):
    """Immutable pool configuration."""

    model_config = ConfigDict(frozen=True)

    levels: int = Field(..., ge=0, description="Merkle tree depth")
    denomination: int = Field(..., gt=0, description="Exact deposit and withdrawal amount")
    root_history_size: int = Field(default=ROOT_HISTORY_SIZE, gt=0)
    emit_claimant: bool = Field(default=True, description="Include claimant in withdrawal events")

    @field_validator("levels")
    @classmethod
    def _check_depth(cls, value: int) -> int:
        if value > MAX_LEVELS:
            raise TreeTooDeepError(f"Tree depth {value} exceeds maximum of {MAX_LEVELS}")
        return value


class PoolSettings(BaseSettings):
    """Environment-driven settings for building a pool and its tooling."""

    model_config = SettingsConfigDict(env_prefix="ZKPOOL_", env_file=".env", extra="ignore")

    levels: int = MAX_LEVELS
    denomination: int = WEI_PER_ETHER
    root_history_size: int = ROOT_HISTORY_SIZE
    emit_claimant: bool = True
    hasher: str = "mimcsponge"
    zero_leaf_seed: str = "zkpool"
    database_url: str = "sqlite:///zkpool.db"
    log_level: str = "INFO"

    def to_pool_config(self) -> PoolConfig:
        return PoolConfig(
            levels=self.levels,
            denomination=self.denomination,
            root_history_size=self.root_history_size,
            emit_claimant=self.emit_claimant,
        )


def configure_logging(level: str = "INFO") -> None:
    """Install a basic log format for command-line and service use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
