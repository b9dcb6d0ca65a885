"""Storage layer for persistent event data."""

from zkpool.storage.database import (
    EventStore,
    DepositRecord,
    WithdrawalRecord,
    Base,
)

__all__ = [
    "EventStore",
    "DepositRecord",
    "WithdrawalRecord",
    "Base",
]
