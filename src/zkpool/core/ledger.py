"""Value movement between the pool and recipient accounts.

The pool needs to take in deposited value, ``receive(amount)``, and a
transfer primitive that reports success or failure in the manner of a
low-level value call, ``transfer(to, amount) -> bool``.
InMemoryLedger provides that over a dictionary of balances. Recipients may
register a receive hook, which runs during the transfer and can call back
into the pool; a hook that raises makes the transfer fail and leaves all
balances as they were.
"""

import logging
from typing import Callable, Dict, Optional, Protocol

from zkpool.utils.encoding import normalize_address

logger = logging.getLogger(__name__)

ReceiveHook = Callable[[str, int], None]


class ValueTransfer(Protocol):
    """Custody primitive used by the pool."""

    def receive(self, amount: int) -> None:
        ...

    def transfer(self, to: str, amount: int) -> bool:
        ...


class InMemoryLedger:
    """Account balances held in memory, with one account acting as the pool."""

    def __init__(self, pool_account: str = "0x" + "00" * 19 + "01"):
        self.pool_account = normalize_address(pool_account)
        self.balances: Dict[str, int] = {}
        self._hooks: Dict[str, ReceiveHook] = {}

    def balance_of(self, account: str) -> int:
        return self.balances.get(normalize_address(account), 0)

    def credit(self, account: str, amount: int) -> None:
        """Mint ``amount`` into an account (funding for tests and demos)."""
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        account = normalize_address(account)
        self.balances[account] = self.balances.get(account, 0) + amount

    def receive(self, amount: int) -> None:
        """Record value arriving in the pool account with a deposit call."""
        self.credit(self.pool_account, amount)

    def set_receive_hook(self, account: str, hook: Optional[ReceiveHook]) -> None:
        """Install (or clear with None) the hook run when ``account`` is paid."""
        account = normalize_address(account)
        if hook is None:
            self._hooks.pop(account, None)
        else:
            self._hooks[account] = hook

    def transfer(self, to: str, amount: int) -> bool:
        """
        Move ``amount`` from the pool account to ``to``.

        Returns:
            bool: False if funds are insufficient or the recipient hook raised;
                balances are unchanged in that case
        """
        to = normalize_address(to)
        available = self.balances.get(self.pool_account, 0)
        if amount < 0 or available < amount:
            logger.warning(f"Transfer of {amount} to {to} refused: pool balance {available}")
            return False

        self.balances[self.pool_account] = available - amount
        self.balances[to] = self.balances.get(to, 0) + amount

        hook = self._hooks.get(to)
        if hook is None:
            return True

        try:
            hook(to, amount)
        except Exception as e:
            # undo this transfer; the caller decides what failure means
            self.balances[to] -= amount
            self.balances[self.pool_account] += amount
            logger.warning(f"Recipient {to} rejected transfer: {e}")
            return False
        return True
