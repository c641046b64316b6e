"""
In-memory reference collaborators.

These implement the collaborator protocols well enough to drive the engines
in simulations and tests: an ERC-20 style multi-asset ledger with
allowances and minter permissions, a pool registry, and a manually advanced
block clock. The ledger is checkpointable, so an engine's atomic section
rolls back the ledger writes of a failed call together with its own state.
"""

import time
from contextvars import ContextVar, Token

from memberlock.core.exceptions import TransferFailedError
from memberlock.core.logging import get_logger
from memberlock.core.types.locking import PoolInfo

from .constants import MAX_ALLOWANCE

logger = get_logger(__name__)


class InMemoryTokenLedger:
    """Balances, allowances and supply for any number of assets.

    Rollback is journaled per call: ``snapshot`` opens a journal bound to
    the current context and every later write from that context records its
    inverse. ``restore`` undoes only those writes, so writes made meanwhile
    by other tasks sharing the ledger survive.
    """

    def __init__(self):
        self._balances: dict[str, dict[str, int]] = {}
        self._allowances: dict[str, dict[tuple[str, str], int]] = {}
        self._supply: dict[str, int] = {}
        self._minters: dict[str, set[str]] = {}
        self._journal: ContextVar[list | None] = ContextVar(
            f"ledger_journal_{id(self)}", default=None
        )

    # Administration helpers (not part of the protocol)

    def issue(self, asset: str, holder: str, amount: int) -> None:
        """Create ``amount`` of ``asset`` out of thin air for ``holder``."""
        self._change_balance(asset, holder, amount)
        self._change_supply(asset, amount)

    def set_minter(self, asset: str, minter: str, allowed: bool = True) -> None:
        was_allowed = minter in self._minters.get(asset, set())
        self._apply_minter(asset, minter, allowed)
        self._record(self._apply_minter, asset, minter, was_allowed)
        logger.debug("Minter updated", asset=asset, minter=minter, allowed=allowed)

    def balance(self, asset: str, holder: str) -> int:
        return self._balances.get(asset, {}).get(holder, 0)

    # Protocol

    async def balance_of(self, asset: str, holder: str) -> int:
        return self.balance(asset, holder)

    async def total_supply(self, asset: str) -> int:
        return self._supply.get(asset, 0)

    async def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or self.balance(asset, sender) < amount:
            return False
        self._move(asset, sender, recipient, amount)
        return True

    async def transfer_from(
        self, asset: str, spender: str, owner: str, recipient: str, amount: int
    ) -> bool:
        if amount < 0 or self.balance(asset, owner) < amount:
            return False
        if not self._spend_allowance(asset, owner, spender, amount):
            return False
        self._move(asset, owner, recipient, amount)
        return True

    async def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        previous = self._allowances.get(asset, {}).get((owner, spender), 0)
        self._apply_allowance(asset, (owner, spender), amount)
        self._record(self._apply_allowance, asset, (owner, spender), previous)

    async def allowance(self, asset: str, owner: str, spender: str) -> int:
        return self._allowances.get(asset, {}).get((owner, spender), 0)

    async def mint(self, asset: str, minter: str, recipient: str, amount: int) -> bool:
        if minter not in self._minters.get(asset, set()) or amount < 0:
            return False
        self.issue(asset, recipient, amount)
        return True

    async def burn_from(self, asset: str, spender: str, holder: str, amount: int) -> None:
        if self.balance(asset, holder) < amount:
            raise TransferFailedError(
                f"Burn of {amount} exceeds balance of {holder}", asset=asset
            )
        if spender != holder and not self._spend_allowance(asset, holder, spender, amount):
            raise TransferFailedError(
                f"Burn of {amount} exceeds allowance of {spender} from {holder}", asset=asset
            )
        self._change_balance(asset, holder, -amount)
        self._change_supply(asset, -amount)

    # Checkpointing

    def snapshot(self) -> tuple[list, Token]:
        journal: list = []
        return journal, self._journal.set(journal)

    def restore(self, state: tuple[list, Token]) -> None:
        journal, token = state
        self._journal.reset(token)
        for undo, args in reversed(journal):
            undo(*args)

    def commit(self, state: tuple[list, Token]) -> None:
        journal, token = state
        self._journal.reset(token)
        # Hand the entries to an enclosing call so it can still undo them
        outer = self._journal.get()
        if outer is not None:
            outer.extend(journal)

    # Internals

    def _record(self, undo, *args) -> None:
        journal = self._journal.get()
        if journal is not None:
            journal.append((undo, args))

    def _change_balance(self, asset: str, holder: str, delta: int) -> None:
        self._apply_balance(asset, holder, delta)
        self._record(self._apply_balance, asset, holder, -delta)

    def _change_supply(self, asset: str, delta: int) -> None:
        self._apply_supply(asset, delta)
        self._record(self._apply_supply, asset, -delta)

    def _apply_balance(self, asset: str, holder: str, delta: int) -> None:
        holders = self._balances.setdefault(asset, {})
        holders[holder] = holders.get(holder, 0) + delta

    def _apply_supply(self, asset: str, delta: int) -> None:
        self._supply[asset] = self._supply.get(asset, 0) + delta

    def _apply_allowance(self, asset: str, key: tuple[str, str], amount: int) -> None:
        self._allowances.setdefault(asset, {})[key] = amount

    def _apply_minter(self, asset: str, minter: str, allowed: bool) -> None:
        minters = self._minters.setdefault(asset, set())
        if allowed:
            minters.add(minter)
        else:
            minters.discard(minter)

    def _move(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        self._change_balance(asset, sender, -amount)
        self._change_balance(asset, recipient, amount)

    def _spend_allowance(self, asset: str, owner: str, spender: str, amount: int) -> bool:
        key = (owner, spender)
        current = self._allowances.get(asset, {}).get(key, 0)
        if current < amount:
            return False
        if current != MAX_ALLOWANCE:
            self._apply_allowance(asset, key, current - amount)
            self._record(self._apply_allowance, asset, key, current)
        return True


class InMemoryPoolRegistry:
    """Ordered list of pools whose balances are excluded from circulating supply."""

    def __init__(self, pools: list[PoolInfo] | None = None):
        self._pools: list[PoolInfo] = list(pools or [])

    def add_pool(self, address: str, asset: str | None = None, label: str = "") -> PoolInfo:
        pool = PoolInfo(address=address, asset=asset, label=label)
        self._pools.append(pool)
        return pool

    def remove_pool(self, address: str) -> None:
        self._pools = [pool for pool in self._pools if pool.address != address]

    async def count(self) -> int:
        return len(self._pools)

    async def pool_at(self, index: int) -> PoolInfo:
        return self._pools[index]


class ManualBlockClock:
    """Block clock advanced explicitly by the caller."""

    def __init__(self, block: int = 0, timestamp: int | None = None, seconds_per_block: int = 3):
        self._block = block
        self._timestamp = int(time.time()) if timestamp is None else timestamp
        self._seconds_per_block = seconds_per_block

    def current_block(self) -> int:
        return self._block

    def timestamp(self) -> int:
        return self._timestamp

    def advance(self, blocks: int = 1) -> int:
        self._block += blocks
        self._timestamp += blocks * self._seconds_per_block
        return self._block

    def set_block(self, block: int) -> None:
        if block < self._block:
            raise ValueError("block clock cannot move backwards")
        self.advance(block - self._block)
