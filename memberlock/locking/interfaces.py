"""
Locking Collaborator Interfaces.

Protocols for the external systems the locker engines consume. Only the
capability is specified here; the token ledgers, AMM and zapper are owned
elsewhere.
"""

from typing import Any, Protocol, runtime_checkable

from memberlock.core.types.locking import PoolInfo


class TokenLedgerProtocol(Protocol):
    """Fungible balances for every asset the engine touches."""

    async def balance_of(self, asset: str, holder: str) -> int: ...

    async def total_supply(self, asset: str) -> int: ...

    async def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> bool: ...

    async def transfer_from(
        self, asset: str, spender: str, owner: str, recipient: str, amount: int
    ) -> bool: ...

    async def approve(self, asset: str, owner: str, spender: str, amount: int) -> None: ...

    async def allowance(self, asset: str, owner: str, spender: str) -> int: ...

    async def mint(self, asset: str, minter: str, recipient: str, amount: int) -> bool: ...

    async def burn_from(self, asset: str, spender: str, holder: str, amount: int) -> None: ...


class SwapRouterProtocol(Protocol):
    """AMM router converting one asset into another along a path."""

    address: str

    async def quote(self, amount_in: int, path: list[str]) -> list[int]:
        """Expected amounts along ``path``; the last entry is the output."""
        ...

    async def execute(
        self,
        amount_in: int,
        min_amount_out: int,
        path: list[str],
        recipient: str,
        deadline: int,
    ) -> list[int]:
        """Swap ``amount_in`` pulled from the caller, crediting ``recipient``."""
        ...


class ZapperProtocol(Protocol):
    """Turns a single asset into a liquidity-pool position for the caller."""

    address: str

    async def zap(self, source_asset: str, amount: int, target_pair_asset: str) -> None: ...


class PoolRegistryProtocol(Protocol):
    """Enumerates other pools holding the deposit asset."""

    async def count(self) -> int: ...

    async def pool_at(self, index: int) -> PoolInfo: ...


class BlockClockProtocol(Protocol):
    """Source of the current block number and wall-clock timestamp."""

    def current_block(self) -> int: ...

    def timestamp(self) -> int: ...


@runtime_checkable
class CheckpointableProtocol(Protocol):
    """State holder that can be rolled back to an earlier snapshot."""

    def snapshot(self) -> Any: ...

    def restore(self, state: Any) -> None: ...


@runtime_checkable
class JournalingProtocol(CheckpointableProtocol, Protocol):
    """Checkpointable holder that must be told when a snapshot is no longer needed."""

    def commit(self, state: Any) -> None: ...
