"""
Dynamic naked-deposit cap.

The cap is the smaller of an absolute ceiling and a basis-point share of the
deposit asset's estimated circulating supply, where circulating supply is
total supply minus the treasury balance minus balances held by registered
pools.
"""

from memberlock.core.logging import get_logger
from memberlock.core.types.locking import CapBreakdown, GlobalConfig
from memberlock.utils.math_utils import apply_basis_points

from .interfaces import PoolRegistryProtocol, TokenLedgerProtocol

logger = get_logger(__name__)


def compute_naked_deposit_cap(
    total_supply: int,
    treasury_balance: int,
    pools_balance: int,
    circulating_cap_bp: int,
    absolute_cap: int,
) -> CapBreakdown:
    """Combine supply figures into the admissible naked-deposit ceiling.

    Exclusions larger than the total supply evaluate as zero circulating
    supply rather than wrapping.
    """
    circulating = total_supply - treasury_balance - pools_balance
    if circulating < 0:
        logger.warning(
            "Supply exclusions exceed total supply",
            total_supply=total_supply,
            treasury_balance=treasury_balance,
            pools_balance=pools_balance,
        )
        circulating = 0

    ratio_cap = apply_basis_points(circulating, circulating_cap_bp)
    return CapBreakdown(
        total_supply=total_supply,
        treasury_balance=treasury_balance,
        pools_balance=pools_balance,
        circulating_supply=circulating,
        ratio_cap=ratio_cap,
        absolute_cap=absolute_cap,
        effective_cap=min(absolute_cap, ratio_cap),
    )


class CapCalculator:
    """Reads live balances and evaluates the cap. Has no side effects."""

    def __init__(self, ledger: TokenLedgerProtocol, pool_registry: PoolRegistryProtocol | None):
        self._ledger = ledger
        self._pool_registry = pool_registry

    @property
    def pool_registry(self) -> PoolRegistryProtocol | None:
        return self._pool_registry

    @pool_registry.setter
    def pool_registry(self, registry: PoolRegistryProtocol | None) -> None:
        self._pool_registry = registry

    async def pools_balance(self, asset: str) -> int:
        if self._pool_registry is None:
            return 0
        total = 0
        for index in range(await self._pool_registry.count()):
            pool = await self._pool_registry.pool_at(index)
            total += await self._ledger.balance_of(asset, pool.address)
        return total

    async def breakdown(self, config: GlobalConfig) -> CapBreakdown:
        asset = config.deposit_asset
        return compute_naked_deposit_cap(
            total_supply=await self._ledger.total_supply(asset),
            treasury_balance=await self._ledger.balance_of(asset, config.treasury_address),
            pools_balance=await self.pools_balance(asset),
            circulating_cap_bp=config.circulating_cap_bp,
            absolute_cap=config.absolute_cap,
        )

    async def max_naked_deposit_cap(self, config: GlobalConfig) -> int:
        return (await self.breakdown(config)).effective_cap
