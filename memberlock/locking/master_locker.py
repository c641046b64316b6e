"""
Master locker: split-based deposits with LP zapping.

Each deposit is divided by the user's split. The split id is the basis-point
share routed through the zapper into the LP pair; the remainder stays as
naked deposit asset and earns member credit at the split's percent
multiplier. Users are bound to one split for life.
"""

from memberlock.core.events import EventPublisher, LockerEventType
from memberlock.core.exceptions import (
    CollaboratorError,
    ConfigurationError,
    SlippageError,
    SplitBindingError,
    UserCapExceededError,
)
from memberlock.core.logging import log_async_performance
from memberlock.core.types.locking import (
    BASIS_POINTS,
    DepositReceipt,
    GlobalConfig,
    SplitConfig,
)
from memberlock.utils.math_utils import apply_basis_points, apply_percent, split_by_basis_points

from .access import AccessControl
from .base_locker import BaseLocker
from .guard import AtomicSection
from .interfaces import (
    BlockClockProtocol,
    PoolRegistryProtocol,
    SwapRouterProtocol,
    TokenLedgerProtocol,
    ZapperProtocol,
)
from .split_registry import SplitRegistry


class MasterLocker(BaseLocker):
    """Split-variant deposit engine."""

    def __init__(
        self,
        address: str,
        config: GlobalConfig,
        ledger: TokenLedgerProtocol,
        clock: BlockClockProtocol,
        admin: str,
        zapper: ZapperProtocol | None = None,
        swap_router: SwapRouterProtocol | None = None,
        pool_registry: PoolRegistryProtocol | None = None,
        access: AccessControl | None = None,
        publisher: EventPublisher | None = None,
        contracts: set[str] | None = None,
    ):
        super().__init__(
            address,
            config,
            ledger,
            clock,
            admin,
            pool_registry=pool_registry,
            access=access,
            publisher=publisher,
            contracts=contracts,
        )
        self._zapper = zapper
        self._swap_router = swap_router
        self._splits = SplitRegistry()

    async def _do_initialize(self) -> None:
        config = self._config.current
        if self._zapper is not None:
            await self._reissue_allowance(config.deposit_asset, self._zapper.address)
        if self._swap_router is not None and config.stable_asset:
            await self._reissue_allowance(config.stable_asset, self._swap_router.address)

    def _participants(self) -> list:
        return super()._participants() + [self._splits]

    # Queries

    def get_split(self, split_id: int) -> SplitConfig | None:
        return self._splits.get(split_id)

    def list_splits(self) -> list[SplitConfig]:
        return self._splits.all_splits()

    def is_split_valid(self, split_id: int) -> bool:
        return self._splits.is_valid(split_id)

    @property
    def zapper(self) -> ZapperProtocol | None:
        return self._zapper

    @property
    def swap_router(self) -> SwapRouterProtocol | None:
        return self._swap_router

    # Deposits

    @log_async_performance
    async def deposit(self, caller: str, amount: int, split_id: int) -> DepositReceipt:
        """Lock ``amount`` of the deposit asset under ``split_id``."""
        async with self._atomic("deposit") as section:
            self._check_deposit_preconditions(caller, amount)
            split = self._check_split(caller, split_id)
            naked_custody = await self._naked_custody()
            return await self._deposit_locked(
                section, caller, amount, split, naked_custody, pull=True
            )

    @log_async_performance
    async def deposit_stable(
        self,
        caller: str,
        stable_amount: int,
        split_id: int,
        min_amount_out: int | None = None,
    ) -> DepositReceipt:
        """Swap a stable asset into the deposit asset, then deposit the realised amount."""
        async with self._atomic("deposit_stable") as section:
            self._check_deposit_preconditions(caller, stable_amount)
            split = self._check_split(caller, split_id)
            config = self._config.current
            if self._swap_router is None or not config.stable_asset or not config.stable_path:
                raise ConfigurationError("Stable deposits are not configured")

            naked_custody = await self._naked_custody()
            await self._pull(config.stable_asset, caller, stable_amount)
            realised = await self._swap_stable(stable_amount, min_amount_out)

            receipt = await self._deposit_locked(
                section, caller, realised, split, naked_custody, pull=False
            )
            section.emit(
                self._event(
                    LockerEventType.DEPOSIT_STABLE,
                    user=caller,
                    stable_amount=stable_amount,
                    deposit_amount=realised,
                    split_id=split_id,
                )
            )
            return receipt

    def _check_split(self, caller: str, split_id: int) -> SplitConfig:
        split = self._splits.require_valid(split_id)
        bound = self._locks.get(caller).split_id
        if bound is not None and bound != split_id:
            raise SplitBindingError(
                f"Account {caller} is bound to split {bound}",
                bound_split_id=bound,
                requested_split_id=split_id,
            )
        return split

    async def _deposit_locked(
        self,
        section: AtomicSection,
        caller: str,
        amount: int,
        split: SplitConfig,
        naked_custody: int,
        pull: bool,
    ) -> DepositReceipt:
        """Deposit body; runs inside the caller's atomic section after the split was checked."""
        config = self._config.current
        current_block = self._clock.current_block()
        split_id = split.split_id

        lp_portion, naked_portion = split_by_basis_points(amount, split_id)

        await self._check_circulating_cap(naked_custody, naked_portion)
        locked = self._locks.get(caller).locked_naked_amount
        if locked + naked_portion > split.per_user_naked_cap:
            raise UserCapExceededError(
                f"Split {split_id} allows {split.per_user_naked_cap} naked per user",
                requested_amount=locked + naked_portion,
                limit_amount=split.per_user_naked_cap,
            )

        credit_minted = apply_percent(naked_portion, split.credit_multiplier_percent)

        if pull:
            await self._pull(config.deposit_asset, caller, amount)
        lp_credited = await self._zap(lp_portion) if lp_portion else 0

        self._locks.account(caller).bind_split(split_id)
        self._locks.record_deposit(
            caller, naked_portion, credit_minted, current_block, lp_amount=lp_credited
        )
        self._locks.apply_split_lock_reset(caller, split.lock_free_window_blocks, current_block)
        self._splits.record_deposit(split_id, naked_portion)

        await self._mint_credit(caller, credit_minted)

        account = self._locks.get(caller)
        receipt = DepositReceipt(
            user=caller,
            amount=amount,
            naked_amount=naked_portion,
            lp_amount=lp_credited,
            credit_minted=credit_minted,
            split_id=split_id,
            lock_start_block=account.lock_start_block,
            block=current_block,
        )
        section.emit(self._event(LockerEventType.DEPOSIT, **receipt.model_dump()))
        self._logger.info(
            "Deposit accepted",
            user=caller,
            amount=amount,
            naked=naked_portion,
            lp=lp_credited,
            credit=credit_minted,
            split_id=split_id,
        )
        return receipt

    async def _zap(self, amount: int) -> int:
        """Zap ``amount`` of deposit asset; returns the LP custody delta."""
        config = self._config.current
        if self._zapper is None or not config.lp_asset:
            raise ConfigurationError("LP splits need a zapper and an LP asset")

        before = await self._ledger.balance_of(config.lp_asset, self.address)
        await self._zapper.zap(config.deposit_asset, amount, config.lp_asset)
        after = await self._ledger.balance_of(config.lp_asset, self.address)

        if after < before:
            raise CollaboratorError(
                "Zapper reduced LP custody", collaborator="zapper", asset=config.lp_asset
            )
        return after - before

    async def _swap_stable(self, amount: int, min_amount_out: int | None) -> int:
        """Swap stable into deposit asset; returns the deposit custody delta."""
        config = self._config.current
        path = list(config.stable_path)

        if min_amount_out is None:
            quoted = (await self._swap_router.quote(amount, path))[-1]
            min_amount_out = apply_basis_points(quoted, BASIS_POINTS - config.stable_slippage_bp)
        deadline = self._clock.timestamp() + config.swap_deadline_seconds

        before = await self._naked_custody()
        await self._swap_router.execute(amount, min_amount_out, path, self.address, deadline)
        realised = await self._naked_custody() - before

        if realised < min_amount_out or realised <= 0:
            raise SlippageError(
                f"Swap realised {realised}, minimum was {min_amount_out}",
                expected_amount=min_amount_out,
                actual_amount=realised,
                asset=config.deposit_asset,
            )
        return realised

    # Administration

    async def configure_split(
        self,
        caller: str,
        split_id: int,
        lock_free_window_blocks: int,
        credit_multiplier_percent: int,
        per_user_naked_cap: int,
    ) -> SplitConfig:
        async with self._atomic("configure_split") as section:
            self._require_admin(caller)
            split = self._splits.configure(
                split_id, lock_free_window_blocks, credit_multiplier_percent, per_user_naked_cap
            )
            section.emit(self._event(LockerEventType.SPLIT_CONFIGURED, **split.model_dump()))
            return split.model_copy()

    async def set_zapper(self, caller: str, zapper: ZapperProtocol) -> None:
        """Swap the zapper, moving the deposit asset allowance zero-first."""
        async with self._atomic("set_zapper") as section:
            self._require_admin(caller)
            previous = self._zapper
            await self._reissue_allowance(
                self._config.current.deposit_asset,
                zapper.address,
                previous.address if previous is not None else None,
            )
            self._zapper = zapper
            section.emit(
                self._event(
                    LockerEventType.ZAPPER_UPDATED,
                    previous=previous.address if previous is not None else None,
                    current=zapper.address,
                )
            )

    async def set_swap_router(self, caller: str, swap_router: SwapRouterProtocol) -> None:
        """Swap the router, moving the stable asset allowance zero-first."""
        async with self._atomic("set_swap_router") as section:
            self._require_admin(caller)
            stable_asset = self._config.current.stable_asset
            if not stable_asset:
                raise ConfigurationError("No stable asset configured")
            previous = self._swap_router
            await self._reissue_allowance(
                stable_asset,
                swap_router.address,
                previous.address if previous is not None else None,
            )
            self._swap_router = swap_router
            section.emit(
                self._event(
                    LockerEventType.SWAP_ROUTER_UPDATED,
                    previous=previous.address if previous is not None else None,
                    current=swap_router.address,
                )
            )
