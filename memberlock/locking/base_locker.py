"""
Shared engine infrastructure for the locker variants.

``BaseLocker`` owns the pieces both variants need: the guarded global
configuration, the lock ledger, the cap calculator, access control, the
pause switch, the contract allowlist and the atomic-section plumbing. It
also carries the administrative surface common to both variants.
"""

from typing import Any

from memberlock.core.events import EventPublisher, LockerEvent, LockerEventType
from memberlock.core.exceptions import (
    CirculatingCapExceededError,
    InputValidationError,
    MintFailedError,
    NotStartedError,
    PreconditionError,
    TransferFailedError,
)
from memberlock.core.logging import get_logger
from memberlock.core.types.locking import CapBreakdown, GlobalConfig, UserAccount
from memberlock.utils.math_utils import require_non_negative_int
from memberlock.utils.validators import (
    validate_address,
    validate_basis_points,
    validate_positive_amount,
)

from .access import AccessControl, ContractAllowlist, PauseSwitch
from .cap_calculator import CapCalculator
from .config_store import GuardedConfigStore
from .constants import ADMIN_ROLE, MAX_ALLOWANCE
from .guard import AtomicSection, ReentrancyGuard
from .interfaces import BlockClockProtocol, PoolRegistryProtocol, TokenLedgerProtocol
from .lock_ledger import LockLedger

logger = get_logger(__name__)


class BaseLocker:
    """Common state, guards and admin operations of a locker engine."""

    def __init__(
        self,
        address: str,
        config: GlobalConfig,
        ledger: TokenLedgerProtocol,
        clock: BlockClockProtocol,
        admin: str,
        pool_registry: PoolRegistryProtocol | None = None,
        access: AccessControl | None = None,
        publisher: EventPublisher | None = None,
        contracts: set[str] | None = None,
    ):
        """
        Initialize the engine.

        Args:
            address: Identity the engine holds custody under
            config: Initial global configuration
            ledger: Token ledger for deposit, LP, credit and stable assets
            clock: Block number and timestamp source
            admin: Initial holder of the admin role
            pool_registry: Pools excluded from circulating supply
            access: Shared role registry (a fresh one is created if omitted)
            publisher: Event publisher for observers
            contracts: Addresses known to be contracts for the allowlist check
        """
        self.address = validate_address(address, "address")
        self._ledger = ledger
        self._clock = clock
        self._access = access or AccessControl(validate_address(admin, "admin"))
        self._config = GuardedConfigStore(config, self._access)
        self._pause = PauseSwitch()
        self._allowlist = ContractAllowlist(contracts)
        self._locks = LockLedger()
        self._cap = CapCalculator(ledger, pool_registry)
        self._guard = ReentrancyGuard(f"{self.__class__.__name__}:{self.address}")
        self._publisher = publisher or EventPublisher()
        self._initialized = False
        self._logger = logger.bind(engine=self.__class__.__name__, engine_address=self.address)

    # Lifecycle

    async def initialize(self) -> None:
        """Issue collaborator allowances. Safe to call more than once."""
        if self._initialized:
            return
        await self._do_initialize()
        self._initialized = True
        self._logger.info("Locker initialized", config=self._config.current.model_dump())

    async def _do_initialize(self) -> None:
        """Variant specific start-up work."""

    # Plumbing

    def _participants(self) -> list[Any]:
        # The role registry and pool registry are not written by engine calls
        return [self._config, self._pause, self._allowlist, self._locks, self._ledger]

    def _atomic(self, operation: str) -> AtomicSection:
        return AtomicSection(self._guard, self._participants(), self._publisher, operation)

    def _event(self, event_type: LockerEventType, **data: Any) -> LockerEvent:
        return LockerEvent(
            event_type=event_type,
            source=self.address,
            block=self._clock.current_block(),
            data=data,
        )

    def _require_admin(self, caller: str) -> None:
        self._access.require_role(ADMIN_ROLE, caller)

    def _require_started(self) -> int:
        current_block = self._clock.current_block()
        start_block = self._config.current.start_block
        if current_block < start_block:
            raise NotStartedError(
                f"Locker starts at block {start_block}",
                start_block=start_block,
                current_block=current_block,
            )
        return current_block

    def _check_deposit_preconditions(self, caller: str, amount: int) -> int:
        """Shared deposit gate; returns the current block."""
        validate_address(caller, "caller")
        self._pause.require_not_paused("deposit")
        self._allowlist.check(caller)
        current_block = self._require_started()
        validate_positive_amount(amount)
        return current_block

    async def _naked_custody(self) -> int:
        return await self._ledger.balance_of(self._config.current.deposit_asset, self.address)

    async def _check_circulating_cap(self, naked_custody: int, naked_amount: int) -> int:
        cap = await self.max_naked_deposit_cap()
        if naked_custody + naked_amount > cap:
            raise CirculatingCapExceededError(
                f"Naked custody {naked_custody} + {naked_amount} exceeds cap {cap}",
                requested_amount=naked_custody + naked_amount,
                limit_amount=cap,
            )
        return cap

    async def _pull(self, asset: str, owner: str, amount: int) -> None:
        if not await self._ledger.transfer_from(asset, self.address, owner, self.address, amount):
            raise TransferFailedError(
                f"Could not pull {amount} from {owner}", asset=asset, account=owner
            )

    async def _push(self, asset: str, recipient: str, amount: int) -> None:
        if not await self._ledger.transfer(asset, self.address, recipient, amount):
            raise TransferFailedError(
                f"Could not send {amount} to {recipient}", asset=asset, account=recipient
            )

    async def _mint_credit(self, recipient: str, amount: int) -> None:
        if amount == 0:
            return
        credit_asset = self._config.current.credit_asset
        if not await self._ledger.mint(credit_asset, self.address, recipient, amount):
            raise MintFailedError(
                f"Mint of {amount} credit to {recipient} failed", asset=credit_asset
            )

    async def _reissue_allowance(
        self, asset: str, spender: str, previous_spender: str | None = None
    ) -> None:
        """Revoke the previous spender, then zero and re-approve the new one."""
        if previous_spender is not None and previous_spender != spender:
            await self._ledger.approve(asset, self.address, previous_spender, 0)
        await self._ledger.approve(asset, self.address, spender, 0)
        await self._ledger.approve(asset, self.address, spender, MAX_ALLOWANCE)

    # Queries (lock-free)

    async def max_naked_deposit_cap(self) -> int:
        return await self._cap.max_naked_deposit_cap(self._config.current)

    async def cap_breakdown(self) -> CapBreakdown:
        return await self._cap.breakdown(self._config.current)

    def get_account(self, address: str) -> UserAccount:
        return self._locks.get(address)

    def total_locked(self) -> int:
        return self._locks.total_locked()

    @property
    def config(self) -> GlobalConfig:
        return self._config.copy()

    @property
    def is_paused(self) -> bool:
        return self._pause.paused

    @property
    def access(self) -> AccessControl:
        return self._access

    @property
    def publisher(self) -> EventPublisher:
        return self._publisher

    def is_contract_allowed(self, address: str) -> bool:
        return self._allowlist.is_allowed(address)

    async def register_contract(self, address: str) -> None:
        """Mark ``address`` as a contract identity for the allowlist check."""
        async with self._atomic("register_contract"):
            self._allowlist.register_contract(validate_address(address, "address"))

    # Administration

    async def pause(self, caller: str) -> None:
        async with self._atomic("pause") as section:
            self._require_admin(caller)
            self._pause.pause()
            section.emit(self._event(LockerEventType.PAUSED, by=caller))
        self._logger.warning("Locker paused", by=caller)

    async def unpause(self, caller: str) -> None:
        async with self._atomic("unpause") as section:
            self._require_admin(caller)
            self._pause.unpause()
            section.emit(self._event(LockerEventType.UNPAUSED, by=caller))
        self._logger.info("Locker unpaused", by=caller)

    async def update_start_and_lock_blocks(
        self,
        caller: str,
        start_block: int,
        lock_duration_blocks: int,
        lock_free_blocks: int | None = None,
    ) -> None:
        """Move the start block later and reset lock lengths, before start only."""
        async with self._atomic("update_start_and_lock_blocks") as section:
            self._require_admin(caller)
            current_block = self._clock.current_block()
            config = self._config.current
            if current_block >= config.start_block:
                raise PreconditionError(
                    "Start and lock blocks are frozen once the locker has started",
                    field_name="start_block",
                    field_value=config.start_block,
                )
            require_non_negative_int(start_block, "start_block")
            require_non_negative_int(lock_duration_blocks, "lock_duration_blocks")
            if start_block <= current_block:
                raise InputValidationError(
                    "New start block must be in the future",
                    parameter_name="start_block",
                    parameter_value=start_block,
                )

            changes: dict[str, Any] = {
                "start_block": start_block,
                "lock_duration_blocks": lock_duration_blocks,
            }
            if lock_free_blocks is not None:
                changes["lock_free_blocks"] = require_non_negative_int(
                    lock_free_blocks, "lock_free_blocks"
                )
            self._config.update(caller, **changes)
            section.emit(self._event(LockerEventType.START_AND_LOCK_BLOCKS_UPDATED, **changes))

    async def set_max_cap(self, caller: str, absolute_cap: int) -> None:
        async with self._atomic("set_max_cap") as section:
            self._require_admin(caller)
            require_non_negative_int(absolute_cap, "absolute_cap")
            previous = self._config.update(caller, absolute_cap=absolute_cap)
            section.emit(
                self._event(
                    LockerEventType.MAX_CAP_UPDATED,
                    previous=previous["absolute_cap"],
                    current=absolute_cap,
                )
            )

    async def set_max_cap_circulating_bp(self, caller: str, circulating_cap_bp: int) -> None:
        async with self._atomic("set_max_cap_circulating_bp") as section:
            self._require_admin(caller)
            validate_basis_points(circulating_cap_bp, "circulating_cap_bp")
            previous = self._config.update(caller, circulating_cap_bp=circulating_cap_bp)
            section.emit(
                self._event(
                    LockerEventType.MAX_CAP_CIRCULATING_BP_UPDATED,
                    previous=previous["circulating_cap_bp"],
                    current=circulating_cap_bp,
                )
            )

    async def set_unlock(self, caller: str, unlock_override: bool) -> None:
        async with self._atomic("set_unlock") as section:
            self._require_admin(caller)
            self._config.update(caller, unlock_override=bool(unlock_override))
            section.emit(self._event(LockerEventType.UNLOCK_UPDATED, unlock=bool(unlock_override)))
        self._logger.warning("Unlock override changed", unlock=bool(unlock_override), by=caller)

    async def set_treasury(self, caller: str, treasury_address: str) -> None:
        async with self._atomic("set_treasury") as section:
            self._require_admin(caller)
            validate_address(treasury_address, "treasury_address")
            previous = self._config.update(caller, treasury_address=treasury_address)
            section.emit(
                self._event(
                    LockerEventType.TREASURY_UPDATED,
                    previous=previous["treasury_address"],
                    current=treasury_address,
                )
            )

    async def set_pool_registry(self, caller: str, pool_registry: PoolRegistryProtocol | None) -> None:
        async with self._atomic("set_pool_registry") as section:
            self._require_admin(caller)
            self._cap.pool_registry = pool_registry
            section.emit(self._event(LockerEventType.POOL_REGISTRY_UPDATED, by=caller))

    async def set_contract_allowed(self, caller: str, account: str, allowed: bool) -> None:
        async with self._atomic("set_contract_allowed") as section:
            self._require_admin(caller)
            validate_address(account, "account")
            self._allowlist.set_allowed(account, bool(allowed))
            section.emit(
                self._event(
                    LockerEventType.CONTRACT_ALLOWLIST_UPDATED, account=account, allowed=bool(allowed)
                )
            )

    def _protected_assets(self) -> set[str]:
        config = self._config.current
        return {asset for asset in (config.deposit_asset, config.lp_asset, config.credit_asset) if asset}

    async def recover_wrong_tokens(self, caller: str, asset: str, amount: int) -> None:
        """Send an asset the engine received by mistake to the calling admin."""
        async with self._atomic("recover_wrong_tokens") as section:
            self._require_admin(caller)
            validate_positive_amount(amount)
            if asset in self._protected_assets():
                raise InputValidationError(
                    f"{asset} is held on behalf of lockers and cannot be recovered",
                    parameter_name="asset",
                    parameter_value=asset,
                )
            await self._push(asset, caller, amount)
            section.emit(self._event(LockerEventType.TOKENS_RECOVERED, asset=asset, amount=amount))
