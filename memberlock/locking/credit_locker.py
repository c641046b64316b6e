"""
Credit locker: plain deposits with burn-on-withdraw member credit.

Deposits mint member credit at ``credit_multiplier_bp`` per deposited unit.
Withdrawing after the lock window returns the deposit asset and burns the
same proportional credit from the caller. Locked claims can be moved to
another user by holders of the transfer role, carrying their credit along.
"""

from memberlock.core.events import LockerEventType
from memberlock.core.exceptions import (
    InputValidationError,
    InsufficientLockedBalanceError,
    LockPeriodActiveError,
    PreconditionError,
    TransferFailedError,
)
from memberlock.core.logging import log_async_performance
from memberlock.core.types.locking import DepositReceipt, TransferReceipt, WithdrawReceipt
from memberlock.utils.math_utils import apply_basis_points, require_non_negative_int
from memberlock.utils.validators import validate_address, validate_positive_amount

from .base_locker import BaseLocker
from .constants import TRANSFER_ROLE
from .lock_ledger import is_unlocked, unlock_block


class CreditLocker(BaseLocker):
    """Credit-burning deposit, withdraw and transfer engine."""

    def _credit_for(self, amount: int) -> int:
        return apply_basis_points(amount, self._config.current.credit_multiplier_bp)

    @log_async_performance
    async def deposit(self, caller: str, amount: int) -> DepositReceipt:
        """Lock ``amount`` of the deposit asset and mint member credit."""
        async with self._atomic("deposit") as section:
            current_block = self._check_deposit_preconditions(caller, amount)
            config = self._config.current

            naked_custody = await self._naked_custody()
            await self._check_circulating_cap(naked_custody, amount)
            credit_minted = self._credit_for(amount)

            await self._pull(config.deposit_asset, caller, amount)
            self._locks.record_deposit(caller, amount, credit_minted, current_block)
            self._locks.apply_global_lock_reset(
                caller, config.start_block, config.lock_free_blocks, current_block
            )
            await self._mint_credit(caller, credit_minted)

            receipt = DepositReceipt(
                user=caller,
                amount=amount,
                naked_amount=amount,
                credit_minted=credit_minted,
                lock_start_block=self._locks.get(caller).lock_start_block,
                block=current_block,
            )
            section.emit(self._event(LockerEventType.DEPOSIT, **receipt.model_dump()))

        self._logger.info("Deposit accepted", user=caller, amount=amount, credit=credit_minted)
        return receipt

    @log_async_performance
    async def withdraw(self, caller: str, amount: int) -> WithdrawReceipt:
        """Unlock ``amount``, return it to the caller and burn its credit.

        Not affected by the pause switch.
        """
        async with self._atomic("withdraw") as section:
            validate_address(caller, "caller")
            self._allowlist.check(caller)
            current_block = self._require_started()
            validate_positive_amount(amount)
            config = self._config.current

            account = self._locks.get(caller)
            if amount > account.locked_naked_amount:
                raise InsufficientLockedBalanceError(
                    f"{caller} has {account.locked_naked_amount} locked, {amount} requested",
                    requested_amount=amount,
                    limit_amount=account.locked_naked_amount,
                )
            if not is_unlocked(
                account, config.lock_duration_blocks, current_block, config.unlock_override
            ):
                raise LockPeriodActiveError(
                    f"{caller} is locked until after block "
                    f"{unlock_block(account, config.lock_duration_blocks)}",
                    lock_start_block=account.lock_start_block,
                    unlock_block=unlock_block(account, config.lock_duration_blocks),
                    current_block=current_block,
                )

            credit_burned = self._credit_for(amount)
            self._locks.record_withdraw(caller, amount, credit_burned)
            await self._push(config.deposit_asset, caller, amount)
            if credit_burned:
                await self._ledger.burn_from(config.credit_asset, self.address, caller, credit_burned)

            receipt = WithdrawReceipt(
                user=caller, amount=amount, credit_burned=credit_burned, block=current_block
            )
            section.emit(self._event(LockerEventType.WITHDRAW, **receipt.model_dump()))

        self._logger.info("Withdraw accepted", user=caller, amount=amount, credit=credit_burned)
        return receipt

    async def withdraw_all(self, caller: str) -> WithdrawReceipt:
        return await self.withdraw(caller, self._locks.get(caller).locked_naked_amount)

    @log_async_performance
    async def transfer(self, caller: str, amount: int, recipient: str) -> TransferReceipt:
        """Move ``amount`` of the caller's locked claim, with its credit, to ``recipient``."""
        async with self._atomic("transfer") as section:
            validate_address(caller, "caller")
            self._access.require_role_or_open(TRANSFER_ROLE, caller)
            self._pause.require_not_paused("transfer")
            validate_positive_amount(amount)
            validate_address(recipient, "recipient")
            if recipient == caller:
                raise InputValidationError(
                    "Cannot transfer a locked claim to oneself",
                    parameter_name="recipient",
                    parameter_value=recipient,
                )
            config = self._config.current
            current_block = self._clock.current_block()

            credit_amount = self._credit_for(amount)
            self._locks.move(caller, recipient, amount, credit_amount, current_block)
            self._locks.apply_global_lock_reset(
                recipient, config.start_block, config.lock_free_blocks, current_block
            )
            if credit_amount and not await self._ledger.transfer_from(
                config.credit_asset, self.address, caller, recipient, credit_amount
            ):
                raise TransferFailedError(
                    f"Could not move {credit_amount} credit from {caller}",
                    asset=config.credit_asset,
                    account=caller,
                )

            receipt = TransferReceipt(
                sender=caller,
                recipient=recipient,
                amount=amount,
                credit_amount=credit_amount,
                block=current_block,
            )
            section.emit(self._event(LockerEventType.TRANSFER, **receipt.model_dump()))

        self._logger.info(
            "Locked claim transferred",
            sender=caller,
            recipient=recipient,
            amount=amount,
            credit=credit_amount,
        )
        return receipt

    # Administration

    async def set_credit_multiplier_bp(self, caller: str, credit_multiplier_bp: int) -> None:
        """Change the credit multiplier; only before the locker starts."""
        async with self._atomic("set_credit_multiplier_bp") as section:
            self._require_admin(caller)
            require_non_negative_int(credit_multiplier_bp, "credit_multiplier_bp")
            config = self._config.current
            if self._clock.current_block() >= config.start_block:
                raise PreconditionError(
                    "Credit multiplier is frozen once the locker has started",
                    field_name="credit_multiplier_bp",
                    field_value=config.credit_multiplier_bp,
                )
            previous = self._config.update(caller, credit_multiplier_bp=credit_multiplier_bp)
            section.emit(
                self._event(
                    LockerEventType.CREDIT_MULTIPLIER_UPDATED,
                    previous=previous["credit_multiplier_bp"],
                    current=credit_multiplier_bp,
                )
            )
