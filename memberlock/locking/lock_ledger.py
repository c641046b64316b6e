"""
Per-user lock records.

The two engine variants use opposite triggers for restarting a user's lock
clock on deposit; both rules live here side by side:

- split rule (``MasterLocker``): restart while the user's lock-free window
  has NOT yet elapsed, i.e. ``lock_start_block + window > current_block``.
- global rule (``CreditLocker``): restart on the first ever lock, or once
  the engine-wide lock-free period after ``start_block`` HAS elapsed.
"""

from memberlock.core.exceptions import InsufficientLockedBalanceError
from memberlock.core.logging import get_logger
from memberlock.core.types.locking import UserAccount
from memberlock.utils.math_utils import floor_subtract

logger = get_logger(__name__)


def split_window_resets_lock(lock_start_block: int, lock_free_window_blocks: int, current_block: int) -> bool:
    return lock_start_block + lock_free_window_blocks > current_block


def global_window_resets_lock(
    lock_start_block: int, start_block: int, lock_free_blocks: int, current_block: int
) -> bool:
    return lock_start_block == 0 or current_block > start_block + lock_free_blocks


def unlock_block(account: UserAccount, lock_duration_blocks: int) -> int:
    """Last block at which the account is still locked."""
    return account.lock_start_block + lock_duration_blocks


def is_unlocked(
    account: UserAccount, lock_duration_blocks: int, current_block: int, unlock_override: bool
) -> bool:
    return unlock_override or current_block > unlock_block(account, lock_duration_blocks)


class LockLedger:
    """Owns every ``UserAccount``, keyed by address."""

    def __init__(self):
        self._accounts: dict[str, UserAccount] = {}

    def __contains__(self, address: str) -> bool:
        return address in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)

    def get(self, address: str) -> UserAccount:
        """Return a detached copy of the account (an empty record if unknown)."""
        account = self._accounts.get(address)
        if account is None:
            return UserAccount(address=address)
        return account.model_copy(deep=True)

    def account(self, address: str) -> UserAccount:
        """Return the live, mutable account, creating it on first use."""
        account = self._accounts.get(address)
        if account is None:
            account = UserAccount(address=address)
            self._accounts[address] = account
        return account

    def addresses(self) -> list[str]:
        return list(self._accounts)

    def total_locked(self) -> int:
        return sum(account.locked_naked_amount for account in self._accounts.values())

    def total_locked_lp(self) -> int:
        return sum(account.locked_lp_amount for account in self._accounts.values())

    def record_deposit(
        self,
        address: str,
        naked_amount: int,
        credit_amount: int,
        block: int,
        lp_amount: int = 0,
    ) -> UserAccount:
        account = self.account(address)
        account.locked_naked_amount += naked_amount
        account.locked_lp_amount += lp_amount
        account.credit_balance += credit_amount
        account.last_activity_block = block
        return account

    def apply_split_lock_reset(
        self, address: str, lock_free_window_blocks: int, current_block: int
    ) -> bool:
        account = self.account(address)
        if split_window_resets_lock(account.lock_start_block, lock_free_window_blocks, current_block):
            account.lock_start_block = current_block
            logger.debug("Lock clock restarted", address=address, block=current_block, rule="split")
            return True
        return False

    def apply_global_lock_reset(
        self, address: str, start_block: int, lock_free_blocks: int, current_block: int
    ) -> bool:
        account = self.account(address)
        if global_window_resets_lock(account.lock_start_block, start_block, lock_free_blocks, current_block):
            account.lock_start_block = current_block
            logger.debug("Lock clock restarted", address=address, block=current_block, rule="global")
            return True
        return False

    def record_withdraw(self, address: str, amount: int, credit_amount: int) -> UserAccount:
        account = self.account(address)
        self._require_locked(account, amount)
        account.locked_naked_amount -= amount
        account.credit_balance = floor_subtract(account.credit_balance, credit_amount)
        return account

    def move(
        self, sender: str, recipient: str, amount: int, credit_amount: int, block: int
    ) -> tuple[UserAccount, UserAccount]:
        """Move a slice of locked claim and its tracked credit between users."""
        source = self.account(sender)
        self._require_locked(source, amount)
        target = self.account(recipient)

        source.locked_naked_amount -= amount
        source.credit_balance = floor_subtract(source.credit_balance, credit_amount)
        target.locked_naked_amount += amount
        target.credit_balance += credit_amount
        target.last_activity_block = block
        return source, target

    @staticmethod
    def _require_locked(account: UserAccount, amount: int) -> None:
        if amount > account.locked_naked_amount:
            raise InsufficientLockedBalanceError(
                f"{account.address} has {account.locked_naked_amount} locked, {amount} requested",
                requested_amount=amount,
                limit_amount=account.locked_naked_amount,
            )

    def snapshot(self) -> dict[str, UserAccount]:
        return {address: account.model_copy(deep=True) for address, account in self._accounts.items()}

    def restore(self, state: dict[str, UserAccount]) -> None:
        self._accounts = {address: account.model_copy(deep=True) for address, account in state.items()}
