"""
Unit tests for per-user lock records.

This module tests both lock-reset rules, the unlock boundary and the
ledger's deposit, withdraw and move bookkeeping.
"""

import pytest

from memberlock.core.exceptions import InsufficientLockedBalanceError, SplitBindingError
from memberlock.core.types.locking import UserAccount
from memberlock.locking.lock_ledger import (
    LockLedger,
    global_window_resets_lock,
    is_unlocked,
    split_window_resets_lock,
    unlock_block,
)
from tests.fakes import ALICE, BOB


class TestLockResetRules:
    """Test the two lock-reset predicates."""

    def test_split_rule_resets_inside_window(self):
        """Test deposits inside the lock-free window restart the clock."""
        assert split_window_resets_lock(lock_start_block=0, lock_free_window_blocks=100, current_block=10)
        assert split_window_resets_lock(10, 100, 109)

    def test_split_rule_keeps_clock_after_window(self):
        """Test deposits once the window elapsed keep the lock start."""
        assert not split_window_resets_lock(10, 100, 110)
        assert not split_window_resets_lock(10, 100, 500)

    def test_split_rule_with_zero_window_never_resets(self):
        assert not split_window_resets_lock(0, 0, 0)
        assert not split_window_resets_lock(0, 0, 42)

    def test_global_rule_resets_first_lock(self):
        """Test an account that never locked always starts its clock."""
        assert global_window_resets_lock(0, start_block=5, lock_free_blocks=50, current_block=10)

    def test_global_rule_keeps_clock_inside_free_period(self):
        assert not global_window_resets_lock(10, 5, 50, 55)

    def test_global_rule_resets_after_free_period(self):
        assert global_window_resets_lock(10, 5, 50, 56)


class TestUnlock:
    """Test the unlock boundary."""

    def test_boundary_block_is_still_locked(self):
        """Test withdraw needs a block strictly after start plus duration."""
        account = UserAccount(address=ALICE, lock_start_block=10)

        assert unlock_block(account, 100) == 110
        assert not is_unlocked(account, 100, current_block=110, unlock_override=False)
        assert is_unlocked(account, 100, current_block=111, unlock_override=False)

    def test_override_unlocks_immediately(self):
        account = UserAccount(address=ALICE, lock_start_block=10)
        assert is_unlocked(account, 100, current_block=11, unlock_override=True)


class TestLockLedger:
    """Test LockLedger bookkeeping."""

    @pytest.fixture
    def locks(self):
        return LockLedger()

    def test_unknown_account_is_empty(self, locks):
        """Test reading an unknown address does not create it."""
        account = locks.get(ALICE)

        assert account.locked_naked_amount == 0
        assert account.split_id is None
        assert ALICE not in locks

    def test_get_returns_detached_copy(self, locks):
        locks.record_deposit(ALICE, 100, 200, block=10)

        copy = locks.get(ALICE)
        copy.locked_naked_amount = 0

        assert locks.get(ALICE).locked_naked_amount == 100

    def test_record_deposit_accumulates(self, locks):
        locks.record_deposit(ALICE, 100, 150, block=10, lp_amount=30)
        locks.record_deposit(ALICE, 50, 75, block=12)

        account = locks.get(ALICE)
        assert account.locked_naked_amount == 150
        assert account.locked_lp_amount == 30
        assert account.credit_balance == 225
        assert account.last_activity_block == 12
        assert locks.total_locked() == 150
        assert locks.total_locked_lp() == 30

    def test_split_lock_reset(self, locks):
        """Test the split rule applied through the ledger."""
        assert locks.apply_split_lock_reset(ALICE, 100, 10)
        assert locks.get(ALICE).lock_start_block == 10

        assert locks.apply_split_lock_reset(ALICE, 100, 50)
        assert locks.get(ALICE).lock_start_block == 50

        assert not locks.apply_split_lock_reset(ALICE, 100, 200)
        assert locks.get(ALICE).lock_start_block == 50

    def test_split_lock_reset_at_or_after_window_leaves_zero(self, locks):
        """Test a first deposit past the window never sets a lock start."""
        assert not locks.apply_split_lock_reset(ALICE, 100, 150)
        assert locks.get(ALICE).lock_start_block == 0

    def test_global_lock_reset(self, locks):
        assert locks.apply_global_lock_reset(ALICE, 5, 50, 10)
        assert not locks.apply_global_lock_reset(ALICE, 5, 50, 40)
        assert locks.get(ALICE).lock_start_block == 10

        assert locks.apply_global_lock_reset(ALICE, 5, 50, 60)
        assert locks.get(ALICE).lock_start_block == 60

    def test_record_withdraw_floors_credit(self, locks):
        """Test tracked credit never goes negative."""
        locks.record_deposit(ALICE, 100, 10, block=10)

        account = locks.record_withdraw(ALICE, 60, 50)

        assert account.locked_naked_amount == 40
        assert account.credit_balance == 0

    def test_record_withdraw_rejects_excess(self, locks):
        locks.record_deposit(ALICE, 100, 100, block=10)

        with pytest.raises(InsufficientLockedBalanceError):
            locks.record_withdraw(ALICE, 101, 101)

        assert locks.get(ALICE).locked_naked_amount == 100

    def test_move_conserves_total(self, locks):
        """Test moving a locked claim keeps the ledger total."""
        locks.record_deposit(ALICE, 1_000, 2_000, block=10)

        source, target = locks.move(ALICE, BOB, 400, 800, block=20)

        assert source.locked_naked_amount == 600
        assert source.credit_balance == 1_200
        assert target.locked_naked_amount == 400
        assert target.credit_balance == 800
        assert target.last_activity_block == 20
        assert locks.total_locked() == 1_000

    def test_snapshot_restore(self, locks):
        locks.record_deposit(ALICE, 100, 100, block=10)
        state = locks.snapshot()

        locks.record_deposit(ALICE, 900, 900, block=11)
        locks.record_deposit(BOB, 5, 5, block=11)
        locks.restore(state)

        assert locks.get(ALICE).locked_naked_amount == 100
        assert BOB not in locks
        assert len(locks) == 1


class TestUserAccountBinding:
    """Test write-once split binding."""

    def test_first_binding_sticks(self):
        account = UserAccount(address=ALICE)
        assert not account.is_bound

        account.bind_split(2500)

        assert account.is_bound
        assert account.split_id == 2500

    def test_rebinding_same_split_is_noop(self):
        account = UserAccount(address=ALICE, split_id=2500)
        account.bind_split(2500)
        assert account.split_id == 2500

    def test_rebinding_other_split_fails(self):
        account = UserAccount(address=ALICE, split_id=2500)

        with pytest.raises(SplitBindingError):
            account.bind_split(5000)
        with pytest.raises(SplitBindingError):
            account.split_id = None

        assert account.split_id == 2500
