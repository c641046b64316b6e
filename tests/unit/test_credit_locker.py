"""
Unit tests for CreditLocker.

This module tests credit-minting deposits, the withdraw unlock boundary,
credit burning, locked-claim transfers and credit-only administration.
"""

import asyncio

import pytest
import pytest_asyncio

from memberlock.core.events import LockerEventType, RecordingEventHandler
from memberlock.core.exceptions import (
    AuthorizationError,
    CirculatingCapExceededError,
    InputValidationError,
    InsufficientLockedBalanceError,
    LockPeriodActiveError,
    MintFailedError,
    NotStartedError,
    PausedError,
    PreconditionError,
    TransferFailedError,
)
from memberlock.core.types.locking import ZERO_ADDRESS, GlobalConfig
from memberlock.locking.constants import TRANSFER_ROLE
from memberlock.locking.credit_locker import CreditLocker
from memberlock.locking.memory import InMemoryTokenLedger, ManualBlockClock
from tests.fakes import (
    ADMIN,
    ALICE,
    BOB,
    CREDIT,
    DEPOSIT,
    LOCKER,
    USER_FUNDS,
    YieldingTokenLedger,
    fund,
)


class TestCreditLockerDeposit:
    """Test deposits into the credit locker."""

    @pytest.mark.asyncio
    async def test_deposit_mints_credit(self, credit_locker, ledger):
        receipt = await credit_locker.deposit(ALICE, 1000)

        assert receipt.naked_amount == 1000
        assert receipt.credit_minted == 2000
        assert receipt.lock_start_block == 10
        assert receipt.split_id is None
        assert ledger.balance(DEPOSIT, LOCKER) == 1000
        assert ledger.balance(CREDIT, ALICE) == 2000
        assert credit_locker.get_account(ALICE).credit_balance == 2000

    @pytest.mark.asyncio
    async def test_lock_start_follows_global_free_period(self, credit_locker, clock):
        """Test later deposits keep the clock inside the free period and restart it after."""
        await credit_locker.deposit(ALICE, 100)
        assert credit_locker.get_account(ALICE).lock_start_block == 10

        clock.set_block(40)
        await credit_locker.deposit(ALICE, 100)
        assert credit_locker.get_account(ALICE).lock_start_block == 10

        clock.set_block(60)
        await credit_locker.deposit(ALICE, 100)
        assert credit_locker.get_account(ALICE).lock_start_block == 60

    @pytest.mark.asyncio
    async def test_custody_matches_total_locked(self, credit_locker, ledger):
        await credit_locker.deposit(ALICE, 1000)
        await credit_locker.deposit(BOB, 500)

        assert credit_locker.total_locked() == 1500
        assert ledger.balance(DEPOSIT, LOCKER) == 1500

    @pytest.mark.asyncio
    async def test_zero_multiplier_skips_mint(self, credit_config, ledger, clock):
        config = credit_config.model_copy(update={"credit_multiplier_bp": 0})
        ledger.set_minter(CREDIT, LOCKER, False)
        locker = CreditLocker(LOCKER, config, ledger, clock, ADMIN)

        receipt = await locker.deposit(ALICE, 1000)

        assert receipt.credit_minted == 0
        assert ledger.balance(CREDIT, ALICE) == 0

    @pytest.mark.asyncio
    async def test_not_started(self, credit_config, ledger, clock):
        config = credit_config.model_copy(update={"start_block": 100})
        locker = CreditLocker(LOCKER, config, ledger, clock, ADMIN)

        with pytest.raises(NotStartedError):
            await locker.deposit(ALICE, 1000)
        with pytest.raises(NotStartedError):
            await locker.withdraw(ALICE, 1000)


class TestCreditLockerCap:
    """Test the circulating cap against a small supply."""

    @pytest_asyncio.fixture
    async def small_locker(self):
        token_ledger = InMemoryTokenLedger()
        await fund(token_ledger, ALICE, 1000)
        token_ledger.set_minter(CREDIT, LOCKER)
        config = GlobalConfig(
            deposit_asset=DEPOSIT,
            credit_asset=CREDIT,
            absolute_cap=500,
            circulating_cap_bp=2500,
        )
        return CreditLocker(LOCKER, config, token_ledger, ManualBlockClock(block=10), ADMIN)

    @pytest.mark.asyncio
    async def test_cap_is_quarter_of_supply(self, small_locker):
        assert await small_locker.max_naked_deposit_cap() == 250

    @pytest.mark.asyncio
    async def test_deposit_above_cap_rejected(self, small_locker):
        with pytest.raises(CirculatingCapExceededError):
            await small_locker.deposit(ALICE, 300)

        assert small_locker.total_locked() == 0

    @pytest.mark.asyncio
    async def test_deposit_up_to_cap_accepted(self, small_locker):
        await small_locker.deposit(ALICE, 250)

        with pytest.raises(CirculatingCapExceededError):
            await small_locker.deposit(ALICE, 1)

        assert small_locker.total_locked() == 250


class TestCreditLockerWithdraw:
    """Test withdrawals and credit burning."""

    @pytest_asyncio.fixture
    async def deposited(self, credit_locker):
        await credit_locker.deposit(ALICE, 1000)
        return credit_locker

    @pytest.mark.asyncio
    async def test_boundary_block_still_locked(self, deposited, clock):
        """Test a withdraw at exactly start plus duration fails."""
        clock.set_block(110)

        with pytest.raises(LockPeriodActiveError):
            await deposited.withdraw(ALICE, 1000)

    @pytest.mark.asyncio
    async def test_withdraw_after_lock_burns_credit(self, deposited, ledger, clock):
        recorder = RecordingEventHandler()
        deposited.publisher.subscribe(LockerEventType.WITHDRAW, recorder)
        clock.set_block(111)

        receipt = await deposited.withdraw(ALICE, 1000)

        assert receipt.credit_burned == 2000
        assert ledger.balance(DEPOSIT, ALICE) == USER_FUNDS
        assert ledger.balance(DEPOSIT, LOCKER) == 0
        assert ledger.balance(CREDIT, ALICE) == 0
        assert await ledger.total_supply(CREDIT) == 0
        assert deposited.get_account(ALICE).locked_naked_amount == 0
        assert len(recorder.events) == 1

    @pytest.mark.asyncio
    async def test_partial_withdraw(self, deposited, ledger, clock):
        clock.set_block(111)

        await deposited.withdraw(ALICE, 400)

        account = deposited.get_account(ALICE)
        assert account.locked_naked_amount == 600
        assert account.credit_balance == 1200
        assert ledger.balance(CREDIT, ALICE) == 1200

        receipt = await deposited.withdraw_all(ALICE)
        assert receipt.amount == 600

    @pytest.mark.asyncio
    async def test_unlock_override(self, deposited, clock):
        clock.set_block(11)
        with pytest.raises(AuthorizationError):
            await deposited.set_unlock(ALICE, True)

        await deposited.set_unlock(ADMIN, True)

        receipt = await deposited.withdraw(ALICE, 1000)
        assert receipt.amount == 1000

    @pytest.mark.asyncio
    async def test_withdraw_more_than_locked(self, deposited, clock):
        clock.set_block(111)

        with pytest.raises(InsufficientLockedBalanceError):
            await deposited.withdraw(ALICE, 1001)

    @pytest.mark.asyncio
    async def test_withdraw_ignores_pause(self, deposited, clock):
        clock.set_block(111)
        await deposited.pause(ADMIN)

        receipt = await deposited.withdraw(ALICE, 1000)

        assert receipt.amount == 1000

    @pytest.mark.asyncio
    async def test_missing_credit_rolls_back(self, deposited, ledger, clock):
        """Test a withdraw whose credit cannot be burned changes nothing."""
        await ledger.transfer(CREDIT, ALICE, "0xelsewhere", 2000)
        clock.set_block(111)

        with pytest.raises(TransferFailedError):
            await deposited.withdraw(ALICE, 1000)

        assert deposited.get_account(ALICE).locked_naked_amount == 1000
        assert ledger.balance(DEPOSIT, LOCKER) == 1000


class TestCreditLockerTransfer:
    """Test locked-claim transfers."""

    @pytest_asyncio.fixture
    async def deposited(self, credit_locker):
        await credit_locker.deposit(ALICE, 1000)
        return credit_locker

    @pytest.mark.asyncio
    async def test_transfer_requires_role(self, deposited):
        with pytest.raises(AuthorizationError):
            await deposited.transfer(ALICE, 400, BOB)

    @pytest.mark.asyncio
    async def test_transfer_moves_claim_and_credit(self, deposited, ledger, clock):
        deposited.access.grant_role(ADMIN, TRANSFER_ROLE, ALICE)
        clock.set_block(20)

        receipt = await deposited.transfer(ALICE, 400, BOB)

        assert receipt.credit_amount == 800
        assert deposited.get_account(ALICE).locked_naked_amount == 600
        assert deposited.get_account(BOB).locked_naked_amount == 400
        assert deposited.get_account(BOB).lock_start_block == 20
        assert ledger.balance(CREDIT, ALICE) == 1200
        assert ledger.balance(CREDIT, BOB) == 800
        assert deposited.total_locked() == 1000
        assert ledger.balance(DEPOSIT, LOCKER) == 1000

    @pytest.mark.asyncio
    async def test_open_role(self, deposited):
        deposited.access.grant_role(ADMIN, TRANSFER_ROLE, ZERO_ADDRESS)

        await deposited.transfer(ALICE, 100, BOB)

        assert deposited.get_account(BOB).locked_naked_amount == 100

    @pytest.mark.asyncio
    async def test_invalid_transfers(self, deposited):
        deposited.access.grant_role(ADMIN, TRANSFER_ROLE, ALICE)

        with pytest.raises(InputValidationError):
            await deposited.transfer(ALICE, 100, ALICE)
        with pytest.raises(InputValidationError):
            await deposited.transfer(ALICE, 0, BOB)
        with pytest.raises(InputValidationError):
            await deposited.transfer(ALICE, 100, ZERO_ADDRESS)
        with pytest.raises(InsufficientLockedBalanceError):
            await deposited.transfer(ALICE, 1001, BOB)

    @pytest.mark.asyncio
    async def test_self_transfer_rejected(self, deposited, ledger):
        """Test a claim cannot be sent to its own holder and nothing moves."""
        deposited.access.grant_role(ADMIN, TRANSFER_ROLE, ALICE)

        with pytest.raises(InputValidationError) as exc_info:
            await deposited.transfer(ALICE, 100, ALICE)

        assert exc_info.value.context["parameter_name"] == "recipient"
        assert deposited.get_account(ALICE).locked_naked_amount == 1000
        assert deposited.get_account(ALICE).credit_balance == 2000
        assert ledger.balance(CREDIT, ALICE) == 2000

    @pytest.mark.asyncio
    async def test_transfer_respects_pause(self, deposited):
        deposited.access.grant_role(ADMIN, TRANSFER_ROLE, ALICE)
        await deposited.pause(ADMIN)

        with pytest.raises(PausedError):
            await deposited.transfer(ALICE, 100, BOB)

    @pytest.mark.asyncio
    async def test_missing_credit_rolls_back(self, deposited, ledger):
        deposited.access.grant_role(ADMIN, TRANSFER_ROLE, ALICE)
        await ledger.transfer(CREDIT, ALICE, "0xelsewhere", 2000)

        with pytest.raises(TransferFailedError):
            await deposited.transfer(ALICE, 400, BOB)

        assert deposited.get_account(ALICE).locked_naked_amount == 1000
        assert deposited.get_account(BOB).locked_naked_amount == 0


class TestCreditLockerConcurrency:
    """Test independent callers sharing an engine and its ledger."""

    @pytest_asyncio.fixture
    async def shared(self, credit_config, clock):
        token_ledger = YieldingTokenLedger()
        await fund(token_ledger, ALICE)
        await fund(token_ledger, BOB)
        token_ledger.set_minter(CREDIT, LOCKER)
        locker = CreditLocker(LOCKER, credit_config, token_ledger, clock, ADMIN)
        await locker.initialize()
        return locker, token_ledger

    @pytest.mark.asyncio
    async def test_concurrent_deposits_both_succeed(self, shared):
        locker, token_ledger = shared

        alice_receipt, bob_receipt = await asyncio.gather(
            locker.deposit(ALICE, 100), locker.deposit(BOB, 100)
        )

        assert alice_receipt.naked_amount == 100
        assert bob_receipt.naked_amount == 100
        assert locker.total_locked() == 200
        assert token_ledger.balance(DEPOSIT, LOCKER) == 200
        assert token_ledger.balance(CREDIT, BOB) == 200

    @pytest.mark.asyncio
    async def test_failed_deposit_keeps_concurrent_writes(self, shared):
        """Test rollback of a failed call leaves other callers' writes in place."""
        locker, token_ledger = shared
        token_ledger.set_minter(CREDIT, LOCKER, False)

        async def grant_transfer_role():
            locker.access.grant_role(ADMIN, TRANSFER_ROLE, BOB)

        results = await asyncio.gather(
            locker.deposit(ALICE, 1000),
            token_ledger.transfer(DEPOSIT, BOB, "0xcarol", 500),
            grant_transfer_role(),
            return_exceptions=True,
        )

        assert isinstance(results[0], MintFailedError)
        assert results[1] is True
        assert token_ledger.balance(DEPOSIT, "0xcarol") == 500
        assert token_ledger.balance(DEPOSIT, BOB) == USER_FUNDS - 500
        assert token_ledger.balance(DEPOSIT, ALICE) == USER_FUNDS
        assert token_ledger.balance(DEPOSIT, LOCKER) == 0
        assert locker.access.has_role(TRANSFER_ROLE, BOB)
        assert locker.get_account(ALICE).locked_naked_amount == 0


class TestCreditLockerAdministration:
    """Test credit-only administration."""

    @pytest.mark.asyncio
    async def test_multiplier_frozen_after_start(self, credit_locker):
        with pytest.raises(PreconditionError):
            await credit_locker.set_credit_multiplier_bp(ADMIN, 5000)

    @pytest.mark.asyncio
    async def test_multiplier_before_start(self, credit_config, ledger, clock):
        config = credit_config.model_copy(update={"start_block": 100})
        locker = CreditLocker(LOCKER, config, ledger, clock, ADMIN)
        recorder = RecordingEventHandler()
        locker.publisher.subscribe(LockerEventType.CREDIT_MULTIPLIER_UPDATED, recorder)

        with pytest.raises(AuthorizationError):
            await locker.set_credit_multiplier_bp(ALICE, 5000)

        await locker.set_credit_multiplier_bp(ADMIN, 5000)

        assert locker.config.credit_multiplier_bp == 5000
        assert recorder.events[0].data == {"previous": 20_000, "current": 5000}

    @pytest.mark.asyncio
    async def test_set_treasury_excludes_balance(self, credit_locker, ledger):
        before = await credit_locker.max_naked_deposit_cap()

        await credit_locker.set_treasury(ADMIN, BOB)

        assert await credit_locker.max_naked_deposit_cap() == before - ledger.balance(DEPOSIT, BOB)
        with pytest.raises(InputValidationError):
            await credit_locker.set_treasury(ADMIN, ZERO_ADDRESS)
