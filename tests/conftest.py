"""
Pytest configuration for the memberlock test suite.

This module provides the in-memory collaborators every engine test runs
against: a token ledger, a block clock, a pool registry, and the scripted
zapper and swap router from ``tests.fakes``.
"""

import os

# Set testing environment variables before importing anything else
os.environ["TESTING"] = "1"

import pytest
import pytest_asyncio

from memberlock.core.types.locking import BASIS_POINTS, GlobalConfig
from memberlock.locking.credit_locker import CreditLocker
from memberlock.locking.master_locker import MasterLocker
from memberlock.locking.memory import InMemoryPoolRegistry, InMemoryTokenLedger, ManualBlockClock
from tests.fakes import (
    ADMIN,
    ALICE,
    BOB,
    CREDIT,
    DEPOSIT,
    LOCK_DURATION,
    LOCK_FREE_BLOCKS,
    LOCKER,
    LP,
    ROUTER,
    ROUTER_RESERVE,
    STABLE,
    START_BLOCK,
    TREASURY,
    ZAPPER,
    FakeSwapRouter,
    FakeZapper,
    fund,
)


@pytest.fixture
def clock():
    """Block clock parked at block 10."""
    return ManualBlockClock(block=10, timestamp=1_700_000_000)


@pytest_asyncio.fixture
async def ledger():
    """Ledger with two funded users and a credit asset the locker may mint."""
    token_ledger = InMemoryTokenLedger()
    await fund(token_ledger, ALICE)
    await fund(token_ledger, BOB)
    token_ledger.issue(STABLE, ALICE, 100_000)
    token_ledger.issue(DEPOSIT, ROUTER, ROUTER_RESERVE)
    token_ledger.set_minter(CREDIT, LOCKER)
    return token_ledger


@pytest.fixture
def pool_registry():
    return InMemoryPoolRegistry()


@pytest.fixture
def zapper(ledger):
    return FakeZapper(ledger, ZAPPER, LOCKER)


@pytest.fixture
def swap_router(ledger, clock):
    return FakeSwapRouter(ledger, ROUTER, clock)


@pytest.fixture
def master_config():
    return GlobalConfig(
        deposit_asset=DEPOSIT,
        credit_asset=CREDIT,
        lp_asset=LP,
        stable_asset=STABLE,
        stable_path=[STABLE, DEPOSIT],
        treasury_address=TREASURY,
        absolute_cap=10**12,
        circulating_cap_bp=BASIS_POINTS,
        start_block=START_BLOCK,
        lock_duration_blocks=LOCK_DURATION,
    )


@pytest.fixture
def credit_config():
    return GlobalConfig(
        deposit_asset=DEPOSIT,
        credit_asset=CREDIT,
        treasury_address=TREASURY,
        absolute_cap=10**12,
        circulating_cap_bp=BASIS_POINTS,
        start_block=START_BLOCK,
        lock_duration_blocks=LOCK_DURATION,
        lock_free_blocks=LOCK_FREE_BLOCKS,
        credit_multiplier_bp=2 * BASIS_POINTS,
    )


@pytest_asyncio.fixture
async def master_locker(master_config, ledger, clock, zapper, swap_router, pool_registry):
    """Initialized master locker with split 2500 configured."""
    locker = MasterLocker(
        LOCKER,
        master_config,
        ledger,
        clock,
        ADMIN,
        zapper=zapper,
        swap_router=swap_router,
        pool_registry=pool_registry,
    )
    await locker.initialize()
    await locker.configure_split(ADMIN, 2500, 100, 150, 1_000_000)
    return locker


@pytest_asyncio.fixture
async def credit_locker(credit_config, ledger, clock, pool_registry):
    """Initialized credit locker minting two credits per deposited unit."""
    locker = CreditLocker(LOCKER, credit_config, ledger, clock, ADMIN, pool_registry=pool_registry)
    await locker.initialize()
    return locker
