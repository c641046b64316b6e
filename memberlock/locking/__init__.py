"""
Locked-deposit engines.

This package implements the locked-deposit accounting engines that convert a
deposit asset into member credit under a dynamic circulating-supply cap.

Key Components:
- CapCalculator: dynamic naked-deposit ceiling
- LockLedger: per-user locked balances and lock timers
- SplitRegistry: split configurations for the master locker
- MasterLocker: split deposits with LP zapping and stable deposits
- CreditLocker: deposits, withdrawals and claim transfers with credit burning
"""

from memberlock.locking.constants import ADMIN_ROLE, TRANSFER_ROLE
from memberlock.locking.interfaces import (
    BlockClockProtocol,
    CheckpointableProtocol,
    JournalingProtocol,
    PoolRegistryProtocol,
    SwapRouterProtocol,
    TokenLedgerProtocol,
    ZapperProtocol,
)


# Use lazy imports for concrete implementations
def __getattr__(name: str):
    """Lazy import of the engine implementations."""
    imports = {
        "AccessControl": "memberlock.locking.access",
        "AtomicSection": "memberlock.locking.guard",
        "BaseLocker": "memberlock.locking.base_locker",
        "CapCalculator": "memberlock.locking.cap_calculator",
        "ContractAllowlist": "memberlock.locking.access",
        "CreditLocker": "memberlock.locking.credit_locker",
        "GuardedConfigStore": "memberlock.locking.config_store",
        "InMemoryPoolRegistry": "memberlock.locking.memory",
        "InMemoryTokenLedger": "memberlock.locking.memory",
        "LockLedger": "memberlock.locking.lock_ledger",
        "ManualBlockClock": "memberlock.locking.memory",
        "MasterLocker": "memberlock.locking.master_locker",
        "PauseSwitch": "memberlock.locking.access",
        "ReentrancyGuard": "memberlock.locking.guard",
        "SplitRegistry": "memberlock.locking.split_registry",
        "compute_naked_deposit_cap": "memberlock.locking.cap_calculator",
    }

    if name in imports:
        module = __import__(imports[name], fromlist=[name])
        return getattr(module, name)

    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "ADMIN_ROLE",
    "TRANSFER_ROLE",
    "AccessControl",
    "AtomicSection",
    "BaseLocker",
    "BlockClockProtocol",
    "CapCalculator",
    "CheckpointableProtocol",
    "ContractAllowlist",
    "CreditLocker",
    "GuardedConfigStore",
    "InMemoryPoolRegistry",
    "InMemoryTokenLedger",
    "JournalingProtocol",
    "LockLedger",
    "ManualBlockClock",
    "MasterLocker",
    "PauseSwitch",
    "PoolRegistryProtocol",
    "ReentrancyGuard",
    "SplitRegistry",
    "SwapRouterProtocol",
    "TokenLedgerProtocol",
    "ZapperProtocol",
    "compute_naked_deposit_cap",
]
