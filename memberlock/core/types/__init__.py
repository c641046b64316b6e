"""Type definitions for the memberlock engine."""

from .locking import (
    BASIS_POINTS,
    PERCENT,
    ZERO_ADDRESS,
    CapBreakdown,
    DepositReceipt,
    GlobalConfig,
    PoolInfo,
    SplitConfig,
    TransferReceipt,
    UserAccount,
    WithdrawReceipt,
)

__all__ = [
    "BASIS_POINTS",
    "PERCENT",
    "ZERO_ADDRESS",
    "CapBreakdown",
    "DepositReceipt",
    "GlobalConfig",
    "PoolInfo",
    "SplitConfig",
    "TransferReceipt",
    "UserAccount",
    "WithdrawReceipt",
]
