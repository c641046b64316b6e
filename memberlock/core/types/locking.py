"""
Locking Specific Type Definitions

This module provides the account, split and global configuration records
owned by the locker engines, plus the receipts returned by mutating calls.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from memberlock.core.exceptions import SplitBindingError

BASIS_POINTS = 10_000
PERCENT = 100
ZERO_ADDRESS = "0x" + "0" * 40


class UserAccount(BaseModel):
    """Per-participant lock record.

    ``split_id`` is write-once: the first assignment binds the account to a
    split for life, re-assigning the same value is a no-op and assigning a
    different one raises ``SplitBindingError``.
    """

    model_config = ConfigDict(validate_assignment=True)

    address: str
    locked_naked_amount: int = Field(default=0, ge=0)
    locked_lp_amount: int = Field(default=0, ge=0)
    credit_balance: int = Field(default=0, ge=0)
    split_id: int | None = Field(default=None, ge=0, le=BASIS_POINTS)
    lock_start_block: int = Field(default=0, ge=0)
    last_activity_block: int = Field(default=0, ge=0)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "split_id" and self.split_id is not None and value != self.split_id:
            raise SplitBindingError(
                f"Account {self.address} is bound to split {self.split_id}",
                bound_split_id=self.split_id,
                requested_split_id=value,
            )
        super().__setattr__(name, value)

    @property
    def is_bound(self) -> bool:
        return self.split_id is not None

    def bind_split(self, split_id: int) -> None:
        """Bind the account to ``split_id`` (idempotent for the same id)."""
        self.split_id = split_id


class SplitConfig(BaseModel):
    """Named split configuration, keyed by its LP fraction in basis points."""

    model_config = ConfigDict(validate_assignment=True)

    split_id: int = Field(ge=0, le=BASIS_POINTS)
    lock_free_window_blocks: int = Field(default=0, ge=0)
    credit_multiplier_percent: int = Field(default=0, ge=0)
    per_user_naked_cap: int = Field(default=0, ge=0)
    total_naked_deposited: int = Field(default=0, ge=0)

    @property
    def is_valid(self) -> bool:
        return self.credit_multiplier_percent > 0

    @property
    def lp_ratio_bp(self) -> int:
        return self.split_id


class GlobalConfig(BaseModel):
    """Process-wide engine parameters.

    Only mutated through ``GuardedConfigStore``; block-sensitive fields are
    further guarded by the engines.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    deposit_asset: str
    credit_asset: str
    lp_asset: str | None = None
    stable_asset: str | None = None
    stable_path: list[str] = Field(default_factory=list)

    treasury_address: str = ZERO_ADDRESS

    absolute_cap: int = Field(default=0, ge=0)
    circulating_cap_bp: int = Field(default=BASIS_POINTS, ge=0, le=BASIS_POINTS)

    start_block: int = Field(default=0, ge=0)
    lock_duration_blocks: int = Field(default=0, ge=0)
    lock_free_blocks: int = Field(default=0, ge=0)
    unlock_override: bool = False

    credit_multiplier_bp: int = Field(default=BASIS_POINTS, ge=0)

    stable_slippage_bp: int = Field(default=50, ge=0, le=BASIS_POINTS)
    swap_deadline_seconds: int = Field(default=300, gt=0)

    @field_validator("deposit_asset", "credit_asset")
    @classmethod
    def _require_asset(cls, value: str) -> str:
        if not value or value == ZERO_ADDRESS:
            raise ValueError("asset address must be set")
        return value

    @model_validator(mode="after")
    def _check_stable_path(self) -> "GlobalConfig":
        if self.stable_path:
            if len(self.stable_path) < 2:
                raise ValueError("stable_path needs at least two hops")
            if self.stable_asset and self.stable_path[0] != self.stable_asset:
                raise ValueError("stable_path must start at the stable asset")
            if self.stable_path[-1] != self.deposit_asset:
                raise ValueError("stable_path must end at the deposit asset")
        return self


class PoolInfo(BaseModel):
    """Registry entry for another pool holding the deposit asset."""

    address: str
    asset: str | None = None
    label: str = ""


class CapBreakdown(BaseModel):
    """Every intermediate of one cap computation."""

    total_supply: int
    treasury_balance: int
    pools_balance: int
    circulating_supply: int
    ratio_cap: int
    absolute_cap: int
    effective_cap: int


class DepositReceipt(BaseModel):
    """Result of an accepted deposit."""

    user: str
    amount: int
    naked_amount: int
    lp_amount: int = 0
    credit_minted: int
    split_id: int | None = None
    lock_start_block: int
    block: int


class WithdrawReceipt(BaseModel):
    """Result of an accepted withdraw."""

    user: str
    amount: int
    credit_burned: int
    block: int


class TransferReceipt(BaseModel):
    """Result of an accepted locked-claim transfer."""

    sender: str
    recipient: str
    amount: int
    credit_amount: int
    block: int
