"""Locker engine configuration for memberlock."""

from pydantic import Field

from .base import BaseConfig


class LockerSettings(BaseConfig):
    """Default engine parameters, overridable through ``MEMBERLOCK_*`` variables.

    Asset addresses are deployment specific and are supplied when the
    ``GlobalConfig`` is built; everything else has a usable default.
    """

    model_config = {**BaseConfig.model_config, "env_prefix": "MEMBERLOCK_"}

    absolute_cap: int = Field(
        default=1_000_000 * 10**18,
        description="Hard ceiling on naked deposits, in deposit asset base units",
        ge=0,
    )
    circulating_cap_bp: int = Field(
        default=2_500,
        description="Share of circulating supply admissible as naked deposits (basis points)",
        ge=0,
        le=10_000,
    )
    start_block: int = Field(default=0, description="First block accepting deposits", ge=0)
    lock_duration_blocks: int = Field(
        default=201_600, description="Blocks a deposit stays locked", ge=0
    )
    lock_free_blocks: int = Field(
        default=0, description="Blocks after start during which deposits keep the lock clock", ge=0
    )
    unlock_override: bool = Field(default=False, description="Waive lock checks on withdraw")
    credit_multiplier_bp: int = Field(
        default=10_000, description="Credit minted per deposited unit (basis points)", ge=0
    )
    stable_slippage_bp: int = Field(
        default=50, description="Tolerated swap shortfall versus quote (basis points)", ge=0, le=10_000
    )
    swap_deadline_seconds: int = Field(
        default=300, description="Seconds a stable swap may take before it must fail", gt=0
    )
    treasury_address: str = Field(
        default="0x" + "0" * 40, description="Treasury excluded from circulating supply"
    )


class LoggingSettings(BaseConfig):
    """Logging configuration."""

    model_config = {**BaseConfig.model_config, "env_prefix": "MEMBERLOCK_LOG_"}

    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    file: str | None = Field(default=None, description="Log file path, stdout only when unset")
