"""
Split configurations for the master locker.

A split is keyed by the basis-point share of each deposit routed to the LP
pair. It is usable only once configured with a positive credit multiplier.
"""

from memberlock.core.exceptions import SplitNotConfiguredError
from memberlock.core.logging import get_logger
from memberlock.core.types.locking import SplitConfig
from memberlock.utils.math_utils import require_non_negative_int
from memberlock.utils.validators import validate_basis_points

logger = get_logger(__name__)


class SplitRegistry:
    """Holds every ``SplitConfig`` keyed by split id."""

    def __init__(self):
        self._splits: dict[int, SplitConfig] = {}

    def configure(
        self,
        split_id: int,
        lock_free_window_blocks: int,
        credit_multiplier_percent: int,
        per_user_naked_cap: int,
    ) -> SplitConfig:
        """Create or update a split, keeping its running deposit total.

        A multiplier of zero leaves the split configured but unusable.
        """
        validate_basis_points(split_id, "split_id")
        require_non_negative_int(lock_free_window_blocks, "lock_free_window_blocks")
        require_non_negative_int(credit_multiplier_percent, "credit_multiplier_percent")
        require_non_negative_int(per_user_naked_cap, "per_user_naked_cap")

        existing = self._splits.get(split_id)
        split = SplitConfig(
            split_id=split_id,
            lock_free_window_blocks=lock_free_window_blocks,
            credit_multiplier_percent=credit_multiplier_percent,
            per_user_naked_cap=per_user_naked_cap,
            total_naked_deposited=existing.total_naked_deposited if existing else 0,
        )
        self._splits[split_id] = split
        logger.info(
            "Split configured",
            split_id=split_id,
            lock_free_window_blocks=lock_free_window_blocks,
            credit_multiplier_percent=credit_multiplier_percent,
            per_user_naked_cap=per_user_naked_cap,
            valid=split.is_valid,
        )
        return split

    def get(self, split_id: int) -> SplitConfig | None:
        split = self._splits.get(split_id)
        return split.model_copy() if split is not None else None

    def is_valid(self, split_id: int) -> bool:
        split = self._splits.get(split_id)
        return split is not None and split.is_valid

    def require_valid(self, split_id: int) -> SplitConfig:
        """Return the live split or raise if it cannot take deposits."""
        split = self._splits.get(split_id)
        if split is None or not split.is_valid:
            raise SplitNotConfiguredError(f"Split {split_id} is not configured", split_id=split_id)
        return split

    def record_deposit(self, split_id: int, naked_amount: int) -> None:
        self.require_valid(split_id).total_naked_deposited += naked_amount

    def all_splits(self) -> list[SplitConfig]:
        return [self._splits[key].model_copy() for key in sorted(self._splits)]

    def snapshot(self) -> dict[int, SplitConfig]:
        return {key: split.model_copy() for key, split in self._splits.items()}

    def restore(self, state: dict[int, SplitConfig]) -> None:
        self._splits = {key: split.model_copy() for key, split in state.items()}
