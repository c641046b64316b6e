"""Input validators shared by the locker engines."""

from memberlock.core.exceptions import InputValidationError
from memberlock.core.types.locking import BASIS_POINTS, ZERO_ADDRESS

from .math_utils import require_non_negative_int


def validate_positive_amount(amount: int, name: str = "amount") -> int:
    """Require a strictly positive integer amount."""
    require_non_negative_int(amount, name)
    if amount == 0:
        raise InputValidationError(
            f"{name} must be greater than zero",
            parameter_name=name,
            parameter_value=amount,
            validation_rule="gt_zero",
        )
    return amount


def validate_basis_points(value: int, name: str = "basis_points") -> int:
    """Require an integer in ``[0, 10000]``."""
    require_non_negative_int(value, name)
    if value > BASIS_POINTS:
        raise InputValidationError(
            f"{name} must be between 0 and {BASIS_POINTS}",
            parameter_name=name,
            parameter_value=value,
            valid_range=(0, BASIS_POINTS),
        )
    return value


def validate_address(address: str, name: str = "address") -> str:
    """Require a non-empty, non-zero address."""
    if not isinstance(address, str) or not address or address == ZERO_ADDRESS:
        raise InputValidationError(
            f"{name} must be a non-zero address",
            parameter_name=name,
            parameter_value=address,
        )
    return address
