"""
Integer arithmetic helpers for token amounts.

Token amounts are integer base units. Every ratio helper truncates toward
zero, never rounds up.
"""

from memberlock.core.exceptions import InputValidationError
from memberlock.core.types.locking import BASIS_POINTS, PERCENT


def apply_basis_points(amount: int, basis_points: int) -> int:
    """Return ``amount * basis_points / 10000`` truncated."""
    return amount * basis_points // BASIS_POINTS


def apply_percent(amount: int, percent: int) -> int:
    """Return ``amount * percent / 100`` truncated."""
    return amount * percent // PERCENT


def split_by_basis_points(amount: int, basis_points: int) -> tuple[int, int]:
    """Split ``amount`` into ``(portion, remainder)`` where portion is the bp share."""
    portion = apply_basis_points(amount, basis_points)
    return portion, amount - portion


def floor_subtract(minuend: int, *subtrahends: int) -> int:
    """Subtract and clamp at zero instead of going negative."""
    result = minuend - sum(subtrahends)
    return result if result > 0 else 0


def require_non_negative_int(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputValidationError(
            f"{name} must be an integer amount",
            parameter_name=name,
            parameter_value=value,
        )
    if value < 0:
        raise InputValidationError(
            f"{name} must not be negative", parameter_name=name, parameter_value=value
        )
    return value
