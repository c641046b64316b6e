"""
Locking Constants.

This module defines constants used throughout the locking package to avoid
magic numbers and provide centralized configuration.
"""

from memberlock.core.types.locking import BASIS_POINTS, PERCENT, ZERO_ADDRESS

# Roles
ADMIN_ROLE = "ADMIN_ROLE"
TRANSFER_ROLE = "TRANSFER_ROLE"

# Allowances
MAX_ALLOWANCE = 2**256 - 1

# Split identifiers are the LP fraction in basis points
MIN_SPLIT_ID = 0
MAX_SPLIT_ID = BASIS_POINTS

__all__ = [
    "ADMIN_ROLE",
    "BASIS_POINTS",
    "MAX_ALLOWANCE",
    "MAX_SPLIT_ID",
    "MIN_SPLIT_ID",
    "PERCENT",
    "TRANSFER_ROLE",
    "ZERO_ADDRESS",
]
