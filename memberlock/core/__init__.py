"""
Core Framework Package

This package contains the core framework components including types,
configuration, exceptions, events and logging.
"""

from .config import Config, get_config
from .exceptions import (
    CapacityLimitError,
    CollaboratorError,
    LockerError,
    SecurityError,
    StateConsistencyError,
    ValidationError,
)
from .logging import correlation_context, get_logger, log_async_performance, setup_logging

__all__ = [
    "CapacityLimitError",
    "CollaboratorError",
    "Config",
    "LockerError",
    "SecurityError",
    "StateConsistencyError",
    "ValidationError",
    "correlation_context",
    "get_config",
    "get_logger",
    "log_async_performance",
    "setup_logging",
]
