"""
Configuration management for the memberlock engine.

Usage:
    ```python
    from memberlock.core.config import get_config

    config = get_config()
    global_config = config.build_global_config(deposit_asset="0xdep", credit_asset="0xcrd")
    ```
"""

from .base import BaseConfig
from .locker import LockerSettings, LoggingSettings
from .main import Config, get_config

__all__ = [
    "BaseConfig",
    "Config",
    "LockerSettings",
    "LoggingSettings",
    "get_config",
]
