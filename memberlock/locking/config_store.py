"""
Permission-checked store for the engine ``GlobalConfig``.

Every mutation names the acting identity, is checked against the admin role
before anything changes, and is re-validated as a whole record, so a
rejected update leaves the stored configuration untouched.
"""

from typing import Any

from memberlock.core.exceptions import ConfigurationError
from memberlock.core.logging import get_logger
from memberlock.core.types.locking import GlobalConfig

from .access import AccessControl
from .constants import ADMIN_ROLE

logger = get_logger(__name__)


class GuardedConfigStore:
    """Single ``GlobalConfig`` behind an access-checked update API."""

    def __init__(self, config: GlobalConfig, access: AccessControl):
        self._config = config.model_copy(deep=True)
        self._access = access

    @property
    def current(self) -> GlobalConfig:
        """The live record. Read it, never assign to it."""
        return self._config

    def copy(self) -> GlobalConfig:
        return self._config.model_copy(deep=True)

    def update(self, caller: str, **changes: Any) -> dict[str, Any]:
        """Apply ``changes`` as ``caller``; returns the previous values."""
        self._access.require_role(ADMIN_ROLE, caller)

        unknown = set(changes) - set(GlobalConfig.model_fields)
        if unknown:
            raise ConfigurationError(f"Unknown configuration fields: {sorted(unknown)}")

        data = self._config.model_dump()
        previous = {name: data[name] for name in changes}
        data.update(changes)
        try:
            updated = GlobalConfig.model_validate(data)
        except ValueError as e:
            raise ConfigurationError(f"Rejected configuration update: {e!s}") from e

        self._config = updated
        logger.info("Configuration updated", updated_by=caller, changes=changes, previous=previous)
        return previous

    def snapshot(self) -> GlobalConfig:
        return self._config.model_copy(deep=True)

    def restore(self, state: GlobalConfig) -> None:
        self._config = state.model_copy(deep=True)
