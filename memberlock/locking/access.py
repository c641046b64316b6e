"""
Access control primitives for the locker engines.

- ``AccessControl``: role registry, deny by default. A role granted to the
  zero address is open to everyone.
- ``ContractAllowlist``: callers known to be contracts must be allowlisted.
- ``PauseSwitch``: blocks the deposit side of an engine.
"""

from memberlock.core.exceptions import AuthorizationError, ContractCallerError, PausedError
from memberlock.core.logging import get_logger
from memberlock.core.types.locking import ZERO_ADDRESS

from .constants import ADMIN_ROLE

logger = get_logger(__name__)


class AccessControl:
    """Role registry keyed by role name."""

    def __init__(self, admin: str):
        self._roles: dict[str, set[str]] = {ADMIN_ROLE: {admin}}

    def has_role(self, role: str, account: str) -> bool:
        return account in self._roles.get(role, set())

    def is_open(self, role: str) -> bool:
        """A role granted to the zero address is held by everyone."""
        return self.has_role(role, ZERO_ADDRESS)

    def require_role(self, role: str, account: str) -> None:
        if not self.has_role(role, account):
            raise AuthorizationError(
                f"{account} is missing role {role}", required_role=role, account=account
            )

    def require_role_or_open(self, role: str, account: str) -> None:
        if self.is_open(role):
            return
        self.require_role(role, account)

    def grant_role(self, caller: str, role: str, account: str) -> None:
        self.require_role(ADMIN_ROLE, caller)
        self._roles.setdefault(role, set()).add(account)
        logger.info("Role granted", role=role, account=account, granted_by=caller)

    def revoke_role(self, caller: str, role: str, account: str) -> None:
        self.require_role(ADMIN_ROLE, caller)
        members = self._roles.get(role, set())
        if role == ADMIN_ROLE and members == {account}:
            raise AuthorizationError(
                "Cannot revoke the last administrator", required_role=role, account=account
            )
        members.discard(account)
        logger.info("Role revoked", role=role, account=account, revoked_by=caller)

    def members(self, role: str) -> set[str]:
        return set(self._roles.get(role, set()))


class ContractAllowlist:
    """Rejects contract callers unless they were explicitly allowed."""

    def __init__(self, contracts: set[str] | None = None):
        self._contracts: set[str] = set(contracts or ())
        self._allowed: set[str] = set()

    def register_contract(self, address: str) -> None:
        self._contracts.add(address)

    def is_contract(self, address: str) -> bool:
        return address in self._contracts

    def is_allowed(self, address: str) -> bool:
        return address in self._allowed

    def set_allowed(self, address: str, allowed: bool) -> None:
        if allowed:
            self._allowed.add(address)
        else:
            self._allowed.discard(address)

    def check(self, caller: str) -> None:
        if self.is_contract(caller) and not self.is_allowed(caller):
            raise ContractCallerError(f"Contract caller {caller} is not allowlisted", account=caller)

    def snapshot(self) -> tuple[set[str], set[str]]:
        return set(self._contracts), set(self._allowed)

    def restore(self, state: tuple[set[str], set[str]]) -> None:
        contracts, allowed = state
        self._contracts = set(contracts)
        self._allowed = set(allowed)


class PauseSwitch:
    """Simple paused flag."""

    def __init__(self, paused: bool = False):
        self._paused = paused

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def unpause(self) -> None:
        self._paused = False

    def require_not_paused(self, operation: str) -> None:
        if self._paused:
            raise PausedError(f"{operation} is unavailable while paused")

    def snapshot(self) -> bool:
        return self._paused

    def restore(self, state: bool) -> None:
        self._paused = state
