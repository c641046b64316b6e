"""Unified exception hierarchy for the memberlock deposit engine.

This module provides a standardized exception system with:
- Standardized error codes for every exception
- Categorization (retryable, fatal, validation, etc.)
- Rich error context and metadata
- Logging levels and suggested resolutions

CRITICAL USAGE RULES:
1. ALL modules MUST import from this single source of truth
2. NEVER create duplicate exceptions elsewhere
3. ALL exceptions MUST include error codes

Example Usage:
    from memberlock.core.exceptions import CirculatingCapExceededError

    raise CirculatingCapExceededError(
        "Deposit exceeds circulating cap",
        requested_amount=300,
        limit_amount=250,
    )
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categorization for automated handling."""

    RETRYABLE = "retryable"  # Can be retried automatically
    FATAL = "fatal"  # Cannot be retried, requires manual intervention
    VALIDATION = "validation"  # Input validation errors
    CONFIGURATION = "configuration"  # Configuration errors
    PERMISSION = "permission"  # Authentication/authorization errors
    CAPACITY = "capacity"  # Cap and balance limit violations
    COLLABORATOR = "collaborator"  # Ledger, swap and zap failures
    BUSINESS_LOGIC = "business_logic"  # Business rule violations
    SYSTEM = "system"  # System/infrastructure errors


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class LockerError(Exception):
    """Base exception for all memberlock errors.

    Every exception includes standardized metadata for logging, monitoring,
    and automated handling.

    Attributes:
        message: Human-readable error message
        error_code: Standardized error code (e.g., 'CAP_001')
        category: Error category for automated handling
        severity: Error severity level
        details: Additional context data
        retryable: Whether this error can be retried
        suggested_action: Recommended resolution steps
        context: Additional contextual information
        timestamp: When the error occurred
        logger_name: Logger name for this error type
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        suggested_action: str | None = None,
        context: dict[str, Any] | None = None,
        logger_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.retryable = retryable
        self.suggested_action = suggested_action
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)
        self.logger_name = logger_name or self.__class__.__module__

        self.context.update(kwargs)

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with appropriate level based on severity."""
        # Logging must never mask the original error
        try:
            logger = logging.getLogger(self.logger_name)
            log_data = {
                "error_code": self.error_code,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "error_details": self.details,
                "error_context": self.context,
                "error_timestamp": self.timestamp.isoformat(),
            }

            if self.severity == ErrorSeverity.CRITICAL:
                logger.critical(self.message, extra=log_data)
            elif self.severity == ErrorSeverity.HIGH:
                logger.error(self.message, extra=log_data)
            elif self.severity == ErrorSeverity.MEDIUM:
                logger.warning(self.message, extra=log_data)
            else:
                logger.info(self.message, extra=log_data)
        except Exception:
            pass

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "category": self.category.value,
            "severity": self.severity.value,
            "details": self.details,
            "retryable": self.retryable,
            "suggested_action": self.suggested_action,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        """Return formatted error message with code and essential details."""
        parts = []
        if self.error_code:
            parts.append(f"[{self.error_code}]")
        parts.append(self.message)
        error_str = " ".join(parts)

        if self.category != ErrorCategory.SYSTEM:
            error_str += f" (Category: {self.category.value})"

        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in list(self.details.items())[:3])
            error_str += f" (Details: {details_str})"

        return error_str

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"category={self.category}, "
            f"severity={self.severity}, "
            f"retryable={self.retryable}"
            f")"
        )


# =============================================================================
# VALIDATION EXCEPTIONS
# =============================================================================


class ValidationError(LockerError):
    """Base class for all input and precondition validation errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "VALID_000",
        field_name: str | None = None,
        field_value: Any | None = None,
        validation_rule: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context.update(
            {
                "field_name": field_name,
                "field_value": field_value,
                "validation_rule": validation_rule,
            }
        )
        kwargs["context"] = context

        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault("retryable", False)
        kwargs.setdefault("logger_name", "validation")

        super().__init__(message, error_code, **kwargs)


class ConfigurationError(ValidationError):
    """Configuration file and parameter validation errors."""

    def __init__(
        self,
        message: str,
        config_file: str | None = None,
        config_section: str | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("error_code", "VALID_001")
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        kwargs.setdefault("suggested_action", "Review and correct configuration")

        context = kwargs.get("context", {})
        context.update({"config_file": config_file, "config_section": config_section})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class InputValidationError(ValidationError):
    """Operation input validation failures (zero amounts, bad basis points, bad addresses)."""

    def __init__(
        self,
        message: str,
        parameter_name: str | None = None,
        parameter_value: Any | None = None,
        valid_range: tuple[Any, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("error_code", "VALID_002")
        kwargs.setdefault("suggested_action", "Correct input parameters and retry")

        context = kwargs.get("context", {})
        context.update(
            {
                "parameter_name": parameter_name,
                "parameter_value": parameter_value,
                "valid_range": valid_range,
            }
        )
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class PreconditionError(ValidationError):
    """Engine state does not allow the operation right now."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "VALID_003")
        kwargs.setdefault("category", ErrorCategory.BUSINESS_LOGIC)
        super().__init__(message, **kwargs)


class NotStartedError(PreconditionError):
    """Raised before the configured start block is reached."""

    def __init__(
        self,
        message: str,
        start_block: int | None = None,
        current_block: int | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("error_code", "VALID_004")
        kwargs.setdefault("suggested_action", "Wait for the start block")

        context = kwargs.get("context", {})
        context.update({"start_block": start_block, "current_block": current_block})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class PausedError(PreconditionError):
    """Raised for deposit-side operations while the engine is paused."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "VALID_005")
        kwargs.setdefault("suggested_action", "Retry after the engine is unpaused")
        super().__init__(message, **kwargs)


class SplitNotConfiguredError(PreconditionError):
    """Deposit against a split that has no valid configuration."""

    def __init__(self, message: str, split_id: int | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "VALID_006")
        kwargs.setdefault("suggested_action", "Use a configured split")

        context = kwargs.get("context", {})
        context.update({"split_id": split_id})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class SplitBindingError(PreconditionError):
    """Attempt to rebind a user to a different split."""

    def __init__(
        self,
        message: str,
        bound_split_id: int | None = None,
        requested_split_id: int | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("error_code", "VALID_007")
        kwargs.setdefault("suggested_action", "Deposit using the split already bound to the account")

        context = kwargs.get("context", {})
        context.update(
            {"bound_split_id": bound_split_id, "requested_split_id": requested_split_id}
        )
        kwargs["context"] = context

        super().__init__(message, **kwargs)


# =============================================================================
# CAPACITY EXCEPTIONS
# =============================================================================


class CapacityLimitError(LockerError):
    """Base class for cap and balance limit violations.

    Not retryable until external state (supply, caps, balances) changes.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CAP_000",
        limit_type: str | None = None,
        requested_amount: int | None = None,
        limit_amount: int | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context.update(
            {
                "limit_type": limit_type,
                "requested_amount": requested_amount,
                "limit_amount": limit_amount,
            }
        )
        kwargs["context"] = context

        kwargs.setdefault("category", ErrorCategory.CAPACITY)
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault("retryable", False)
        kwargs.setdefault("logger_name", "capacity")

        super().__init__(message, error_code, **kwargs)


class CirculatingCapExceededError(CapacityLimitError):
    """Deposit would push engine naked custody above the dynamic cap."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "CAP_001")
        kwargs.setdefault("limit_type", "circulating")
        kwargs.setdefault("suggested_action", "Reduce the deposit or wait for the cap to grow")
        super().__init__(message, **kwargs)


class UserCapExceededError(CapacityLimitError):
    """Deposit would exceed the per-user cap of the split."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "CAP_002")
        kwargs.setdefault("limit_type", "per_user")
        kwargs.setdefault("suggested_action", "Reduce the deposit amount")
        super().__init__(message, **kwargs)


class InsufficientLockedBalanceError(CapacityLimitError):
    """Withdraw or transfer of more than the account has locked."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "CAP_003")
        kwargs.setdefault("limit_type", "locked_balance")
        super().__init__(message, **kwargs)


# =============================================================================
# LOCK EXCEPTIONS
# =============================================================================


class LockPeriodActiveError(LockerError):
    """Withdraw attempted before the lock window elapsed."""

    def __init__(
        self,
        message: str,
        lock_start_block: int | None = None,
        unlock_block: int | None = None,
        current_block: int | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context.update(
            {
                "lock_start_block": lock_start_block,
                "unlock_block": unlock_block,
                "current_block": current_block,
            }
        )
        kwargs["context"] = context

        kwargs.setdefault("category", ErrorCategory.BUSINESS_LOGIC)
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault("suggested_action", "Wait until the lock window has elapsed")
        kwargs.setdefault("logger_name", "locking")

        super().__init__(message, "LOCK_001", **kwargs)


# =============================================================================
# COLLABORATOR EXCEPTIONS
# =============================================================================


class CollaboratorError(LockerError):
    """Base class for failures reported by ledgers, swap routers and zappers."""

    def __init__(
        self,
        message: str,
        error_code: str = "COLL_000",
        collaborator: str | None = None,
        asset: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context.update({"collaborator": collaborator, "asset": asset})
        kwargs["context"] = context

        kwargs.setdefault("category", ErrorCategory.COLLABORATOR)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("logger_name", "collaborators")

        super().__init__(message, error_code, **kwargs)


class TransferFailedError(CollaboratorError):
    """Ledger transfer or transfer_from reported failure."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "COLL_001")
        kwargs.setdefault("collaborator", "ledger")
        super().__init__(message, **kwargs)


class MintFailedError(CollaboratorError):
    """Member credit mint reported failure."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "COLL_002")
        kwargs.setdefault("collaborator", "credit")
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message, **kwargs)


class SlippageError(CollaboratorError):
    """Swap delivered less than the minimum acceptable output."""

    def __init__(
        self,
        message: str,
        expected_amount: int | None = None,
        actual_amount: int | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("error_code", "COLL_003")
        kwargs.setdefault("collaborator", "swap")
        kwargs.setdefault("suggested_action", "Review market conditions and slippage tolerance")

        context = kwargs.get("context", {})
        context.update({"expected_amount": expected_amount, "actual_amount": actual_amount})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class SwapDeadlineError(CollaboratorError):
    """Swap could not execute before its deadline."""

    def __init__(self, message: str, deadline: int | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "COLL_004")
        kwargs.setdefault("collaborator", "swap")

        context = kwargs.get("context", {})
        context.update({"deadline": deadline})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


# =============================================================================
# SECURITY EXCEPTIONS
# =============================================================================


class SecurityError(LockerError):
    """Base class for access control errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "SEC_000",
        account: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context.update({"account": account})
        kwargs["context"] = context

        kwargs.setdefault("category", ErrorCategory.PERMISSION)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("retryable", False)
        kwargs.setdefault("logger_name", "security")

        super().__init__(message, error_code, **kwargs)


class AuthorizationError(SecurityError):
    """Caller lacks the role required by the operation."""

    def __init__(self, message: str, required_role: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "SEC_001")
        kwargs.setdefault("suggested_action", "Request appropriate role")

        context = kwargs.get("context", {})
        context.update({"required_role": required_role})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class ContractCallerError(SecurityError):
    """Contract caller that is not on the allowlist."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "SEC_002")
        kwargs.setdefault("suggested_action", "Ask an administrator to allowlist the contract")
        super().__init__(message, **kwargs)


# =============================================================================
# STATE EXCEPTIONS
# =============================================================================


class StateConsistencyError(LockerError):
    """Base class for state locking and consistency errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "STATE_000",
        state_component: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context.update({"state_component": state_component})
        kwargs["context"] = context

        kwargs.setdefault("category", ErrorCategory.SYSTEM)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("logger_name", "state_management")

        super().__init__(message, error_code, **kwargs)


class StateLockError(StateConsistencyError):
    """State lock acquisition failures."""

    def __init__(self, message: str, lock_name: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "STATE_001")

        context = kwargs.get("context", {})
        context.update({"lock_name": lock_name})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class ReentrancyError(StateLockError):
    """Guarded operation entered while another one is in flight."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "STATE_002")
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message, **kwargs)
