"""
Structured logging system for the memberlock engine.

This module provides structured logging with correlation tracking and
performance logging. Configured for JSON formatting in production.

Features:
- Structured JSON logging for production
- Correlation ID tracking for call tracing
- Performance logging decorator for async entry points
- Log rotation and retention policies
"""

import contextvars
import functools
import logging
import logging.handlers
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Optional, cast

import structlog


class CorrelationContext:
    """Context manager for correlation ID tracking.

    Provides task-safe correlation ID management for tracing one engine
    call across collaborators using contextvars.
    """

    def __init__(self):
        self._context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
            "memberlock_correlation_id", default=None
        )

    def set_correlation_id(self, correlation_id: str) -> None:
        """Set correlation ID for current context."""
        self._context.set(correlation_id)

    def get_correlation_id(self) -> Optional[str]:
        """Get current correlation ID."""
        return self._context.get()

    def generate_correlation_id(self) -> str:
        """Generate a new correlation ID."""
        return str(uuid.uuid4())

    @contextmanager
    def correlation_context(self, correlation_id: Optional[str] = None):
        """Context manager for correlation ID tracking."""
        if correlation_id is None:
            correlation_id = self.generate_correlation_id()

        token = self._context.set(correlation_id)
        try:
            yield correlation_id
        finally:
            self._context.reset(token)


def _add_correlation_id(logger: Any, method_name: str,
                        event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add correlation ID to event dict."""
    if event_dict is not None:
        event_dict.setdefault(
            "correlation_id", correlation_context.get_correlation_id())
        return event_dict
    return {"correlation_id": correlation_context.get_correlation_id()}


def _safe_unicode_decoder(logger: Any, method_name: str,
                          event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Safe unicode decoder for event dict."""
    if event_dict is not None:
        return cast(Dict[str, Any], structlog.processors.UnicodeDecoder()(
            logger, method_name, event_dict))
    return {}


# Global correlation context
correlation_context = CorrelationContext()


def setup_logging(
    environment: str = "development",
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    retention_days: int = 30
) -> None:
    """Setup structured logging configuration with rotation and retention.

    Args:
        environment: Environment (development, staging, production)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path (None for stdout only)
        max_bytes: Maximum bytes per log file before rotation
        backup_count: Number of backup files to keep
        retention_days: Days to retain log files
    """
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_correlation_id,
        _safe_unicode_decoder,
    ]

    if environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        console_handler = logging.StreamHandler(sys.stdout)

        logging.basicConfig(
            format="%(message)s",
            level=getattr(logging, log_level.upper()),
            handlers=[file_handler, console_handler]
        )

        _cleanup_old_logs(log_path.parent, log_path.stem, retention_days)
    else:
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=getattr(logging, log_level.upper()),
        )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structured logger with correlation ID support
    """
    return structlog.get_logger(name)


def log_async_performance(func: Callable) -> Callable:
    """
    Decorator to log async function timing at debug level.

    Args:
        func: Async function to decorate

    Returns:
        Decorated async function with performance logging
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.time()

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.debug(
                "Async function execution failed",
                function_name=func.__qualname__,
                execution_time_ms=(time.time() - start_time) * 1000,
                error_type=type(e).__name__,
            )
            raise

        logger.debug(
            "Async function execution completed",
            function_name=func.__qualname__,
            execution_time_ms=(time.time() - start_time) * 1000,
        )
        return result

    return wrapper


def _cleanup_old_logs(
        log_dir: Path,
        log_name: str,
        retention_days: int) -> None:
    """Clean up old log files based on retention policy.

    Args:
        log_dir: Directory containing log files
        log_name: Base name of log files
        retention_days: Number of days to retain log files
    """
    if not log_dir.exists():
        return

    cutoff_time = time.time() - (retention_days * 24 * 3600)

    for log_file in log_dir.glob(f"{log_name}*"):
        try:
            if log_file.stat().st_mtime < cutoff_time:
                log_file.unlink()
        except OSError as e:
            logging.getLogger(__name__).warning(
                "Failed to remove old log file %s: %s", log_file, e)


def setup_production_logging(
    log_dir: str = "logs",
    app_name: str = "memberlock"
) -> None:
    """Setup production logging with file rotation and retention.

    Args:
        log_dir: Directory for log files
        app_name: Application name for log file naming
    """
    log_file = f"{log_dir}/{app_name}.log"
    setup_logging(
        environment="production",
        log_level="INFO",
        log_file=log_file,
        max_bytes=50 * 1024 * 1024,  # 50MB per file
        backup_count=10,
        retention_days=90
    )
