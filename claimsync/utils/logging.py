"""Structured logging setup for carrier integration."""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional, Dict, Any, Iterator
from pathlib import Path

# Per-task context so concurrent syncs do not overwrite each other's fields
_log_context: ContextVar[Dict[str, Any]] = ContextVar("claimsync_log_context", default={})


class ContextFilter(logging.Filter):
    """Add context information to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context fields to log record."""
        for key, value in _log_context.get().items():
            setattr(record, key, value)
        return True


# Global context filter instance
_context_filter = ContextFilter()


def setup_logging(
    level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up structured logging with optional file output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string for log messages
        log_file: Optional path to log file

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(_context_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(_context_filter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def set_context(**kwargs):
    """
    Set context fields for all subsequent log messages in the current task.

    Example:
        set_context(carrier_code="state-farm", claim_id="CLM-123")
        logger.info("Syncing claim")  # Record carries carrier_code and claim_id

    Args:
        **kwargs: Context key-value pairs
    """
    updated = dict(_log_context.get())
    updated.update(kwargs)
    _log_context.set(updated)


def clear_context():
    """Clear all context fields."""
    _log_context.set({})


@contextmanager
def log_context(**kwargs) -> Iterator[None]:
    """
    Add context fields for the duration of a block, restoring the previous
    context afterwards.

    Example:
        with log_context(claim_id=claim_id):
            await service.sync_claim_status(claim_id)
    """
    updated = dict(_log_context.get())
    updated.update(kwargs)
    token = _log_context.set(updated)
    try:
        yield
    finally:
        _log_context.reset(token)
