"""Logging configuration and utilities."""

import logging
from typing import Any

import structlog


def get_context_logger(name: str) -> structlog.BoundLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


def get_session_logger(name: str, show_console: bool = False, **initial_values: Any) -> Any:
    """Get a per-session logger filtered by the console logging switch.

    Debug and info output is only emitted when ``show_console`` is set;
    warnings and errors always pass. Processors and the output logger come
    from the global structlog configuration.

    Args:
        name: Logger name
        show_console: Value of ``dev.showConsoleLogging``
        **initial_values: Context bound on every log line

    Returns:
        Structured logger instance
    """
    level = logging.DEBUG if show_console else logging.WARNING
    return structlog.wrap_logger(
        None,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_name=name,
        **initial_values,
    )


class SessionLogContext:
    """Context manager binding session identifiers into structlog contextvars."""

    def __init__(self, **context: Any):
        """Initialize with context variables.

        Args:
            **context: Context key-value pairs
        """
        self.context = context

    def __enter__(self):
        """Enter context."""
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context."""
        structlog.contextvars.unbind_contextvars(*self.context.keys())


__all__ = [
    "get_context_logger",
    "get_session_logger",
    "SessionLogContext",
]
