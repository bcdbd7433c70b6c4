"""Logging configuration package."""

from .main import SessionLogContext, get_context_logger, get_session_logger


__all__ = [
    "get_context_logger",
    "get_session_logger",
    "SessionLogContext",
]
