"""Neon tracker exception hierarchy.

Exception Hierarchy:
    NeonTrackerError (base)
    ├── ConfigurationError
    │   ├── VideoIdAttributeMissingError
    │   ├── VideoIdPatternMismatchError
    │   └── ConfigValidationError
    ├── DelegationError
    └── TransportError

Configuration errors surface to the embedding page from the player event
handler. Delegation and transport errors are built for logging only and are
never raised out of the router or the transport.
"""

from typing import Optional


class NeonTrackerError(Exception):
    """Base exception for all tracker errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        """Initialize tracker exception.

        Args:
            message: Error message
            context: Optional context dictionary for debugging
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return string representation with context."""
        if self.context:
            context_str = "; ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


# Configuration Errors

class ConfigurationError(NeonTrackerError):
    """Base exception for configuration problems.

    Fatal to the action that triggered it. Session state is left untouched.
    """

    pass


class VideoIdAttributeMissingError(ConfigurationError):
    """Raised when the player root element lacks the video-id attribute.

    Attributes:
        attribute: Name of the attribute that was looked up
    """

    def __init__(
        self,
        message: str,
        attribute: Optional[str] = None,
        context: Optional[dict] = None,
    ):
        if context is None:
            context = {}
        if attribute:
            context["attribute"] = attribute
        super().__init__(message, context)
        self.attribute = attribute


class VideoIdPatternMismatchError(ConfigurationError):
    """Raised when the configured extraction pattern does not match.

    Attributes:
        pattern: The extraction pattern
        value: The attribute value the pattern was applied to
    """

    def __init__(
        self,
        message: str,
        pattern: Optional[str] = None,
        value: Optional[str] = None,
        context: Optional[dict] = None,
    ):
        if context is None:
            context = {}
        if pattern:
            context["pattern"] = pattern
        if value is not None:
            context["value"] = value[:100]
        super().__init__(message, context)
        self.pattern = pattern
        self.value = value


class ConfigValidationError(ConfigurationError):
    """Raised when an option value is invalid.

    Attributes:
        config_key: Dotted option key that failed validation
        config_value: The invalid value
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[object] = None,
        context: Optional[dict] = None,
    ):
        if context is None:
            context = {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = str(config_value)[:100]
        super().__init__(message, context)
        self.config_key = config_key
        self.config_value = config_value


# Delivery Errors

class DelegationError(NeonTrackerError):
    """An aggregator method raised while delegating an event.

    Attributes:
        method: Aggregator method name
        cause: The underlying exception
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        if context is None:
            context = {}
        if method:
            context["method"] = method
        if cause is not None:
            context["cause"] = repr(cause)
        super().__init__(message, context)
        self.method = method
        self.cause = cause


class TransportError(NeonTrackerError):
    """A direct tracking request failed.

    Attributes:
        http_status: HTTP status code if available
        network_error: The underlying network exception
    """

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        network_error: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        if context is None:
            context = {}
        if http_status:
            context["http_status"] = http_status
        super().__init__(message, context)
        self.http_status = http_status
        self.network_error = network_error


__all__ = [
    "NeonTrackerError",
    "ConfigurationError",
    "VideoIdAttributeMissingError",
    "VideoIdPatternMismatchError",
    "ConfigValidationError",
    "DelegationError",
    "TransportError",
]
