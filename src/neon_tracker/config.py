"""
Neon Tracker Configuration Module

Provides configuration classes for the tracker, built from the nested
camelCase option mapping a page hands to the player plugin and merged over
process-level defaults from ``TrackerSettings``.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ConfigValidationError
from .settings import TrackerSettings, deep_merge, get_settings
from .types import TrackerOptions, TrackingEventType


DEFAULT_VIDEO_ID_ATTRIBUTE = "data-video-id"

_JS_REGEX_LITERAL = re.compile(r"^/(?P<body>.*)/(?P<flags>[a-z]*)$", re.DOTALL)
_JS_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def compile_pattern(pattern: str | re.Pattern | None) -> re.Pattern | None:
    """Compile a video-id extraction pattern.

    Accepts a Python regex string, a compiled pattern, or a JavaScript regex
    literal such as ``/^[a-z]+/i``. The ``g`` flag is accepted and ignored
    since only the first match is used.

    Raises:
        ConfigValidationError: If the pattern does not compile
    """
    if pattern is None or isinstance(pattern, re.Pattern):
        return pattern

    source = pattern
    flags = 0
    literal = _JS_REGEX_LITERAL.match(pattern)
    if literal:
        source = literal.group("body")
        for flag in literal.group("flags"):
            flags |= _JS_FLAGS.get(flag, 0)

    try:
        return re.compile(source, flags)
    except re.error as e:
        raise ConfigValidationError(
            f"Invalid video id pattern: {e}",
            config_key="publisher.videoIdAttributeRegex",
            config_value=pattern,
        ) from e


@dataclass
class PublisherConfig:
    """Publisher identity and video-id extraction options."""

    id: str | None = None
    video_id_attribute: str = DEFAULT_VIDEO_ID_ATTRIBUTE
    video_id_attribute_regex: re.Pattern | None = None


@dataclass
class TrackingConfig:
    """
    Tracking endpoint and behavior options.

    Attributes:
        track_url: Endpoint receiving direct GET pings
        time_update_interval: Percent step for view milestones, clamped to 100
        tracking_type: Value sent as ``ttype``
        events: Canonical event types that are reported
        wait_for_parent_millis: Budget for a page aggregator to appear
        play_after_autoplay: Report a genuine play for a video already
            reported through the autoplay guess
    """

    track_url: str = ""
    time_update_interval: int = 25
    tracking_type: str = "BRIGHTCOVE"
    events: frozenset[TrackingEventType] = field(
        default_factory=lambda: frozenset(TrackingEventType)
    )
    wait_for_parent_millis: int = 5000
    play_after_autoplay: bool = False

    @property
    def wait_for_parent_sec(self) -> float:
        """Aggregator wait budget in seconds."""
        return self.wait_for_parent_millis / 1000.0


@dataclass
class DevConfig:
    """Developer switches."""

    show_console_logging: bool = False


@dataclass
class TrackerConfig:
    """
    Complete per-player tracker configuration.

    Examples:
        Defaults:
        >>> config = TrackerConfig.from_options()
        >>> config.tracking.time_update_interval
        25

        Publisher with an id pattern:
        >>> config = TrackerConfig.from_options({
        ...     "publisher": {"id": "pub-1", "videoIdAttributeRegex": "/^[a-z]+/"},
        ...     "tracking": {"events": ["play", "timeUpdate"]},
        ... })
    """

    publisher: PublisherConfig = field(default_factory=PublisherConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    dev: DevConfig = field(default_factory=DevConfig)

    def is_tracked(self, event_type: TrackingEventType) -> bool:
        """Check whether an event type is reported."""
        return event_type in self.tracking.events

    @staticmethod
    def default_options(settings: TrackerSettings | None = None) -> dict[str, Any]:
        """Default option mapping, seeded from process settings."""
        settings = settings or get_settings()
        return {
            "publisher": {
                "id": None,
                "videoIdAttribute": DEFAULT_VIDEO_ID_ATTRIBUTE,
                "videoIdAttributeRegex": None,
            },
            "tracking": {
                "neonApiUrl": settings.track_url,
                "timeUpdateInterval": settings.time_update_interval,
                "type": settings.tracking_type,
                "events": [event.value for event in TrackingEventType],
                "waitForParentMillis": settings.wait_for_parent_millis,
                "playAfterAutoplay": False,
            },
            "dev": {
                "showConsoleLogging": settings.show_console_logging,
            },
        }

    @classmethod
    def from_options(
        cls,
        options: TrackerOptions | None = None,
        settings: TrackerSettings | None = None,
    ) -> "TrackerConfig":
        """
        Build configuration from a nested option mapping.

        Options are deep-merged over the defaults, then validated.

        Args:
            options: Nested ``publisher`` / ``tracking`` / ``dev`` mapping
            settings: Process settings providing defaults

        Returns:
            TrackerConfig instance

        Raises:
            ConfigValidationError: If an option value is invalid
        """
        merged = deep_merge(cls.default_options(settings), options or {})
        publisher = merged.get("publisher") or {}
        tracking = merged.get("tracking") or {}
        dev = merged.get("dev") or {}

        attribute = publisher.get("videoIdAttribute")
        if not attribute:
            raise ConfigValidationError(
                "Video id attribute must be a non-empty string",
                config_key="publisher.videoIdAttribute",
                config_value=attribute,
            )

        interval = tracking.get("timeUpdateInterval")
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            raise ConfigValidationError(
                "Time update interval must be a positive integer",
                config_key="tracking.timeUpdateInterval",
                config_value=interval,
            )

        wait_millis = tracking.get("waitForParentMillis")
        if not isinstance(wait_millis, (int, float)) or wait_millis < 0:
            raise ConfigValidationError(
                "Wait for parent must be a non-negative number of milliseconds",
                config_key="tracking.waitForParentMillis",
                config_value=wait_millis,
            )

        return cls(
            publisher=PublisherConfig(
                id=publisher.get("id"),
                video_id_attribute=attribute,
                video_id_attribute_regex=compile_pattern(publisher.get("videoIdAttributeRegex")),
            ),
            tracking=TrackingConfig(
                track_url=tracking.get("neonApiUrl") or "",
                time_update_interval=min(100, interval),
                tracking_type=tracking.get("type"),
                events=cls._parse_events(tracking.get("events")),
                wait_for_parent_millis=wait_millis,
                play_after_autoplay=bool(tracking.get("playAfterAutoplay")),
            ),
            dev=DevConfig(show_console_logging=bool(dev.get("showConsoleLogging"))),
        )

    @staticmethod
    def _parse_events(events: Any) -> frozenset[TrackingEventType]:
        if events is None:
            return frozenset()
        parsed = set()
        for name in events:
            try:
                parsed.add(TrackingEventType(name))
            except ValueError as e:
                raise ConfigValidationError(
                    f"Unknown tracking event type: {name}",
                    config_key="tracking.events",
                    config_value=name,
                ) from e
        return frozenset(parsed)


__all__ = [
    "DEFAULT_VIDEO_ID_ATTRIBUTE",
    "compile_pattern",
    "PublisherConfig",
    "TrackingConfig",
    "DevConfig",
    "TrackerConfig",
]
