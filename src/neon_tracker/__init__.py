"""
Neon Tracker Package

Video player engagement tracking for the Neon content-analytics backend:
poster impressions and clicks, play starts with autoplay detection and ad
suppression, view-percent milestones and ad plays.

This package provides:
- NeonTracker: Per-player tracker wiring player events to a session
- EventClassifier: Raw player events to canonical tracking events
- DeliveryRouter: Aggregator delegation with direct-send fallback
- SessionState: Per-player tracking state
- HeadlessPlayer: In-memory player for tests and replays

Usage:
    from neon_tracker import NeonTracker, HeadlessPlayer

    player = HeadlessPlayer(video_id="abc-123", duration=120)
    tracker = NeonTracker(player, {"publisher": {"id": "pub-1"}})
    player.trigger("play")
"""

from .aggregator import (
    PageAggregator,
    get_page_aggregator,
    reset_page_aggregator,
    set_page_aggregator,
)
from .classifier import RAW_EVENT_ALIASES, EventClassifier, RawEvent
from .config import DevConfig, PublisherConfig, TrackerConfig, TrackingConfig
from .exceptions import (
    ConfigurationError,
    ConfigValidationError,
    NeonTrackerError,
    VideoIdAttributeMissingError,
    VideoIdPatternMismatchError,
)
from .player import HeadlessPlayer, Player, PlayerEvent
from .router import DeliveryOutcome, DeliveryRouter
from .session import PageIdentity, SessionState
from .time_provider import (
    RealtimeTimeProvider,
    SimulatedTimeProvider,
    TimeProvider,
    create_time_provider,
)
from .tracker import NeonTracker, attach_tracker
from .transport import HttpTransport, Transport
from .types import ImageDescriptor, TrackerOptions, TrackingEvent, TrackingEventType

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "NeonTracker",
    "attach_tracker",
    "EventClassifier",
    "DeliveryRouter",
    "DeliveryOutcome",
    "SessionState",
    "PageIdentity",
    "RawEvent",
    "RAW_EVENT_ALIASES",
    # Types
    "TrackingEvent",
    "TrackingEventType",
    "ImageDescriptor",
    "TrackerOptions",
    # Configuration
    "TrackerConfig",
    "PublisherConfig",
    "TrackingConfig",
    "DevConfig",
    # Collaborators
    "Player",
    "PlayerEvent",
    "HeadlessPlayer",
    "PageAggregator",
    "get_page_aggregator",
    "set_page_aggregator",
    "reset_page_aggregator",
    "Transport",
    "HttpTransport",
    # Time providers
    "TimeProvider",
    "RealtimeTimeProvider",
    "SimulatedTimeProvider",
    "create_time_provider",
    # Errors
    "NeonTrackerError",
    "ConfigurationError",
    "ConfigValidationError",
    "VideoIdAttributeMissingError",
    "VideoIdPatternMismatchError",
    # Package metadata
    "__version__",
]
