"""Type definitions for the Neon tracker package."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypedDict


class TrackingEventType(str, Enum):
    """Canonical tracking events produced by the classifier."""

    IMAGE_LOAD = "imageLoad"
    IMAGE_VIEW = "imageView"
    IMAGE_CLICK = "imageClick"
    AUTOPLAY = "autoplay"
    PLAY = "play"
    AD_PLAY = "adPlay"
    TIME_UPDATE = "timeUpdate"


@dataclass(frozen=True)
class ImageDescriptor:
    """A poster or thumbnail image as rendered by the player."""

    url: str
    width: int
    height: int


@dataclass(frozen=True)
class TrackingEvent:
    """Transient event passed from the classifier to the router."""

    type: TrackingEventType
    detail: dict[str, Any] = field(default_factory=dict)


class TrackerOptions(TypedDict, total=False):
    """Raw option mapping accepted by ``TrackerConfig.from_options``."""

    publisher: dict[str, Any]
    tracking: dict[str, Any]
    dev: dict[str, Any]


__all__ = ["TrackingEventType", "ImageDescriptor", "TrackingEvent", "TrackerOptions"]
