"""Tracker event name constants for structured logging."""

from enum import Enum


class TrackerEvents(str, Enum):
    """Event type constants for structured logging."""

    # Session events
    SESSION_STARTED = "neon.session.started"
    SESSION_DISPOSED = "neon.session.disposed"
    VIDEO_ATTRIBUTED = "neon.session.video_attributed"

    # Classifier events
    PLAY_SUPPRESSED = "neon.classify.play_suppressed"
    AD_PLAY_SUPPRESSED = "neon.classify.ad_play_suppressed"
    IMAGE_UNRESOLVED = "neon.classify.image_unresolved"
    EVENT_NOT_TRACKED = "neon.classify.not_tracked"

    # Delivery events
    DELIVERY_DELEGATED = "neon.delivery.delegated"
    DELIVERY_DEFERRED = "neon.delivery.deferred"
    DELIVERY_SENT = "neon.delivery.sent"
    DELEGATION_FAILED = "neon.delivery.delegation_failed"
    VIDEO_ID_NOTIFIED = "neon.delivery.video_id_notified"
    SCHEDULE_FAILED = "neon.delivery.schedule_failed"

    # Transport events
    TRANSPORT_RESPONSE = "neon.transport.response"
    TRANSPORT_FAILED = "neon.transport.failed"


__all__ = ["TrackerEvents"]
