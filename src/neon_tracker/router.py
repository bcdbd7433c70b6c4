"""Delivery of tracking events to the page aggregator or the tracking endpoint."""

from enum import Enum
from typing import Any, Callable

from .aggregator import PageAggregator, get_page_aggregator
from .config import TrackerConfig
from .events import TrackerEvents
from .exceptions import DelegationError
from .images import format_bns, get_base_url, get_basename
from .log_config import get_context_logger
from .params import ACTION_CODES, ParameterFilter
from .session import SessionState
from .time_provider import TimeProvider
from .transport import Transport
from .types import ImageDescriptor, TrackingEventType


class DeliveryOutcome(str, Enum):
    """What a single delivery attempt did."""

    DELEGATED = "delegated"  # handled by the page aggregator
    SENT = "sent"  # handed to the transport
    DEFERRED = "deferred"  # retry scheduled, waiting for an aggregator
    DROPPED = "dropped"  # session no longer live


# Aggregator method per image event; other events have no aggregator equivalent
_AGGREGATOR_METHODS: dict[TrackingEventType, str] = {
    TrackingEventType.IMAGE_LOAD: "send_image_loaded",
    TrackingEventType.IMAGE_VIEW: "send_image_visible",
    TrackingEventType.IMAGE_CLICK: "send_image_clicked",
}


class DeliveryRouter:
    """Routes each tracking event through the aggregator or direct delivery.

    Routing per attempt:
        1. Aggregator discoverable: delegate each image when it has a method
           for the event type; images it fails to take are sent directly,
           and events without a method are sent directly as a whole.
        2. No aggregator, wait budget left: schedule one retry after the
           remaining budget and stop.
        3. Otherwise: send directly.

    The remaining budget is measured from the session's ready timestamp. The
    scheduled retry is a final attempt: it never reschedules, even when the
    clock still shows budget left. Without a running event loop no retry can
    be scheduled and the event is sent directly.
    """

    def __init__(
        self,
        session: SessionState,
        config: TrackerConfig,
        transport: Transport,
        time_provider: TimeProvider,
        parameter_filter: ParameterFilter | None = None,
        aggregator_lookup: Callable[[], PageAggregator | None] = get_page_aggregator,
        logger: Any = None,
    ):
        self.session = session
        self.config = config
        self.transport = transport
        self.time_provider = time_provider
        self.parameter_filter = parameter_filter or ParameterFilter()
        self.aggregator_lookup = aggregator_lookup
        self.logger = logger or get_context_logger("neon_router")

    # ===== Public API =====

    def deliver(
        self, event_type: TrackingEventType, detail: dict[str, Any] | None = None
    ) -> DeliveryOutcome:
        """Deliver one tracking event.

        Args:
            event_type: Canonical event type
            detail: Event-specific fields

        Returns:
            Outcome of this attempt
        """
        detail = dict(detail or {})
        params = self.build_params(event_type, detail)
        return self._attempt(event_type, detail, params)

    def notify_video_id(self, video_id: str) -> None:
        """Tell the aggregator about a newly attributed video.

        Without an aggregator but inside the wait budget, a single
        notification is scheduled for when the budget expires.
        """
        if not self.session.live:
            return

        aggregator = self.discover_aggregator()
        if aggregator is not None:
            self._add_video_id(aggregator, video_id)
            return

        remaining = self.remaining_wait()
        if remaining > 0:
            self._schedule(remaining, self._deferred_notify, video_id)

    def build_params(
        self, event_type: TrackingEventType, detail: dict[str, Any]
    ) -> dict[str, Any]:
        """Assemble and filter the outbound parameters for an event.

        Page identity, then common fields, then event detail; later sources
        win on key collisions.
        """
        common = {
            "a": ACTION_CODES[event_type],
            "cts": int(self.time_provider.now() * 1000),
            "pcount": self.session.play_count(),
            "ref": self.session.page_identity.referrer_url,
            "vid": self.session.current_video_id,
            "playerId": self.session.player_id,
        }
        merged = {**self.session.page_identity.to_params(), **common, **detail}
        return self.parameter_filter.filter(merged)

    def discover_aggregator(self) -> PageAggregator | None:
        """Return the page aggregator, looking it up until found."""
        if self.session.aggregator_ref is None:
            self.session.aggregator_ref = self.aggregator_lookup()
        return self.session.aggregator_ref

    def remaining_wait(self) -> float:
        """Seconds left in the wait-for-aggregator budget."""
        deadline = self.session.ready_timestamp + self.config.tracking.wait_for_parent_sec
        return deadline - self.time_provider.now()

    # ===== Routing =====

    def _attempt(
        self,
        event_type: TrackingEventType,
        detail: dict[str, Any],
        params: dict[str, Any],
        final: bool = False,
    ) -> DeliveryOutcome:
        if not self.session.live:
            return DeliveryOutcome.DROPPED

        aggregator = self.discover_aggregator()
        if aggregator is not None:
            undelivered = self._delegate(aggregator, event_type, detail)
            if undelivered is not None:
                if not undelivered:
                    return DeliveryOutcome.DELEGATED
                params = self._image_params(event_type, params, undelivered)
        elif not final:
            remaining = self.remaining_wait()
            # The retry is the final attempt whatever the clock says then
            if remaining > 0 and self._schedule(
                remaining, self._attempt, event_type, detail, params, True
            ):
                self.logger.debug(
                    TrackerEvents.DELIVERY_DEFERRED,
                    event_type=event_type.value,
                    retry_in=round(remaining, 3),
                )
                return DeliveryOutcome.DEFERRED

        self.transport.send(self.config.tracking.track_url, params)
        self.logger.debug(
            TrackerEvents.DELIVERY_SENT,
            event_type=event_type.value,
            action=params.get("a"),
            params=params,
        )
        return DeliveryOutcome.SENT

    def _delegate(
        self,
        aggregator: PageAggregator,
        event_type: TrackingEventType,
        detail: dict[str, Any],
    ) -> list[ImageDescriptor] | None:
        """Hand an image event to the aggregator, one call per image.

        Returns:
            None when the aggregator has no equivalent for the event,
            otherwise the images it failed to take (empty when all succeeded)
        """
        method_name = _AGGREGATOR_METHODS.get(event_type)
        images: list[ImageDescriptor] = detail.get("images") or []
        if method_name is None or not images:
            return None

        method = getattr(aggregator, method_name, None)
        if method is None:
            return None

        undelivered = []
        for image in images:
            base_url = get_base_url(image.url)
            try:
                if event_type is TrackingEventType.IMAGE_CLICK:
                    method(base_url, self.session.current_video_id)
                else:
                    method(base_url, image.width, image.height)
            except Exception as e:
                error = DelegationError(
                    "Aggregator delegation failed", method=method_name, cause=e
                )
                self.logger.warning(
                    TrackerEvents.DELEGATION_FAILED,
                    event_type=event_type.value,
                    url=base_url,
                    error=str(error),
                )
                undelivered.append(image)

        if len(undelivered) < len(images):
            self.logger.debug(
                TrackerEvents.DELIVERY_DELEGATED,
                event_type=event_type.value,
                method=method_name,
                images_count=len(images) - len(undelivered),
            )
        return undelivered

    @staticmethod
    def _image_params(
        event_type: TrackingEventType,
        params: dict[str, Any],
        images: list[ImageDescriptor],
    ) -> dict[str, Any]:
        """Narrow image parameters to the images still to be reported."""
        if event_type is TrackingEventType.IMAGE_CLICK:
            return {**params, "bn": get_basename(images[0].url)}
        return {**params, "bns": format_bns(images)}

    def _add_video_id(self, aggregator: PageAggregator, video_id: str) -> None:
        try:
            aggregator.add_video_id(video_id)
        except Exception as e:
            error = DelegationError(
                "Aggregator video id notification failed", method="add_video_id", cause=e
            )
            self.logger.warning(
                TrackerEvents.DELEGATION_FAILED, video_id=video_id, error=str(error)
            )
            return
        self.logger.debug(TrackerEvents.VIDEO_ID_NOTIFIED, video_id=video_id)

    def _deferred_notify(self, video_id: str) -> None:
        if not self.session.live:
            return
        aggregator = self.discover_aggregator()
        if aggregator is not None:
            self._add_video_id(aggregator, video_id)

    def _schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> bool:
        """Run ``callback`` once after ``delay`` unless the session is closed first.

        Returns:
            False when no timer could be scheduled (no running event loop)
        """
        handle = None

        def fire() -> None:
            self.session.discard_timer(handle)
            if self.session.live:
                callback(*args)

        try:
            handle = self.time_provider.call_later(delay, fire)
        except RuntimeError as e:
            self.logger.warning(
                TrackerEvents.SCHEDULE_FAILED,
                delay=round(delay, 3),
                error=str(e),
            )
            return False
        self.session.add_timer(handle)
        return True


__all__ = ["DeliveryOutcome", "DeliveryRouter"]
