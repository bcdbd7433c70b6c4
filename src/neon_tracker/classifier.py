"""Classification of raw player events into canonical tracking events."""

from enum import Enum
from typing import Any, Callable

from .ad_state import AdStateDetector
from .config import TrackerConfig
from .events import TrackerEvents
from .images import ImageDescriptorResolver, format_bns, get_basename
from .log_config import get_context_logger
from .percent import PercentTracker
from .player import Player, PlayerEvent
from .session import SessionState
from .types import ImageDescriptor, TrackingEvent, TrackingEventType
from .video_id import extract_video_id


class RawEvent(str, Enum):
    """Kinds of raw player events the classifier understands."""

    PLAY = "play"
    TIME_UPDATE = "time_update"
    POSTER_CHANGE = "poster_change"
    AD_START = "ad_start"
    IMAGE_LOAD = "image_load"
    IMAGE_VIEW = "image_view"
    IMAGE_CLICK = "image_click"


# Raw player event names and what they mean; every ad-start flavour that
# players and ad plugins emit maps to AD_START
RAW_EVENT_ALIASES: dict[str, RawEvent] = {
    "play": RawEvent.PLAY,
    "timeupdate": RawEvent.TIME_UPDATE,
    "posterchange": RawEvent.POSTER_CHANGE,
    "adstart": RawEvent.AD_START,
    "ads-ad-started": RawEvent.AD_START,
    "ad-play": RawEvent.AD_START,
    "ima3-started": RawEvent.AD_START,
    "adsready": RawEvent.AD_START,
    "image_load": RawEvent.IMAGE_LOAD,
    "image_view": RawEvent.IMAGE_VIEW,
    "image_click": RawEvent.IMAGE_CLICK,
}

EmitCallback = Callable[[TrackingEvent], Any]


class EventClassifier:
    """Turns raw player events into tracking events.

    The classifier is the only writer of the session state. Every produced
    event whose type is configured for tracking is passed to ``emit``; the
    return value of each handler lists all produced events, tracked or not.
    """

    def __init__(
        self,
        player: Player,
        session: SessionState,
        config: TrackerConfig,
        emit: EmitCallback,
        ad_detector: AdStateDetector | None = None,
        percent_tracker: PercentTracker | None = None,
        image_resolver: ImageDescriptorResolver | None = None,
        on_video_attributed: Callable[[str], Any] | None = None,
        logger: Any = None,
    ):
        self.player = player
        self.session = session
        self.config = config
        self.emit = emit
        self.ad_detector = ad_detector or AdStateDetector(player)
        self.percent_tracker = percent_tracker or PercentTracker()
        self.image_resolver = image_resolver or ImageDescriptorResolver(player)
        self.on_video_attributed = on_video_attributed
        self.logger = logger or get_context_logger("neon_classifier")

        self._armed_click: Callable[[PlayerEvent], Any] | None = None
        self._handlers: dict[RawEvent, Callable[[PlayerEvent], list[TrackingEvent]]] = {
            RawEvent.PLAY: self.on_play,
            RawEvent.TIME_UPDATE: self.on_time_update,
            RawEvent.POSTER_CHANGE: self.on_poster_visible,
            RawEvent.AD_START: self.on_ad_start,
            RawEvent.IMAGE_LOAD: self._image_handler(TrackingEventType.IMAGE_LOAD),
            RawEvent.IMAGE_VIEW: self._image_handler(TrackingEventType.IMAGE_VIEW),
            RawEvent.IMAGE_CLICK: self._image_handler(TrackingEventType.IMAGE_CLICK),
        }

    def handle(self, event: PlayerEvent) -> list[TrackingEvent]:
        """Dispatch a raw player event by name."""
        raw = RAW_EVENT_ALIASES.get(event.type)
        if raw is None or not self.session.live:
            return []
        return self._handlers[raw](event)

    # ===== Play =====

    def on_play(self, event: PlayerEvent) -> list[TrackingEvent]:
        if self.ad_detector.is_ad_playing():
            self.logger.debug(TrackerEvents.PLAY_SUPPRESSED, reason="ad_state")
            return []

        video_id = self._extract_video_id()
        already_autoplayed = video_id in self.session.autoplayed_video_ids
        self._attribute(video_id)

        if already_autoplayed and not self.config.tracking.play_after_autoplay:
            self.logger.debug(
                TrackerEvents.PLAY_SUPPRESSED, reason="autoplay_reported", video_id=video_id
            )
            return []

        aplay = event.detail.get("aplay")
        if aplay is None:
            aplay = self.player.autoplay()
        return self._produce(
            TrackingEventType.PLAY,
            {"aplay": bool(aplay), "adplay": self.session.has_ad_played},
        )

    # ===== Time update =====

    def on_time_update(self, event: PlayerEvent) -> list[TrackingEvent]:
        if self.ad_detector.is_ad_playing():
            return []

        produced = []
        if not self.session.first_time_update_seen:
            produced.extend(self._guess_autoplay())

        video_id = self.session.current_video_id
        if video_id is None:
            return produced

        crossed = self.percent_tracker.thresholds_crossed(
            video_id,
            self.player.current_time(),
            self.player.duration(),
            self.config.tracking.time_update_interval,
            self.session.percent_ledger,
        )
        for percent in crossed:
            produced.extend(self._produce(TrackingEventType.TIME_UPDATE, {"prcnt": percent}))
        return produced

    def _guess_autoplay(self) -> list[TrackingEvent]:
        # Autoplay emits no play event, so content time moving before any
        # play means the player started on its own
        if self.session.played_video_ids:
            self.session.first_time_update_seen = True
            return []

        video_id = self._extract_video_id()
        self.session.first_time_update_seen = True
        self.session.autoplayed_video_ids.add(video_id)
        self._attribute(video_id)
        return self._produce(
            TrackingEventType.AUTOPLAY,
            {"aplay": True, "adplay": self.session.has_ad_played},
        )

    # ===== Ads =====

    def on_ad_start(self, event: PlayerEvent) -> list[TrackingEvent]:
        if not self.session.mark_ad_played():
            self.logger.debug(TrackerEvents.AD_PLAY_SUPPRESSED, raw_event=event.type)
            return []
        return self._produce(TrackingEventType.AD_PLAY, {"aplay": False})

    # ===== Images =====

    def on_poster_visible(self, event: PlayerEvent) -> list[TrackingEvent]:
        """Poster shown: report load and view, arm click on next play."""
        produced = []
        produced.extend(self._track_images(TrackingEventType.IMAGE_LOAD, event.detail))
        produced.extend(self._track_images(TrackingEventType.IMAGE_VIEW, event.detail))

        images = self.image_resolver.resolve(event.detail)
        if images:
            self._arm_click(images)
        return produced

    def _image_handler(
        self, event_type: TrackingEventType
    ) -> Callable[[PlayerEvent], list[TrackingEvent]]:
        def handler(event: PlayerEvent) -> list[TrackingEvent]:
            return self._track_images(event_type, event.detail)

        return handler

    def _track_images(
        self, event_type: TrackingEventType, detail: dict[str, Any]
    ) -> list[TrackingEvent]:
        images = self.image_resolver.resolve(detail)
        if not images:
            self.logger.debug(TrackerEvents.IMAGE_UNRESOLVED, event_type=event_type.value)
            return []
        return self._produce(event_type, self._image_detail(event_type, images))

    @staticmethod
    def _image_detail(
        event_type: TrackingEventType, images: list[ImageDescriptor]
    ) -> dict[str, Any]:
        if event_type is TrackingEventType.IMAGE_CLICK:
            return {"bn": get_basename(images[0].url), "images": images}
        return {"bns": format_bns(images), "images": images}

    def _arm_click(self, images: list[ImageDescriptor]) -> None:
        self.disarm_click()

        def on_next_play(event: PlayerEvent) -> list[TrackingEvent]:
            self.disarm_click()
            if not self.session.live:
                return []
            return self._produce(
                TrackingEventType.IMAGE_CLICK,
                self._image_detail(TrackingEventType.IMAGE_CLICK, images),
            )

        self._armed_click = on_next_play
        self.player.on("play", on_next_play)

    def disarm_click(self) -> None:
        """Remove the pending one-shot click listener, if any."""
        if self._armed_click is not None:
            self.player.off("play", self._armed_click)
            self._armed_click = None

    @property
    def click_armed(self) -> bool:
        return self._armed_click is not None

    # ===== Shared =====

    def _extract_video_id(self) -> str:
        return extract_video_id(
            self.player.el(),
            self.config.publisher.video_id_attribute,
            self.config.publisher.video_id_attribute_regex,
        ).unwrap()

    def _attribute(self, video_id: str) -> None:
        if self.session.attribute_video(video_id):
            self.logger.debug(
                TrackerEvents.VIDEO_ATTRIBUTED,
                video_id=video_id,
                play_count=self.session.play_count(),
            )
            if self.on_video_attributed is not None:
                self.on_video_attributed(video_id)

    def _produce(
        self, event_type: TrackingEventType, detail: dict[str, Any]
    ) -> list[TrackingEvent]:
        event = TrackingEvent(type=event_type, detail=detail)
        if self.config.is_tracked(event_type):
            self.emit(event)
        else:
            self.logger.debug(TrackerEvents.EVENT_NOT_TRACKED, event_type=event_type.value)
        return [event]


__all__ = ["RawEvent", "RAW_EVENT_ALIASES", "EventClassifier"]
