"""Neon player tracker: wires a player to a tracking session."""

from typing import Any

from .aggregator import PageAggregator, get_page_aggregator
from .classifier import RAW_EVENT_ALIASES, EventClassifier
from .config import TrackerConfig
from .events import TrackerEvents
from .log_config import SessionLogContext, get_session_logger
from .player import Player, PlayerEvent
from .router import DeliveryRouter
from .session import PageIdentity, SessionState, generate_page_load_id
from .time_provider import RealtimeTimeProvider, TimeProvider
from .transport import HttpTransport, Transport
from .types import TrackerOptions, TrackingEvent


class NeonTracker:
    """Tracks viewer engagement for one player.

    Setup is deferred to the player's ready callback. Each tracker owns an
    isolated ``SessionState``; several trackers on one page share nothing but
    the optional page aggregator.

    Usage:
        >>> player = HeadlessPlayer(video_id="abc-123", duration=120)
        >>> tracker = NeonTracker(
        ...     player,
        ...     {"publisher": {"id": "pub-1"}},
        ...     page_url="https://example.com/watch",
        ... )
        >>> player.trigger("play")
        >>> tracker.dispose()
    """

    def __init__(
        self,
        player: Player,
        options: TrackerOptions | None = None,
        *,
        page_url: str | None = None,
        referrer_url: str | None = None,
        config: TrackerConfig | None = None,
        transport: Transport | None = None,
        time_provider: TimeProvider | None = None,
        aggregator_lookup=get_page_aggregator,
    ):
        """Initialize tracker.

        Args:
            player: Host player
            options: Nested option mapping merged over defaults
            page_url: URL of the page embedding the player
            referrer_url: Referrer of that page
            config: Prebuilt configuration (``options`` is ignored when given)
            transport: Direct delivery transport (httpx GET if None)
            time_provider: Clock and timers (asyncio wall clock if None)
            aggregator_lookup: Callable returning the page aggregator or None

        Raises:
            ConfigValidationError: If an option value is invalid
        """
        self.player = player
        self.config = config or TrackerConfig.from_options(options)
        self.page_url = page_url
        self.referrer_url = referrer_url
        self.transport = transport or HttpTransport()
        self.time_provider = time_provider or RealtimeTimeProvider()
        self.aggregator_lookup = aggregator_lookup

        self.session: SessionState | None = None
        self.router: DeliveryRouter | None = None
        self.classifier: EventClassifier | None = None
        self.delivered: list[TrackingEvent] = []
        self._subscriptions: list[tuple[str, Any]] = []
        self._disposed = False

        self.logger = get_session_logger(
            "neon_tracker",
            self.config.dev.show_console_logging,
            player_id=player.id(),
        )

        player.ready(self._on_player_ready)

    @property
    def is_ready(self) -> bool:
        return self.session is not None

    def _on_player_ready(self) -> None:
        if self._disposed:
            return
        self.session = self._create_session()
        self.logger = self.logger.bind(
            session_id=self.session.session_id,
            page_id=self.session.page_identity.page_load_id,
        )
        self.router = DeliveryRouter(
            self.session,
            self.config,
            self.transport,
            self.time_provider,
            aggregator_lookup=self.aggregator_lookup,
            logger=self.logger,
        )
        self.classifier = EventClassifier(
            self.player,
            self.session,
            self.config,
            emit=self._deliver,
            on_video_attributed=self.router.notify_video_id,
            logger=self.logger,
        )

        for raw_name in RAW_EVENT_ALIASES:
            self._subscribe(raw_name, self._on_player_event)
        self._subscribe("dispose", self._on_player_dispose)

        self.logger.info(
            TrackerEvents.SESSION_STARTED,
            tracked_events=sorted(e.value for e in self.config.tracking.events),
            has_aggregator=self.session.aggregator_ref is not None,
        )

        if self.player.poster():
            self._on_player_event(PlayerEvent(type="posterchange"))

    def _create_session(self) -> SessionState:
        aggregator = self.aggregator_lookup()
        page_load_id = None
        if aggregator is not None:
            page_load_id = self._aggregator_page_load_id(aggregator)

        identity = PageIdentity(
            page_load_id=page_load_id or generate_page_load_id(),
            page_url=self.page_url,
            referrer_url=self.referrer_url,
            publisher_id=self.config.publisher.id,
            tracking_type=self.config.tracking.tracking_type,
        )
        return SessionState(
            page_identity=identity,
            ready_timestamp=self.time_provider.now(),
            player_id=self.player.id(),
            aggregator_ref=aggregator,
        )

    def _aggregator_page_load_id(self, aggregator: PageAggregator) -> str | None:
        try:
            return aggregator.get_page_load_id()
        except Exception as e:
            self.logger.warning(
                TrackerEvents.DELEGATION_FAILED, method="get_page_load_id", error=repr(e)
            )
            return None

    def _subscribe(self, event_type: str, handler: Any) -> None:
        self.player.on(event_type, handler)
        self._subscriptions.append((event_type, handler))

    def _on_player_event(self, event: PlayerEvent) -> list[TrackingEvent]:
        with SessionLogContext(
            session_id=self.session.session_id, player_event=event.type
        ):
            return self.classifier.handle(event)

    def _deliver(self, event: TrackingEvent) -> None:
        self.delivered.append(event)
        self.router.deliver(event.type, event.detail)

    def _on_player_dispose(self, event: PlayerEvent) -> None:
        self.dispose()

    def dispose(self) -> None:
        """Tear down: unsubscribe handlers and cancel deferred deliveries."""
        self._disposed = True
        for event_type, handler in self._subscriptions:
            self.player.off(event_type, handler)
        self._subscriptions.clear()

        if self.classifier is not None:
            self.classifier.disarm_click()
        if self.session is not None and self.session.live:
            self.session.close()
            self.logger.info(TrackerEvents.SESSION_DISPOSED, **self.session.to_dict())


def attach_tracker(player: Player, options: TrackerOptions | None = None, **kwargs: Any) -> NeonTracker:
    """Attach a tracker to ``player``.

    Convenience function mirroring a player plugin registration.

    Returns:
        NeonTracker: Tracker bound to the player
    """
    return NeonTracker(player, options, **kwargs)


__all__ = ["NeonTracker", "attach_tracker"]
