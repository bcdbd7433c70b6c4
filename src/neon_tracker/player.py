"""Player interface and an in-memory headless player.

The tracker only needs a small surface from the host player: event
subscription, playback position, poster information, the autoplay flag and
the root element. ``HeadlessPlayer`` provides that surface without a
browser, with an ``lxml.html`` element standing in for the player's DOM
node, and is what tests and offline replays drive.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

import lxml.html

from .log_config import get_context_logger


@dataclass
class PlayerEvent:
    """Raw event emitted by the player."""

    type: str
    detail: dict[str, Any] = field(default_factory=dict)


PlayerEventHandler = Callable[[PlayerEvent], Any]


@runtime_checkable
class PlayerElement(Protocol):
    """Root element of the player; ``lxml.html.HtmlElement`` satisfies it."""

    def get(self, key: str, default: Any = None) -> Any:
        """Read an attribute, including ``class``."""
        ...


@runtime_checkable
class Player(Protocol):
    """Protocol for the host video player."""

    def ready(self, callback: Callable[[], Any]) -> None:
        """Run ``callback`` once the player is ready (immediately if it is)."""
        ...

    def on(self, event_type: str, handler: PlayerEventHandler) -> None:
        """Subscribe ``handler`` to a named event."""
        ...

    def off(self, event_type: str, handler: PlayerEventHandler) -> None:
        """Unsubscribe ``handler`` from a named event."""
        ...

    def current_time(self) -> float:
        ...

    def duration(self) -> float | None:
        ...

    def poster(self) -> str | None:
        ...

    def poster_size(self) -> tuple[int, int] | None:
        """Rendered poster ``(width, height)``, or ``None`` if not rendered."""
        ...

    def autoplay(self) -> bool:
        ...

    def el(self) -> PlayerElement:
        ...

    def id(self) -> str | None:
        ...


class HeadlessPlayer:
    """In-memory player emitting events on demand.

    Handlers run synchronously inside ``trigger`` in subscription order;
    exceptions raised by a handler propagate to the caller, the way a page
    sees errors thrown from player event listeners.

    Example:
        >>> player = HeadlessPlayer(video_id="abc-123", duration=100)
        >>> player.trigger("play")
        >>> player.seek(30)
        >>> player.trigger("timeupdate")
    """

    AD_PLAYING_CLASS = "vjs-ad-playing"
    AD_LOADING_CLASS = "vjs-ad-loading"

    def __init__(
        self,
        player_id: str | None = "player-1",
        video_id: str | None = None,
        video_id_attribute: str = "data-video-id",
        duration: float | None = None,
        poster: str | None = None,
        poster_size: tuple[int, int] | None = None,
        autoplay: bool = False,
        classes: tuple[str, ...] = ("video-js",),
        is_ready: bool = True,
    ):
        self._player_id = player_id
        self._duration = duration
        self._poster = poster
        self._poster_size = poster_size
        self._autoplay = autoplay
        self._current_time = 0.0
        self._handlers: dict[str, list[PlayerEventHandler]] = defaultdict(list)
        self._ready_callbacks: list[Callable[[], Any]] = []
        self._is_ready = is_ready
        self.video_id_attribute = video_id_attribute

        attrib = {"class": " ".join(classes)}
        if player_id:
            attrib["id"] = player_id
        self._el = lxml.html.Element("div", attrib)
        if video_id is not None:
            self._el.set(video_id_attribute, video_id)

        self.logger = get_context_logger("headless_player")

    # ===== Player protocol =====

    def ready(self, callback: Callable[[], Any]) -> None:
        if self._is_ready:
            callback()
        else:
            self._ready_callbacks.append(callback)

    def on(self, event_type: str, handler: PlayerEventHandler) -> None:
        self._handlers[event_type].append(handler)

    def off(self, event_type: str, handler: PlayerEventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def current_time(self) -> float:
        return self._current_time

    def duration(self) -> float | None:
        return self._duration

    def poster(self) -> str | None:
        return self._poster

    def poster_size(self) -> tuple[int, int] | None:
        if self._poster is None:
            return None
        return self._poster_size

    def autoplay(self) -> bool:
        return self._autoplay

    def el(self) -> lxml.html.HtmlElement:
        return self._el

    def id(self) -> str | None:
        return self._player_id

    # ===== Simulation controls =====

    def make_ready(self) -> None:
        """Mark the player ready and flush pending ready callbacks."""
        self._is_ready = True
        callbacks, self._ready_callbacks = self._ready_callbacks, []
        for callback in callbacks:
            callback()

    def trigger(self, event_type: str, **detail: Any) -> None:
        """Emit an event to every handler subscribed at call time."""
        event = PlayerEvent(type=event_type, detail=detail)
        # Copy: handlers may unsubscribe themselves while running
        for handler in list(self._handlers.get(event_type, [])):
            handler(event)

    def listener_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, []))

    def seek(self, seconds: float) -> None:
        self._current_time = seconds

    def set_duration(self, seconds: float | None) -> None:
        self._duration = seconds

    def set_video_id(self, video_id: str | None) -> None:
        if video_id is None:
            self._el.attrib.pop(self.video_id_attribute, None)
        else:
            self._el.set(self.video_id_attribute, video_id)

    def set_poster(
        self, url: str | None, size: tuple[int, int] | None = None, emit: bool = True
    ) -> None:
        """Replace the poster and emit ``posterchange``."""
        self._poster = url
        self._poster_size = size
        if emit:
            self.trigger("posterchange")

    def start_ad(self, loading: bool = False) -> None:
        """Put the root element into ad state."""
        self._el.classes.add(self.AD_LOADING_CLASS if loading else self.AD_PLAYING_CLASS)

    def end_ad(self) -> None:
        self._el.classes.discard(self.AD_PLAYING_CLASS)
        self._el.classes.discard(self.AD_LOADING_CLASS)

    def dispose(self) -> None:
        """Emit ``dispose`` and drop every handler."""
        self.trigger("dispose")
        self._handlers.clear()
        self.logger.debug("Headless player disposed", player_id=self._player_id)


__all__ = [
    "PlayerEvent",
    "PlayerEventHandler",
    "PlayerElement",
    "Player",
    "HeadlessPlayer",
]
