"""
Tracking Session Domain Object

Per-player record of tracking state: page identity, attributed video, the
played-video history, the percent ledger and the ad-played latch. One session
exists per player for the player's lifetime; it is never shared.
"""

import secrets
import uuid
from dataclasses import dataclass, field
from typing import Any


def generate_page_load_id() -> str:
    """Random 16-character hexadecimal page load id."""
    return secrets.token_hex(8)


@dataclass(frozen=True)
class PageIdentity:
    """Page-level identifiers fixed at session creation."""

    page_load_id: str
    page_url: str | None = None
    referrer_url: str | None = None
    publisher_id: str | None = None
    tracking_type: str | None = None

    def to_params(self) -> dict[str, Any]:
        """Outbound parameters contributed by the page identity."""
        return {
            "pageid": self.page_load_id,
            "page": self.page_url,
            "ref": self.referrer_url,
            "tai": self.publisher_id,
            "ttype": self.tracking_type,
        }


@dataclass
class SessionState:
    """
    Mutable tracking state of a single player.

    Attributes:
        page_identity: Page identifiers, immutable
        ready_timestamp: Time provider reading when the session was created
        current_video_id: Video attributed to playback events
        played_video_ids: Distinct video ids in first-seen order
        percent_ledger: Percent thresholds already reported per video
        has_ad_played: Latched once the first ad starts
        aggregator_ref: Page aggregator once discovered
        autoplayed_video_ids: Videos whose play was reported by the autoplay guess
        first_time_update_seen: Whether the autoplay guess already ran
        live: False once the player is torn down
        pending_timers: Handles of scheduled deferred work
    """

    page_identity: PageIdentity
    ready_timestamp: float = 0.0
    player_id: str | None = None
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    current_video_id: str | None = None
    played_video_ids: list[str] = field(default_factory=list)
    percent_ledger: dict[str, set[int]] = field(default_factory=dict)
    has_ad_played: bool = False
    aggregator_ref: Any = field(default=None, repr=False)
    autoplayed_video_ids: set[str] = field(default_factory=set)
    first_time_update_seen: bool = False
    live: bool = True
    pending_timers: list[Any] = field(default_factory=list, repr=False)

    def attribute_video(self, video_id: str) -> bool:
        """Attribute playback to ``video_id``.

        Returns:
            True if the attributed video changed
        """
        if video_id not in self.played_video_ids:
            self.played_video_ids.append(video_id)
            self.percent_ledger.setdefault(video_id, set())
        changed = video_id != self.current_video_id
        self.current_video_id = video_id
        return changed

    def play_count(self) -> int | None:
        """1-based position of the current video in the played history."""
        if self.current_video_id is None:
            return None
        return self.played_video_ids.index(self.current_video_id) + 1

    def mark_ad_played(self) -> bool:
        """Latch ``has_ad_played``.

        Returns:
            True on the first call, False once already latched
        """
        if self.has_ad_played:
            return False
        self.has_ad_played = True
        return True

    def add_timer(self, handle: Any) -> None:
        self.pending_timers.append(handle)

    def discard_timer(self, handle: Any) -> None:
        if handle in self.pending_timers:
            self.pending_timers.remove(handle)

    def close(self) -> None:
        """Mark the session dead and cancel pending deferred work."""
        self.live = False
        for handle in self.pending_timers:
            handle.cancel()
        self.pending_timers.clear()

    def to_dict(self) -> dict[str, Any]:
        """Snapshot for logging."""
        return {
            "session_id": self.session_id,
            "player_id": self.player_id,
            "page_load_id": self.page_identity.page_load_id,
            "current_video_id": self.current_video_id,
            "played_video_ids": list(self.played_video_ids),
            "percent_ledger": {k: sorted(v) for k, v in self.percent_ledger.items()},
            "has_ad_played": self.has_ad_played,
            "live": self.live,
        }


__all__ = ["generate_page_load_id", "PageIdentity", "SessionState"]
