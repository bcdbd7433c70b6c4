"""View-percent milestone detection."""

import math
from typing import MutableMapping


def round_half_up(value: float) -> int:
    """Round like a browser's ``Math.round`` (halves go up, also when negative)."""
    return math.floor(value + 0.5)


def percent_played(current_time: float | None, duration: float | None) -> int | None:
    """Whole percent of ``duration`` reached at ``current_time``.

    Both inputs are rounded to whole seconds first. Returns ``None`` when the
    duration is unknown, zero, negative or not finite.
    """
    if current_time is None or duration is None:
        return None
    if not (math.isfinite(current_time) and math.isfinite(duration)):
        return None
    rounded_duration = round_half_up(duration)
    if rounded_duration <= 0:
        return None
    return round_half_up(round_half_up(current_time) / rounded_duration * 100)


class PercentTracker:
    """Per-video threshold crossing detector.

    The ledger is owned by the session; the tracker only reads and extends
    it, so a threshold is reported at most once per video.

    Example:
        >>> ledger = {}
        >>> tracker = PercentTracker()
        >>> tracker.thresholds_crossed("v1", 80, 100, 25, ledger)
        [25, 50, 75]
        >>> tracker.thresholds_crossed("v1", 81, 100, 25, ledger)
        []
    """

    def thresholds_crossed(
        self,
        video_id: str,
        current_time: float | None,
        duration: float | None,
        interval_percent: int,
        ledger: MutableMapping[str, set[int]],
    ) -> list[int]:
        """Return thresholds newly reached, oldest first, and record them.

        Args:
            video_id: Video the position belongs to
            current_time: Playback position in seconds
            duration: Video duration in seconds
            interval_percent: Milestone step, clamped to at most 100
            ledger: Mapping of video id to thresholds already reported

        Returns:
            Newly crossed thresholds in ascending order
        """
        interval = min(100, interval_percent)
        if interval <= 0:
            return []

        played = percent_played(current_time, duration)
        if played is None:
            return []

        reported = ledger.setdefault(video_id, set())
        crossed = []
        percent = interval
        while percent <= 100:
            if played >= percent and percent not in reported:
                reported.add(percent)
                crossed.append(percent)
            percent += interval
        return crossed


__all__ = ["round_half_up", "percent_played", "PercentTracker"]
