"""Outbound parameter allowlist and action codes."""

from typing import Any, Iterable, Mapping

from .types import TrackingEventType


ALLOWED_PARAMS: frozenset[str] = frozenset(
    {
        "a",
        "acount",
        "adelta",
        "aplay",
        "bn",
        "bns",
        "cts",
        "page",
        "pageid",
        "pcount",
        "playerId",
        "prcnt",
        "ref",
        "tai",
        "ttype",
        "vid",
    }
)

ACTION_CODES: dict[TrackingEventType, str] = {
    TrackingEventType.IMAGE_LOAD: "il",
    TrackingEventType.IMAGE_VIEW: "iv",
    TrackingEventType.IMAGE_CLICK: "ic",
    TrackingEventType.AUTOPLAY: "vp",
    TrackingEventType.PLAY: "vp",
    TrackingEventType.AD_PLAY: "ap",
    TrackingEventType.TIME_UPDATE: "vvp",
}


class ParameterFilter:
    """Restricts outgoing parameters to a fixed set of names.

    Unrecognized keys are dropped and keys whose value is ``None`` are
    omitted rather than sent empty.
    """

    def __init__(self, allowed: Iterable[str] = ALLOWED_PARAMS):
        self.allowed = frozenset(allowed)

    def filter(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: value
            for key, value in params.items()
            if key in self.allowed and value is not None
        }

    def rejected(self, params: Mapping[str, Any]) -> list[str]:
        """Keys that ``filter`` would drop for not being allowlisted."""
        return sorted(key for key in params if key not in self.allowed)


__all__ = ["ALLOWED_PARAMS", "ACTION_CODES", "ParameterFilter"]
