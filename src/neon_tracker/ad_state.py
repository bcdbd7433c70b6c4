"""Ad playback state detection from the player's root element classes."""

import re

from .player import Player


AD_STATE_PATTERN = re.compile(r"(\s|^)vjs-ad-(playing|loading)(\s|$)")


def is_ad_class_list(class_list: str | None) -> bool:
    """Check a ``class`` attribute value for an ad-state token."""
    if not class_list:
        return False
    return AD_STATE_PATTERN.search(class_list) is not None


class AdStateDetector:
    """Reports whether an ad is rendering instead of content.

    Stateless: every call reads the root element's current class list.
    """

    def __init__(self, player: Player):
        self.player = player

    def is_ad_playing(self) -> bool:
        element = self.player.el()
        if element is None:
            return False
        return is_ad_class_list(element.get("class"))


__all__ = ["AD_STATE_PATTERN", "is_ad_class_list", "AdStateDetector"]
