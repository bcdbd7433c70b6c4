"""Video id extraction from the player's root element."""

import re
from dataclasses import dataclass

from .exceptions import (
    ConfigurationError,
    VideoIdAttributeMissingError,
    VideoIdPatternMismatchError,
)
from .player import PlayerElement


@dataclass(frozen=True)
class VideoIdResult:
    """Outcome of a video id extraction.

    Callers choose whether a failure aborts the current action (``unwrap``)
    or is only inspected (``ok`` / ``error``).
    """

    video_id: str | None = None
    error: ConfigurationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        """Return the id or raise the extraction error."""
        if self.error is not None:
            raise self.error
        return self.video_id


def extract_video_id(
    element: PlayerElement | None,
    attribute: str,
    pattern: re.Pattern | None = None,
) -> VideoIdResult:
    """Read the video id from ``attribute`` on the root element.

    With a pattern, the first match within the attribute value is the id.

    Examples:
        >>> el = lxml.html.fragment_fromstring('<div data-video-id="abc-123"></div>')
        >>> extract_video_id(el, "data-video-id").video_id
        'abc-123'
        >>> extract_video_id(el, "data-video-id", re.compile("^[a-z]+")).video_id
        'abc'
    """
    value = element.get(attribute) if element is not None else None
    if not value:
        return VideoIdResult(
            error=VideoIdAttributeMissingError(
                "Video id attribute missing on player element", attribute=attribute
            )
        )

    if pattern is None:
        return VideoIdResult(video_id=value)

    match = pattern.search(value)
    if match is None or not match.group(0):
        return VideoIdResult(
            error=VideoIdPatternMismatchError(
                "Video id attribute does not match the configured pattern",
                pattern=pattern.pattern,
                value=value,
            )
        )
    return VideoIdResult(video_id=match.group(0))


__all__ = ["VideoIdResult", "extract_video_id"]
