"""Image descriptor resolution and URL helpers for poster/thumbnail events."""

from typing import Any, Iterable
from urllib.parse import urlsplit, urlunsplit

from .player import Player
from .types import ImageDescriptor


def get_basename(url: str) -> str:
    """Final path segment of ``url`` without its extension.

    Query string and fragment are ignored; percent-encoding is kept as is.

    Examples:
        >>> get_basename("http://neonimage.com/here/123f34rfj/super%20space.jpg?andparams=true")
        'super%20space'
        >>> get_basename("thumb")
        'thumb'
    """
    path = urlsplit(url).path if "://" in url else url.split("?", 1)[0].split("#", 1)[0]
    name = path.rsplit("/", 1)[-1]
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name


def get_base_url(url: str) -> str:
    """``url`` without query string and fragment."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def format_bns(descriptors: Iterable[ImageDescriptor]) -> str:
    """Encode descriptors as ``"<basename> <width> <height>"`` joined by commas."""
    return ",".join(
        f"{get_basename(image.url)} {int(image.width)} {int(image.height)}"
        for image in descriptors
    )


def _coerce_descriptor(image: Any) -> ImageDescriptor | None:
    if isinstance(image, ImageDescriptor):
        return image
    if isinstance(image, dict) and image.get("url"):
        try:
            return ImageDescriptor(
                url=str(image["url"]),
                width=int(image.get("width") or 0),
                height=int(image.get("height") or 0),
            )
        except (TypeError, ValueError):
            return None
    return None


class ImageDescriptorResolver:
    """Resolves the images an image event refers to.

    An empty result means the event cannot be attributed and must not be
    tracked.
    """

    def __init__(self, player: Player):
        self.player = player

    def resolve(self, detail: dict[str, Any] | None = None) -> list[ImageDescriptor]:
        detail = detail or {}
        images = detail.get("images")
        if images:
            return [d for d in (_coerce_descriptor(image) for image in images) if d is not None]

        url = self.player.poster()
        size = self.player.poster_size()
        if not url or size is None:
            return []
        width, height = size
        return [ImageDescriptor(url=url, width=int(width), height=int(height))]


__all__ = ["get_basename", "get_base_url", "format_bns", "ImageDescriptorResolver"]
