"""Page-level aggregator protocol and its well-known binding.

Several players on one page can report through a single aggregator object.
The page publishes it with ``set_page_aggregator``; trackers look it up
lazily on every delivery attempt until they find it.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PageAggregator(Protocol):
    """Protocol for the page-level aggregator."""

    def add_video_id(self, video_id: str) -> Any:
        ...

    def get_page_load_id(self) -> str:
        ...

    def send_image_loaded(self, url: str, width: int, height: int) -> Any:
        ...

    def send_image_visible(self, url: str, width: int, height: int) -> Any:
        ...

    def send_image_clicked(self, url: str, video_id: str | None) -> Any:
        ...


class AggregatorProvider:
    """Global holder of the page aggregator.

    Singleton pattern: the binding is page-wide, unlike tracker sessions.
    """

    _instance: "AggregatorProvider | None" = None
    _aggregator: PageAggregator | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def initialize(cls, aggregator: PageAggregator | None) -> None:
        provider = cls()
        provider._aggregator = aggregator

    @classmethod
    def get_aggregator(cls) -> PageAggregator | None:
        provider = cls()
        return provider._aggregator

    @classmethod
    def reset(cls) -> None:
        """Reset binding (useful for testing)."""
        provider = cls()
        provider._aggregator = None


# Global helper functions

def get_page_aggregator() -> PageAggregator | None:
    """Get the page aggregator, or None if the page has not published one."""
    return AggregatorProvider.get_aggregator()


def set_page_aggregator(aggregator: PageAggregator | None) -> None:
    """Publish the page aggregator."""
    AggregatorProvider.initialize(aggregator)


def reset_page_aggregator() -> None:
    """Remove the page aggregator binding."""
    AggregatorProvider.reset()


__all__ = [
    "PageAggregator",
    "AggregatorProvider",
    "get_page_aggregator",
    "set_page_aggregator",
    "reset_page_aggregator",
]
