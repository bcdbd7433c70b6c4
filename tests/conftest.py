"""Pytest configuration and shared fixtures for Neon tracker tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest


sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from neon_tracker.aggregator import reset_page_aggregator
from neon_tracker.config import TrackerConfig
from neon_tracker.player import HeadlessPlayer
from neon_tracker.router import DeliveryRouter
from neon_tracker.session import PageIdentity, SessionState
from neon_tracker.settings import get_settings
from neon_tracker.time_provider import SimulatedTimeProvider
from neon_tracker.tracker import NeonTracker


TRACK_URL = "https://tracker.example.com/v2/track"


# ==================== Global State ====================


@pytest.fixture(autouse=True)
def clean_globals():
    """Reset the page aggregator binding and cached settings around each test."""
    reset_page_aggregator()
    get_settings.cache_clear()
    yield
    reset_page_aggregator()
    get_settings.cache_clear()


# ==================== Configuration Fixtures ====================


@pytest.fixture
def options() -> dict:
    """Default per-player options used by tracker fixtures."""
    return {
        "publisher": {"id": "pub-42"},
        "tracking": {"neonApiUrl": TRACK_URL, "waitForParentMillis": 0},
    }


@pytest.fixture
def config(options) -> TrackerConfig:
    """Tracker configuration built from the default options."""
    return TrackerConfig.from_options(options)


# ==================== Collaborator Fixtures ====================


@pytest.fixture
def time_provider() -> SimulatedTimeProvider:
    """Virtual clock starting at zero."""
    return SimulatedTimeProvider()


@pytest.fixture
def transport() -> MagicMock:
    """Transport double recording direct sends."""
    mock = MagicMock()
    mock.send = MagicMock(return_value=None)
    return mock


@pytest.fixture
def aggregator() -> MagicMock:
    """Page aggregator double."""
    mock = MagicMock()
    mock.get_page_load_id = MagicMock(return_value="agg-page-1")
    return mock


@pytest.fixture
def player() -> HeadlessPlayer:
    """Ready headless player with a 100 second video."""
    return HeadlessPlayer(player_id="player-1", video_id="abc-123", duration=100)


@pytest.fixture
def poster_player() -> HeadlessPlayer:
    """Headless player showing a rendered poster."""
    return HeadlessPlayer(
        player_id="player-2",
        video_id="abc-123",
        duration=100,
        poster="https://images.example.com/thumbs/neontn123_w640_h360.jpg?v=2",
        poster_size=(640, 360),
    )


# ==================== Session / Router Fixtures ====================


@pytest.fixture
def session() -> SessionState:
    """Fresh session ready at virtual time zero."""
    return SessionState(
        page_identity=PageIdentity(
            page_load_id="page-0001",
            page_url="https://example.com/watch",
            referrer_url="https://search.example.com/",
            publisher_id="pub-42",
            tracking_type="BRIGHTCOVE",
        ),
        ready_timestamp=0.0,
        player_id="player-1",
    )


@pytest.fixture
def make_router(session, transport, time_provider):
    """Factory for routers over the shared session."""

    def factory(options=None, aggregator=None):
        opts = {"tracking": {"neonApiUrl": TRACK_URL, "waitForParentMillis": 5000}}
        if options:
            opts["tracking"].update(options.get("tracking", {}))
        return DeliveryRouter(
            session,
            TrackerConfig.from_options(opts),
            transport,
            time_provider,
            aggregator_lookup=lambda: aggregator,
        )

    return factory


@pytest.fixture
def make_tracker(transport, time_provider, options):
    """Factory for trackers bound to the simulated clock and mock transport."""

    def factory(player, extra_options=None, **kwargs):
        opts = {
            "publisher": dict(options["publisher"]),
            "tracking": dict(options["tracking"]),
        }
        for section, values in (extra_options or {}).items():
            opts.setdefault(section, {}).update(values)
        kwargs.setdefault("transport", transport)
        kwargs.setdefault("time_provider", time_provider)
        return NeonTracker(
            player,
            opts,
            page_url="https://example.com/watch",
            referrer_url="https://search.example.com/",
            **kwargs,
        )

    return factory


# ==================== Mock HTTP Client Fixtures ====================


@pytest.fixture
def mock_http_response():
    """Create mock HTTP response."""
    response = MagicMock(spec=httpx.Response)
    response.status_code = 200
    response.text = ""
    response.raise_for_status = MagicMock()
    return response


@pytest.fixture
def mock_http_client(mock_http_response):
    """Create mock async HTTP client."""
    client = AsyncMock(spec=httpx.AsyncClient)
    client.get = AsyncMock(return_value=mock_http_response)
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def sent_params(transport):
    """Callable returning the parameters of every direct send, in order."""

    def collect() -> list[dict]:
        return [call.args[1] for call in transport.send.call_args_list]

    return collect
