"""Unit tests for delivery routing."""

from unittest.mock import MagicMock

import pytest

from neon_tracker.config import TrackerConfig
from neon_tracker.router import DeliveryOutcome, DeliveryRouter
from neon_tracker.time_provider import RealtimeTimeProvider
from neon_tracker.types import ImageDescriptor, TrackingEventType


POSTER = ImageDescriptor("https://images.example.com/t/neontn1.jpg?v=2", 640, 360)


class TestBuildParams:
    """Test outbound parameter assembly."""

    def test_common_fields(self, make_router, session, time_provider):
        """Test page identity and common fields for a play."""
        router = make_router()
        session.attribute_video("abc")
        time_provider.advance(1.5)

        params = router.build_params(TrackingEventType.PLAY, {"aplay": False, "adplay": True})

        assert params == {
            "a": "vp",
            "cts": 1500,
            "pcount": 1,
            "pageid": "page-0001",
            "page": "https://example.com/watch",
            "ref": "https://search.example.com/",
            "tai": "pub-42",
            "ttype": "BRIGHTCOVE",
            "vid": "abc",
            "playerId": "player-1",
            "aplay": False,
        }

    def test_detail_wins_on_collision(self, make_router):
        router = make_router()
        params = router.build_params(TrackingEventType.TIME_UPDATE, {"prcnt": 50, "a": "override"})

        assert params["a"] == "override"
        assert params["prcnt"] == 50

    def test_unattributed_fields_omitted(self, make_router):
        """Test that vid and pcount are left out before any video is attributed."""
        params = make_router().build_params(TrackingEventType.AD_PLAY, {"aplay": False})

        assert "vid" not in params
        assert "pcount" not in params
        assert params["a"] == "ap"


class TestRoutingWithoutAggregator:
    """Test the wait-then-send policy when no aggregator exists."""

    def test_deferred_then_sent_once(self, make_router, transport, time_provider):
        """Test a single retry at the end of the wait budget."""
        router = make_router()

        outcome = router.deliver(TrackingEventType.PLAY, {"aplay": False})

        assert outcome is DeliveryOutcome.DEFERRED
        assert time_provider.pending() == 1
        transport.send.assert_not_called()

        time_provider.advance(4.0)
        transport.send.assert_not_called()

        time_provider.advance(1.0)
        transport.send.assert_called_once()
        assert transport.send.call_args.args[0] == router.config.tracking.track_url
        assert time_provider.pending() == 0

        time_provider.advance(60)
        assert transport.send.call_count == 1

    def test_retry_uses_snapshot_params(self, make_router, session, transport, time_provider):
        """Test that the retry sends what was built at the first attempt."""
        router = make_router()
        session.attribute_video("first")
        router.deliver(TrackingEventType.PLAY, {"aplay": False})

        session.attribute_video("second")
        time_provider.advance(5.0)

        params = transport.send.call_args.args[1]
        assert params["vid"] == "first"
        assert params["cts"] == 0

    def test_retry_after_late_start(self, make_router, transport, time_provider):
        """Test that the remaining budget, not the full wait, is used."""
        router = make_router()
        time_provider.advance(3.0)

        router.deliver(TrackingEventType.PLAY, {})
        time_provider.advance(2.0)

        transport.send.assert_called_once()

    def test_budget_spent_sends_directly(self, make_router, transport, time_provider):
        router = make_router()
        time_provider.advance(5.0)

        outcome = router.deliver(TrackingEventType.TIME_UPDATE, {"prcnt": 25})

        assert outcome is DeliveryOutcome.SENT
        assert transport.send.call_args.args[1]["prcnt"] == 25
        assert time_provider.pending() == 0

    def test_zero_wait_sends_directly(self, make_router, transport):
        router = make_router({"tracking": {"waitForParentMillis": 0}})

        assert router.deliver(TrackingEventType.PLAY, {}) is DeliveryOutcome.SENT
        transport.send.assert_called_once()

    def test_retry_never_reschedules(self, session, transport):
        """Test that the retry sends even if the clock still shows budget left."""
        clock = MagicMock()
        clock.now.return_value = 0.0
        router = DeliveryRouter(
            session,
            TrackerConfig.from_options({"tracking": {"waitForParentMillis": 5000}}),
            transport,
            clock,
            aggregator_lookup=lambda: None,
        )

        assert router.deliver(TrackingEventType.PLAY, {}) is DeliveryOutcome.DEFERRED
        retry = clock.call_later.call_args.args[1]

        retry()

        clock.call_later.assert_called_once()
        transport.send.assert_called_once()

    def test_no_event_loop_sends_directly(self, session, transport):
        """Test that without a running loop the event is sent instead of deferred."""
        router = DeliveryRouter(
            session,
            TrackerConfig.from_options({"tracking": {"waitForParentMillis": 5000}}),
            transport,
            RealtimeTimeProvider(),
            aggregator_lookup=lambda: None,
        )
        session.ready_timestamp = router.time_provider.now()

        assert router.deliver(TrackingEventType.PLAY, {}) is DeliveryOutcome.SENT
        transport.send.assert_called_once()
        assert session.pending_timers == []

        router.notify_video_id("abc")
        assert session.pending_timers == []

    def test_closed_session_drops(self, make_router, session, transport, time_provider):
        """Test that closing the session cancels the retry."""
        router = make_router()
        router.deliver(TrackingEventType.PLAY, {})

        session.close()
        time_provider.advance(10.0)

        transport.send.assert_not_called()
        assert router.deliver(TrackingEventType.PLAY, {}) is DeliveryOutcome.DROPPED


class TestRoutingWithAggregator:
    """Test aggregator delegation."""

    def test_image_load_delegated(self, make_router, aggregator, transport):
        router = make_router(aggregator=aggregator)

        outcome = router.deliver(
            TrackingEventType.IMAGE_LOAD, {"bns": "neontn1 640 360", "images": [POSTER]}
        )

        assert outcome is DeliveryOutcome.DELEGATED
        aggregator.send_image_loaded.assert_called_once_with(
            "https://images.example.com/t/neontn1.jpg", 640, 360
        )
        transport.send.assert_not_called()

    def test_image_view_delegated_per_image(self, make_router, aggregator):
        router = make_router(aggregator=aggregator)
        other = ImageDescriptor("https://images.example.com/t/other.png", 120, 90)

        router.deliver(TrackingEventType.IMAGE_VIEW, {"images": [POSTER, other]})

        assert aggregator.send_image_visible.call_count == 2

    def test_image_click_carries_video_id(self, make_router, session, aggregator):
        router = make_router(aggregator=aggregator)
        session.attribute_video("abc")

        router.deliver(TrackingEventType.IMAGE_CLICK, {"bn": "neontn1", "images": [POSTER]})

        aggregator.send_image_clicked.assert_called_once_with(
            "https://images.example.com/t/neontn1.jpg", "abc"
        )

    def test_non_image_events_sent_directly(self, make_router, aggregator, transport, time_provider):
        """Test events without an aggregator method skip the wait."""
        router = make_router(aggregator=aggregator)

        outcome = router.deliver(TrackingEventType.PLAY, {"aplay": True})

        assert outcome is DeliveryOutcome.SENT
        transport.send.assert_called_once()
        assert time_provider.pending() == 0

    def test_delegation_failure_falls_back(self, make_router, aggregator, transport):
        """Test that a raising aggregator leads to exactly one direct send."""
        aggregator.send_image_loaded.side_effect = RuntimeError("boom")
        router = make_router(aggregator=aggregator)

        outcome = router.deliver(
            TrackingEventType.IMAGE_LOAD, {"bns": "neontn1 640 360", "images": [POSTER]}
        )

        assert outcome is DeliveryOutcome.SENT
        transport.send.assert_called_once()
        params = transport.send.call_args.args[1]
        assert params["bns"] == "neontn1 640 360"
        assert "images" not in params

    def test_partial_delegation_failure(self, make_router, aggregator, transport):
        """Test that only the images the aggregator rejected are sent directly."""
        other = ImageDescriptor("https://images.example.com/t/other.png", 120, 90)
        aggregator.send_image_visible.side_effect = [None, RuntimeError("boom")]
        router = make_router(aggregator=aggregator)

        outcome = router.deliver(
            TrackingEventType.IMAGE_VIEW,
            {"bns": "neontn1 640 360,other 120 90", "images": [POSTER, other]},
        )

        assert outcome is DeliveryOutcome.SENT
        assert aggregator.send_image_visible.call_count == 2
        transport.send.assert_called_once()
        assert transport.send.call_args.args[1]["bns"] == "other 120 90"

    def test_aggregator_found_on_retry(self, make_router, session, transport, time_provider):
        """Test that a late aggregator receives the retried event."""
        late = MagicMock()
        found = []
        router = make_router()
        router.aggregator_lookup = lambda: found[0] if found else None

        outcome = router.deliver(TrackingEventType.IMAGE_VIEW, {"images": [POSTER]})
        assert outcome is DeliveryOutcome.DEFERRED

        found.append(late)
        time_provider.advance(5.0)

        late.send_image_visible.assert_called_once()
        transport.send.assert_not_called()
        assert session.aggregator_ref is late

    def test_aggregator_cached_once_found(self, make_router, aggregator):
        lookup = MagicMock(return_value=aggregator)
        router = make_router()
        router.aggregator_lookup = lookup

        router.discover_aggregator()
        router.discover_aggregator()

        lookup.assert_called_once()


class TestVideoIdNotification:
    """Test aggregator video id notification."""

    def test_immediate(self, make_router, aggregator):
        router = make_router(aggregator=aggregator)
        router.notify_video_id("abc")
        aggregator.add_video_id.assert_called_once_with("abc")

    def test_deferred_until_budget(self, make_router, time_provider):
        late = MagicMock()
        found = []
        router = make_router()
        router.aggregator_lookup = lambda: found[0] if found else None

        router.notify_video_id("abc")
        assert time_provider.pending() == 1

        found.append(late)
        time_provider.advance(5.0)

        late.add_video_id.assert_called_once_with("abc")

    def test_no_aggregator_ever(self, make_router, time_provider):
        """Test that notification is silently dropped without an aggregator."""
        router = make_router()
        router.notify_video_id("abc")
        time_provider.advance(5.0)

        router.notify_video_id("def")
        assert time_provider.pending() == 0

    def test_failure_is_logged_not_raised(self, make_router, aggregator):
        aggregator.add_video_id.side_effect = ValueError("bad")
        router = make_router(aggregator=aggregator)

        router.notify_video_id("abc")


@pytest.mark.parametrize(
    "event_type, code",
    [
        (TrackingEventType.IMAGE_LOAD, "il"),
        (TrackingEventType.AUTOPLAY, "vp"),
        (TrackingEventType.AD_PLAY, "ap"),
        (TrackingEventType.TIME_UPDATE, "vvp"),
    ],
)
def test_action_code_sent(make_router, transport, event_type, code):
    router = make_router({"tracking": {"waitForParentMillis": 0}})
    router.deliver(event_type, {})
    assert transport.send.call_args.args[1]["a"] == code
