"""Unit tests for time providers."""

import asyncio

import pytest

from neon_tracker.time_provider import (
    RealtimeTimeProvider,
    SimulatedTimeProvider,
    TimeProvider,
    create_time_provider,
)


class TestRealtimeTimeProvider:
    """Test RealtimeTimeProvider (wall-clock time)."""

    def test_now_returns_time(self):
        """Test that now() returns current time."""
        provider = RealtimeTimeProvider()
        t1 = provider.now()
        t2 = provider.now()

        assert isinstance(t1, float)
        assert t2 >= t1

    @pytest.mark.asyncio
    async def test_call_later_runs_on_loop(self):
        """Test that timers are scheduled on the running loop."""
        provider = RealtimeTimeProvider()
        fired = asyncio.Event()

        provider.call_later(0.01, fired.set)

        await asyncio.wait_for(fired.wait(), timeout=1.0)
        assert fired.is_set()

    @pytest.mark.asyncio
    async def test_cancel(self):
        """Test that a cancelled timer never runs."""
        provider = RealtimeTimeProvider()
        calls = []

        handle = provider.call_later(0.01, calls.append, "x")
        handle.cancel()
        await asyncio.sleep(0.05)

        assert calls == []
        assert handle.cancelled()

    def test_get_mode(self):
        assert RealtimeTimeProvider().get_mode() == "realtime"


class TestSimulatedTimeProvider:
    """Test SimulatedTimeProvider (virtual time)."""

    def test_now_returns_virtual_time(self):
        """Test that now() only moves on advance."""
        provider = SimulatedTimeProvider()

        t1 = provider.now()
        provider.advance(1.0)

        assert provider.now() == t1 + 1.0

    def test_initial_time(self):
        """Test creating with a custom start time."""
        provider = SimulatedTimeProvider(initial_time=100.0)
        assert provider.now() == 100.0

    def test_timer_fires_at_due_time(self):
        """Test that a timer fires exactly when its delay elapses."""
        provider = SimulatedTimeProvider()
        fired = []

        provider.call_later(5.0, lambda: fired.append(provider.now()))

        provider.advance(4.999)
        assert fired == []

        provider.advance(0.001)
        assert fired == [pytest.approx(5.0)]

    def test_timers_run_in_due_order(self):
        """Test ordering by due time, ties by scheduling order."""
        provider = SimulatedTimeProvider()
        order = []

        provider.call_later(3.0, order.append, "c")
        provider.call_later(1.0, order.append, "a")
        provider.call_later(3.0, order.append, "d")
        provider.call_later(2.0, order.append, "b")

        provider.advance(10.0)

        assert order == ["a", "b", "c", "d"]
        assert provider.now() == 10.0

    def test_timer_scheduled_from_timer(self):
        """Test that a callback can schedule another timer in the same advance."""
        provider = SimulatedTimeProvider()
        fired = []

        def first():
            fired.append("first")
            provider.call_later(1.0, fired.append, "second")

        provider.call_later(1.0, first)
        provider.advance(5.0)

        assert fired == ["first", "second"]

    def test_cancel(self):
        """Test that cancelled timers are skipped and not counted."""
        provider = SimulatedTimeProvider()
        fired = []

        handle = provider.call_later(1.0, fired.append, "x")
        assert provider.pending() == 1

        handle.cancel()
        assert provider.pending() == 0

        provider.advance(2.0)
        assert fired == []

    def test_negative_delay_is_immediate(self):
        """Test that negative delays are treated as zero."""
        provider = SimulatedTimeProvider()
        fired = []

        provider.call_later(-1.0, fired.append, "now")
        provider.advance(0)

        assert fired == ["now"]

    def test_advance_backwards_rejected(self):
        """Test that time cannot move backwards."""
        provider = SimulatedTimeProvider()

        with pytest.raises(ValueError):
            provider.advance(-1.0)

    def test_elapsed_time(self):
        """Test elapsed time calculation."""
        provider = SimulatedTimeProvider()
        start = provider.now()
        provider.advance(2.5)

        assert provider.elapsed_time(start) == 2.5

    def test_reset(self):
        """Test reset drops timers and rewinds the clock."""
        provider = SimulatedTimeProvider()
        provider.call_later(1.0, lambda: None)
        provider.advance(0.5)

        provider.reset()

        assert provider.now() == 0.0
        assert provider.pending() == 0


class TestCreateTimeProvider:
    """Test the provider factory."""

    def test_default_is_realtime(self):
        provider = create_time_provider()
        assert isinstance(provider, RealtimeTimeProvider)
        assert isinstance(provider, TimeProvider)

    def test_simulated(self):
        provider = create_time_provider("simulated", initial_time=3.0)
        assert isinstance(provider, SimulatedTimeProvider)
        assert provider.get_mode() == "simulated"
        assert provider.now() == 3.0
