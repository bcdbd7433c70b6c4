"""
Time Provider Abstraction

Provides a pluggable clock and one-shot timer facility for both real-time and
simulated operation. The delivery router measures its wait-for-aggregator
budget and schedules its single retry through a time provider, so the same
routing code runs on the asyncio loop in production and on virtual time in
tests and replays.
"""

import asyncio
import heapq
import itertools
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Protocol

from .log_config import get_context_logger


class TimerHandle(Protocol):
    """Cancellable handle for a scheduled callback."""

    def cancel(self) -> None:
        ...

    def cancelled(self) -> bool:
        ...


class TimeProvider(ABC):
    """
    Abstract base class for time providers.

    Subclasses supply the current time and a one-shot deferred call. All
    callbacks run on the caller's thread of control; nothing blocks.
    """

    @abstractmethod
    def now(self) -> float:
        """Get current time in seconds."""
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback(*args)`` once after ``delay`` seconds.

        Args:
            delay: Delay in seconds (negative values are treated as zero)
            callback: Callable to invoke
            *args: Positional arguments for the callback

        Returns:
            Handle that can cancel the pending call
        """
        pass

    def elapsed_time(self, start_time: float) -> float:
        """Calculate elapsed time since ``start_time``."""
        return self.now() - start_time

    @abstractmethod
    def get_mode(self) -> str:
        """Get time provider mode identifier."""
        pass


class RealtimeTimeProvider(TimeProvider):
    """
    Real-time time provider using wall-clock time.

    Uses ``time.time()`` for the clock and the running asyncio loop's
    ``call_later`` for timers, so it must be used from inside a running loop.

    Examples:
        >>> provider = RealtimeTimeProvider()
        >>> handle = provider.call_later(5.0, retry)  # inside a running loop
        >>> handle.cancel()
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        """Initialize real-time provider.

        Args:
            loop: Event loop for timers (defaults to the running loop)
        """
        self._loop = loop
        self.logger = get_context_logger("realtime_time_provider")

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), callback, *args)

    def get_mode(self) -> str:
        return "realtime"


class SimulatedTimer:
    """Timer entry in a ``SimulatedTimeProvider`` queue."""

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def run(self) -> None:
        if not self._cancelled:
            self.callback(*self.args)


class SimulatedTimeProvider(TimeProvider):
    """
    Simulated time provider with a virtual clock and timer queue.

    Virtual time only moves when ``advance`` is called; timers that fall due
    run during the advance, in due-time order (ties in scheduling order), with
    the clock set to each timer's due time while it runs.

    Examples:
        >>> provider = SimulatedTimeProvider()
        >>> fired = []
        >>> _ = provider.call_later(5.0, fired.append, "retry")
        >>> provider.advance(4.999)
        >>> fired
        []
        >>> provider.advance(0.001)
        >>> fired
        ['retry']
    """

    def __init__(self, initial_time: float = 0.0):
        """
        Initialize simulated time provider.

        Args:
            initial_time: Starting virtual time (default: 0.0)
        """
        self._initial_time = initial_time
        self.virtual_time = initial_time
        self._queue: list[tuple[float, int, SimulatedTimer]] = []
        self._sequence = itertools.count()
        self.logger = get_context_logger("simulated_time_provider")

    def now(self) -> float:
        return self.virtual_time

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> SimulatedTimer:
        timer = SimulatedTimer(self.virtual_time + max(0.0, delay), callback, args)
        heapq.heappush(self._queue, (timer.when, next(self._sequence), timer))
        return timer

    def advance(self, seconds: float) -> None:
        """Advance virtual time, running timers that fall due.

        Raises:
            ValueError: If seconds is negative
        """
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards, got {seconds}")

        target = self.virtual_time + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            self.virtual_time = when
            timer.run()
        self.virtual_time = target

    def pending(self) -> int:
        """Number of scheduled timers that are not cancelled."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled())

    def reset(self) -> None:
        """Return to the initial time and drop every pending timer."""
        self.virtual_time = self._initial_time
        self._queue.clear()

    def get_mode(self) -> str:
        return "simulated"


def create_time_provider(mode: str = "real", **kwargs) -> TimeProvider:
    """
    Factory function to create appropriate time provider.

    Args:
        mode: 'real' or 'simulated'
        **kwargs: Additional arguments passed to provider

    Returns:
        Configured TimeProvider instance
    """
    if mode == "simulated":
        return SimulatedTimeProvider(**kwargs)
    return RealtimeTimeProvider(**kwargs)


__all__ = [
    "TimerHandle",
    "TimeProvider",
    "RealtimeTimeProvider",
    "SimulatedTimer",
    "SimulatedTimeProvider",
    "create_time_provider",
]
