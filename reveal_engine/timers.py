"""Timer sources for cooperative playback.

The scheduler only needs ``call_later(delay_seconds, callback)`` returning
a handle with ``cancel()``. An asyncio event loop already provides exactly
that, so a host running on asyncio passes its loop. ManualTimers is a
virtual clock: nothing fires until the caller advances time, which makes
playback deterministic and lets a host drive it synchronously.
"""

import heapq
import itertools
from typing import Any, Callable, List, Protocol, Tuple, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled."""

    def cancel(self) -> None:
        ...


@runtime_checkable
class TimerSource(Protocol):
    """Anything that can schedule a one-shot callback."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


class ManualTimerHandle:
    """Handle returned by ManualTimers.call_later()."""

    def __init__(self, when: float, callback: Callable[..., Any], args: Tuple[Any, ...]):
        self.when = when
        self._callback = callback
        self._args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self) -> None:
        self._callback(*self._args)


class ManualTimers:
    """Virtual clock implementing the TimerSource protocol.

    Example:
        timers = ManualTimers()
        scheduler = PlaybackScheduler(timers)
        scheduler.update("Hello world", "msg-1")
        timers.run_until_idle()
        assert scheduler.displayed_text == "Hello world"
    """

    def __init__(self):
        self._now = 0.0
        self._queue: List[Tuple[float, int, ManualTimerHandle]] = []
        self._sequence = itertools.count()
        self.fired = 0

    def time(self) -> float:
        """Current virtual time in seconds."""
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualTimerHandle:
        if delay < 0:
            raise ValueError(f"delay must not be negative, got {delay}")
        handle = ManualTimerHandle(self._now + delay, callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._sequence), handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of scheduled, non-cancelled callbacks."""
        return sum(1 for _, _, h in self._queue if not h.cancelled())

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every callback that falls due.

        Callbacks scheduled while advancing fire too if they are due
        before the new time.

        Returns:
            Number of callbacks fired.
        """
        if seconds < 0:
            raise ValueError(f"cannot move the clock backwards ({seconds})")
        deadline = self._now + seconds
        count = 0
        while self._queue and self._queue[0][0] <= deadline:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._now = when
            handle._run()
            count += 1
        self._now = deadline
        self.fired += count
        return count

    def step(self) -> bool:
        """Fire the next due callback, jumping the clock to it.

        Returns:
            False if nothing was pending.
        """
        while self._queue:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._now = max(self._now, when)
            handle._run()
            self.fired += 1
            return True
        return False

    def run_until_idle(self, limit: int = 1_000_000) -> int:
        """Fire callbacks until none are pending.

        Args:
            limit: Safety bound on the number of callbacks fired.

        Returns:
            Number of callbacks fired.
        """
        count = 0
        while count < limit and self.step():
            count += 1
        return count
