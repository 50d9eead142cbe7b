"""Event scheduler for network simulation.

This module defines the EventScheduler, a time-ordered queue of pending actions
driven by a SimPy environment. The environment owns the simulated clock; nothing
in the simulator reads wall-clock time.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Set, Tuple

import simpy

from wan_sim.core.errors import SchedulingError

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """A scheduled action.

    Attributes:
        time: Simulated time at which the action runs.
        seq: Insertion sequence number, used to break ties between equal times.
        action: Callable invoked when the event fires.
        args: Positional arguments captured for the action.
        kwargs: Keyword arguments captured for the action.
        executed: Whether the action has already run.
    """

    time: float
    seq: int
    action: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    executed: bool = False

    def __repr__(self) -> str:
        name = getattr(self.action, "__name__", repr(self.action))
        return f"Event(t={self.time:.6f}, seq={self.seq}, action={name})"


class EventScheduler:
    """Time-ordered queue of pending actions.

    Events are totally ordered by ``(time, seq)``: actions scheduled for the
    same time run in the order ``schedule`` was called. SimPy keeps its heap
    ordered by ``(time, priority, eid)`` and every event is scheduled with the
    same priority, so its insertion counter provides the FIFO tie-break.

    Attributes:
        env: SimPy environment holding the clock and the event heap.
        executed: Number of actions run so far.
    """

    def __init__(self, env: Optional[simpy.Environment] = None) -> None:
        """Initialize the scheduler.

        Args:
            env: SimPy environment to drive (a fresh one is created if omitted).
        """
        self.env = env if env is not None else simpy.Environment()
        self.executed = 0
        self._next_seq = 0
        self._cancelled: Set[int] = set()

    @property
    def now(self) -> float:
        """Current simulated time in seconds."""
        return self.env.now

    def schedule(self, time: float, action: Callable[..., Any], *args: Any, **kwargs: Any) -> Event:
        """Enqueue ``action`` to run at absolute simulated time ``time``.

        Args:
            time: Simulated time in seconds.
            action: Callable to invoke.
            *args, **kwargs: Arguments captured for the action.

        Returns:
            The scheduled Event, usable with ``cancel``.

        Raises:
            SchedulingError: If ``time`` is negative or earlier than now.
        """
        if time < 0:
            raise SchedulingError(f"Cannot schedule at negative time {time}")
        if time < self.env.now:
            raise SchedulingError(
                f"Cannot schedule at t={time} before the current time t={self.env.now}"
            )

        event = Event(time, self._next_seq, action, args, kwargs)
        self._next_seq += 1

        timeout = self.env.timeout(self._delay_until(time))
        timeout.callbacks.append(lambda _: self._execute(event))
        return event

    def schedule_in(self, delay: float, action: Callable[..., Any], *args: Any, **kwargs: Any) -> Event:
        """Enqueue ``action`` to run ``delay`` seconds from now.

        Raises:
            SchedulingError: If ``delay`` is negative.
        """
        if delay < 0:
            raise SchedulingError(f"Cannot schedule with negative delay {delay}")
        return self.schedule(self.env.now + delay, action, *args, **kwargs)

    def cancel(self, event: Event) -> None:
        """Invalidate a pending event so it is skipped when popped.

        Args:
            event: Event returned by ``schedule``.

        Raises:
            SchedulingError: If the event has already run.
        """
        if event.executed:
            raise SchedulingError(f"Cannot cancel {event}: already executed")
        self._cancelled.add(event.seq)

    def run(self, until: Optional[float] = None) -> None:
        """Execute pending events in time order.

        Every event scheduled at or before ``until`` runs, including events
        scheduled by other events during the run. The clock is then advanced
        to ``until``.

        Args:
            until: Stop time in seconds, or None to drain the queue.

        Raises:
            SchedulingError: If ``until`` is earlier than the current time.
        """
        if until is None:
            self.env.run()
            return
        if until < self.env.now:
            raise SchedulingError(f"Cannot run until t={until}, already at t={self.env.now}")

        while self.env.peek() <= until:
            self.env.step()

        if until > self.env.now:
            # Nothing is left at or before ``until``; this only moves the clock.
            self.env.run(until=until)

    def _execute(self, event: Event) -> None:
        if event.seq in self._cancelled:
            self._cancelled.discard(event.seq)
            logger.debug("Skipping cancelled %r", event)
            return
        event.executed = True
        self.executed += 1
        event.action(*event.args, **event.kwargs)

    def _delay_until(self, time: float) -> float:
        """Return a delay that lands exactly on ``time`` once added to now.

        ``now + (time - now)`` can be off by one ulp, which would let two
        events requested for the same time from different points in the run
        sort by rounding error instead of by insertion order.
        """
        now = self.env.now
        delay = time - now
        for _ in range(4):
            landed = now + delay
            if landed == time:
                break
            direction = -math.inf if landed > time else math.inf
            delay = max(0.0, math.nextafter(delay, direction))
        return delay
