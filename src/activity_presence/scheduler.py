"""Single-threaded timer scheduling for the poll, reconnect and switch timers."""

from __future__ import annotations

import enum
import logging
import sched
import threading
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class TimerKind(enum.Enum):
    POLL = "poll"
    RECONNECT = "reconnect"
    SWITCH = "switch"


class CooperativeScheduler:
    """Runs timer callbacks one at a time on the calling thread.

    At most one timer of each :class:`TimerKind` is pending; scheduling a new
    one replaces the previous. Callbacks run to completion before the next one
    starts.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._stop_event = threading.Event()
        self._scheduler = sched.scheduler(clock, self._wait)
        self._clock = clock
        self._timers: dict[TimerKind, sched.Event] = {}

    def now(self) -> float:
        return self._clock()

    def schedule(self, kind: TimerKind, delay_seconds: float, action: Callable[[], Any]) -> None:
        self.cancel(kind)

        def fire() -> None:
            self._timers.pop(kind, None)
            action()

        self._timers[kind] = self._scheduler.enter(max(delay_seconds, 0.0), 0, fire)

    def cancel(self, kind: TimerKind) -> bool:
        event = self._timers.pop(kind, None)
        if event is None:
            return False
        try:
            self._scheduler.cancel(event)
        except ValueError:
            # Already fired or removed.
            return False
        return True

    def cancel_all(self) -> None:
        for kind in list(self._timers):
            self.cancel(kind)

    def is_pending(self, kind: TimerKind) -> bool:
        return kind in self._timers

    def next_deadline(self) -> Optional[float]:
        queue = self._scheduler.queue
        return queue[0].time if queue else None

    def run_pending(self) -> None:
        """Run every timer that is already due without waiting."""
        self._scheduler.run(blocking=False)

    def run(self) -> None:
        """Block, running timers as they fall due, until :meth:`stop` is called."""
        self._stop_event.clear()
        while not self._stop_event.is_set():
            deadline = self.next_deadline()
            if deadline is None:
                break
            self._scheduler.run(blocking=False)
            deadline = self.next_deadline()
            if deadline is not None:
                # Sleep in an interruptible manner.
                self._stop_event.wait(max(deadline - self._clock(), 0.0))
        logger.debug("Scheduler loop exited.")

    def stop(self) -> None:
        self.cancel_all()
        self._stop_event.set()

    def _wait(self, seconds: float) -> None:
        if seconds > 0:
            self._stop_event.wait(seconds)
