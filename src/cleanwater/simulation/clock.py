"""Virtual millisecond clock driving ticks, spawns and wave timers.

Nothing here reads the wall clock: time moves only through ``advance``, so a
test can step the game one tick at a time and a realtime front end can feed
it elapsed wall time.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

Callback = Callable[[], None]


@dataclass(slots=True, eq=False)
class TimerHandle:
    due_ms: int
    callback: Callback
    period_ms: Optional[int] = None
    label: str = ""
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    def __init__(self) -> None:
        self._now_ms = 0
        self._serial = 0
        self._queue: List[Tuple[int, int, TimerHandle]] = []

    @property
    def now_ms(self) -> int:
        return self._now_ms

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def pending_labels(self) -> List[str]:
        return sorted(handle.label for _, _, handle in self._queue if not handle.cancelled)

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._queue, (handle.due_ms, self._serial, handle))
        self._serial += 1

    def call_later(self, delay_ms: int, callback: Callback, label: str = "") -> TimerHandle:
        handle = TimerHandle(due_ms=self._now_ms + max(0, int(delay_ms)), callback=callback, label=label)
        self._push(handle)
        return handle

    def call_every(self, period_ms: int, callback: Callback, label: str = "") -> TimerHandle:
        period = int(period_ms)
        if period <= 0:
            raise ValueError("Timer period must be > 0 ms.")
        handle = TimerHandle(due_ms=self._now_ms + period, callback=callback, period_ms=period, label=label)
        self._push(handle)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()

    def advance(self, ms: int) -> int:
        """Move time forward ``ms`` and fire everything that falls due; returns fired count."""
        target = self._now_ms + max(0, int(ms))
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due_ms, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now_ms = due_ms
            if handle.period_ms is not None:
                handle.due_ms = due_ms + handle.period_ms
                self._push(handle)
            handle.callback()
            fired += 1
        self._now_ms = target
        return fired
