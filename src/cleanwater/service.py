from __future__ import annotations

import random
import threading
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

from loguru import logger

from .config import default_rules
from .formatting import format_board, session_to_dict
from .models import GameRules
from .simulation import EventLog, GameSession, Scheduler

T = TypeVar("T")


class GameService:
    """One session behind a lock so HTTP handlers and the realtime pump never interleave."""

    def __init__(self, rules: Optional[GameRules] = None, seed: Optional[int] = None):
        self.rules = rules or default_rules()
        self.seed = seed
        self.events = EventLog()
        self.clock = Scheduler()
        self._lock = threading.RLock()
        self.session = self._new_session()

    def _new_session(self) -> GameSession:
        return GameSession(
            rules=self.rules,
            clock=self.clock,
            rng=random.Random(self.seed),
            observers=[self.events],
        )

    def run(self, command: Callable[[GameSession], T]) -> T:
        with self._lock:
            return command(self.session)

    def advance(self, ms: int) -> int:
        with self._lock:
            return self.clock.advance(ms)

    def state(self) -> Dict[str, Any]:
        with self._lock:
            return session_to_dict(self.session)

    def board(self) -> str:
        with self._lock:
            return format_board(self.session)

    def events_since(self, seq: int = 0) -> List[Dict[str, Any]]:
        with self._lock:
            return self.events.since(seq)


class RealtimeDriver:
    """Feeds wall-clock time into a ``GameService`` from a daemon thread.

    When the pump falls behind by more than ``max_catch_up_ms`` the extra time
    is dropped instead of replayed, so a stalled process skips ticks rather
    than bursting through a backlog.
    """

    def __init__(self, service: GameService, poll_ms: int = 50, max_catch_up_ms: int = 1000):
        self.service = service
        self.poll_ms = max(1, int(poll_ms))
        self.max_catch_up_ms = max(self.poll_ms, int(max_catch_up_ms))
        self.skipped_ms = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="cleanwater-realtime", daemon=True)
        self._thread.start()
        logger.info(f"Realtime driver started (poll {self.poll_ms} ms)")

    def stop(self, timeout_s: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout_s)
        self._thread = None

    def step(self, elapsed_ms: int) -> int:
        """Advance by ``elapsed_ms`` capped at ``max_catch_up_ms``; returns the ms applied."""
        elapsed = max(0, int(elapsed_ms))
        if elapsed > self.max_catch_up_ms:
            dropped = elapsed - self.max_catch_up_ms
            self.skipped_ms += dropped
            logger.warning(f"Realtime driver fell behind; skipping {dropped} ms")
            elapsed = self.max_catch_up_ms
        self.service.advance(elapsed)
        return elapsed

    def _loop(self) -> None:
        last = time.monotonic()
        while not self._stop.wait(self.poll_ms / 1000.0):
            now = time.monotonic()
            elapsed_ms = int((now - last) * 1000)
            applied = self.step(elapsed_ms)
            last = now if applied < elapsed_ms else last + elapsed_ms / 1000.0
