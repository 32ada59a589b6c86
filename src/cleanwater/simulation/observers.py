"""Presentation-side collaborators of the simulation.

The core calls these hooks at fixed points (after a tick, a spawn, a
placement) with immutable views. Hooks are fire-and-forget: whatever a hook
raises is logged and dropped, so a broken renderer or an unavailable audio
device can never fail a tick.
"""

from __future__ import annotations

from collections import deque
from itertools import count
from typing import Any, Deque, Dict, List, Sequence

from loguru import logger

from .entities import DropView, FeedbackReason, HudState, TowerView


class GameObserver:
    """Base collaborator; override only the hooks a front end cares about."""

    def render_grid(self, cells: Sequence[int], path: Sequence[int], towers: Sequence[TowerView]) -> None:
        pass

    def render_drops(self, drops: Sequence[DropView]) -> None:
        pass

    def flash_feedback(self, target: int | str, reason: FeedbackReason) -> None:
        pass

    def play_clean_cue(self) -> None:
        pass

    def notify_milestone(self, title: str, message: str) -> None:
        pass

    def notify_wave_checkpoint(self, wave: int) -> None:
        pass

    def notify_game_ended(self, victory: bool, wave: int, score: int) -> None:
        pass

    def update_hud(self, hud: HudState) -> None:
        pass


class ObserverHub:
    def __init__(self, observers: Sequence[GameObserver] = ()):
        self._observers: List[GameObserver] = list(observers)
        self._depth = 0

    @property
    def dispatching(self) -> bool:
        return self._depth > 0

    def add(self, observer: GameObserver) -> None:
        self._observers.append(observer)

    def remove(self, observer: GameObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def emit(self, hook: str, *args: Any) -> None:
        self._depth += 1
        try:
            for observer in list(self._observers):
                callback = getattr(observer, hook, None)
                if callback is None:
                    continue
                try:
                    callback(*args)
                except Exception as exc:
                    logger.warning(f"Observer {type(observer).__name__}.{hook} failed: {exc}")
        finally:
            self._depth -= 1


class EventLog(GameObserver):
    """Keeps the most recent notifications as sequenced JSON-safe records."""

    def __init__(self, maxlen: int = 500):
        self._events: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self._seq = count(1)

    def _push(self, kind: str, **data: Any) -> None:
        self._events.append({"seq": next(self._seq), "event": kind, **data})

    def since(self, seq: int = 0) -> List[Dict[str, Any]]:
        return [item for item in self._events if item["seq"] > seq]

    @property
    def last_seq(self) -> int:
        return self._events[-1]["seq"] if self._events else 0

    def flash_feedback(self, target: int | str, reason: FeedbackReason) -> None:
        self._push("feedback", target=target, reason=reason.value)

    def play_clean_cue(self) -> None:
        self._push("cleaned")

    def notify_milestone(self, title: str, message: str) -> None:
        self._push("milestone", title=title, message=message)

    def notify_wave_checkpoint(self, wave: int) -> None:
        self._push("checkpoint", wave=wave)

    def notify_game_ended(self, victory: bool, wave: int, score: int) -> None:
        self._push("game_ended", victory=victory, wave=wave, score=score)
