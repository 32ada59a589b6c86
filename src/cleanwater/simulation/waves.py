"""Wave lifecycle: spawn cadence, per-wave countdown and what follows a drained wave.

Per wave the scheduler walks ``IDLE -> SPAWNING -> DRAINING -> COMPLETE``.
Spawning and the one-second wave timer run on the shared ``Scheduler`` and
are cancelled as a group whenever the wave ends or the session stops.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

from loguru import logger

from ..models import GameRules
from .clock import Scheduler, TimerHandle
from .entities import Drop, FeedbackReason, SessionState
from .observers import ObserverHub
from .store import EntityStore


class WavePhase(str, Enum):
    IDLE = "idle"
    SPAWNING = "spawning"
    DRAINING = "draining"
    COMPLETE = "complete"


class WaveCompletion(str, Enum):
    CHECKPOINT = "checkpoint"
    VICTORY = "victory"
    AUTO_ADVANCE = "auto_advance"
    AWAIT_MANUAL = "await_manual"


class WaveHooks(Protocol):
    def on_wave_started(self, wave: int) -> None: ...

    def on_drop_spawned(self, drop: Drop) -> None: ...

    def on_timer_changed(self) -> None: ...

    def on_health_depleted(self) -> None: ...


class WaveScheduler:
    def __init__(
        self,
        rules: GameRules,
        state: SessionState,
        store: EntityStore,
        clock: Scheduler,
        observers: ObserverHub,
        hooks: WaveHooks,
    ):
        self.rules = rules
        self.state = state
        self.store = store
        self.clock = clock
        self.observers = observers
        self.hooks = hooks
        self.phase = WavePhase.IDLE
        self.spawn_count = 0
        self.spawned = 0
        self.spawn_interval_ms = 0
        self._spawn_timer: Optional[TimerHandle] = None
        self._wave_timer: Optional[TimerHandle] = None
        self._advance_timer: Optional[TimerHandle] = None

    @property
    def next_wave_pending(self) -> bool:
        return self._advance_timer is not None and not self._advance_timer.cancelled

    @property
    def drained(self) -> bool:
        return not self.state.spawning and not self.store.drops

    def start_wave(self, wave: int) -> None:
        self.cancel()
        self.state.wave = wave
        self.state.spawning = True
        self.state.timer_seconds = 0
        self.phase = WavePhase.SPAWNING
        self.spawn_count = self.rules.spawn_count(wave)
        self.spawned = 0
        self.spawn_interval_ms = self.rules.spawn_interval_ms(wave, self.state.difficulty.spawn_speed)

        self._spawn_timer = self.clock.call_every(self.spawn_interval_ms, self._spawn_next, label="spawn")
        self._wave_timer = self.clock.call_every(self.rules.wave_timer_step_ms, self._count_second, label="wave-timer")
        logger.info(
            f"Wave {wave} started: {self.spawn_count} drops every {self.spawn_interval_ms} ms"
        )
        self.hooks.on_wave_started(wave)

    def _spawn_next(self) -> None:
        if not self.state.running or self.phase is not WavePhase.SPAWNING:
            return
        drop = self.store.spawn_drop(self.state.wave)
        self.spawned += 1
        logger.debug(f"Spawned drop {drop.id} ({self.spawned}/{self.spawn_count}) hp={drop.hp}")
        if self.spawned >= self.spawn_count:
            self.state.spawning = False
            self.phase = WavePhase.DRAINING
            self.clock.cancel(self._spawn_timer)
            self._spawn_timer = None
        self.hooks.on_drop_spawned(drop)

    def _count_second(self) -> None:
        if not self.state.running or self.phase not in (WavePhase.SPAWNING, WavePhase.DRAINING):
            return
        self.state.timer_seconds += 1
        if self.state.timer_seconds >= self.state.difficulty.wave_time_limit_s:
            self.state.health = max(0, self.state.health - self.rules.timeout_penalty)
            self.state.timer_seconds = 0
            logger.info(f"Wave {self.state.wave} ran over time; health now {self.state.health}")
            self.observers.emit("flash_feedback", self.store.path.end_cell, FeedbackReason.WAVE_TIMEOUT)
        self.hooks.on_timer_changed()
        if self.state.health <= 0:
            self.hooks.on_health_depleted()

    def complete_wave(self) -> Optional[WaveCompletion]:
        """Settle a drained wave once; returns None while the wave is still live."""
        if self.phase not in (WavePhase.SPAWNING, WavePhase.DRAINING) or not self.drained:
            return None

        self.phase = WavePhase.COMPLETE
        self.clock.cancel(self._spawn_timer)
        self.clock.cancel(self._wave_timer)
        self._spawn_timer = None
        self._wave_timer = None
        wave = self.state.wave

        if wave == self.rules.checkpoint_wave:
            return WaveCompletion.CHECKPOINT
        if wave >= self.state.difficulty.wave_target:
            return WaveCompletion.VICTORY
        if self.state.auto_advance:
            self.schedule_next_wave()
            return WaveCompletion.AUTO_ADVANCE
        return WaveCompletion.AWAIT_MANUAL

    def schedule_next_wave(self, delay_ms: Optional[int] = None) -> bool:
        if self.phase is not WavePhase.COMPLETE or self.next_wave_pending:
            return False
        delay = self.rules.auto_advance_delay_ms if delay_ms is None else delay_ms
        self._advance_timer = self.clock.call_later(delay, self._advance, label="next-wave")
        return True

    def _advance(self) -> None:
        self._advance_timer = None
        if not self.state.running or self.phase is not WavePhase.COMPLETE:
            return
        self.start_wave(self.state.wave + 1)

    def cancel(self) -> None:
        for handle in (self._spawn_timer, self._wave_timer, self._advance_timer):
            self.clock.cancel(handle)
        self._spawn_timer = None
        self._wave_timer = None
        self._advance_timer = None

    def reset(self) -> None:
        self.cancel()
        self.phase = WavePhase.IDLE
        self.spawn_count = 0
        self.spawned = 0
        self.spawn_interval_ms = 0
