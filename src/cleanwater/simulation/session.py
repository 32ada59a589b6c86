"""Game session: the single entry point front ends talk to.

``GameSession`` owns every piece of mutable game state and exposes the
player's inputs as command methods. All mutation happens inside those
commands or inside callbacks fired by the session's ``Scheduler``; nothing
else writes to the store or the counters.

Lifecycle::

    NOT_STARTED --start_game--> RUNNING --(defeat | victory)--> ENDED
         ^                                                        |
         +----------------------- reset_game ---------------------+

Ending cancels the tick, spawn, wave-timer and next-wave timers together and
bumps a generation counter that every timer callback checks, so a callback
that was already due cannot touch a finished or reset session.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from loguru import logger

from ..models import GameRules, TowerType
from .clock import Scheduler, TimerHandle
from .combat import CombatReport, clean_drop, clear_tick_flags, resolve_combat
from .economy import Economy
from .entities import (
    ActionResult,
    Drop,
    DropView,
    FeedbackReason,
    HudState,
    Outcome,
    Rejection,
    SessionState,
    SessionStatus,
    TowerView,
)
from .grid import Grid
from .movement import MovementReport, RandomSource, resolve_movement
from .observers import GameObserver, ObserverHub
from .store import EntityStore
from .waves import WaveCompletion, WavePhase, WaveScheduler


@dataclass(slots=True)
class TickReport:
    combat: CombatReport = field(default_factory=CombatReport)
    movement: MovementReport = field(default_factory=MovementReport)
    completion: Optional[WaveCompletion] = None


_REJECTION_FEEDBACK = {
    Rejection.ON_PATH: FeedbackReason.ON_PATH,
    Rejection.NOT_ENOUGH_COINS: FeedbackReason.NOT_ENOUGH_COINS,
    Rejection.NO_TOWER_TYPE: FeedbackReason.NO_TOWER_TYPE,
    Rejection.UNKNOWN_TOWER_TYPE: FeedbackReason.UNKNOWN_TOWER_TYPE,
    Rejection.NOT_RUNNING: FeedbackReason.NOT_RUNNING,
}


class GameSession:
    def __init__(
        self,
        rules: Optional[GameRules] = None,
        clock: Optional[Scheduler] = None,
        rng: Optional[RandomSource] = None,
        observers: Sequence[GameObserver] = (),
        difficulty: Optional[str] = None,
    ):
        self.rules = rules or GameRules()
        self.clock = clock or Scheduler()
        self.rng: RandomSource = rng or random.Random()
        self.observers = ObserverHub(observers)

        self.grid = Grid(self.rules.rows, self.rules.cols)
        self.path = self.grid.build_path()
        self.store = EntityStore(self.rules, self.grid, self.path)

        self.selected_difficulty = self.rules.default_difficulty
        if difficulty is not None:
            self.select_difficulty(difficulty)
        preset = self.rules.difficulty(self.selected_difficulty)
        self.state = SessionState(
            difficulty=preset,
            coins=preset.starting_coins,
            health=self.rules.max_health,
            auto_advance=self.rules.auto_advance,
        )
        self.economy = Economy(self.rules, self.state, self.observers)
        self.waves = WaveScheduler(self.rules, self.state, self.store, self.clock, self.observers, hooks=self)

        self.at_checkpoint = False
        self._generation = 0
        self._tick_timer: Optional[TimerHandle] = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def status(self) -> SessionStatus:
        return self.state.status

    @property
    def outcome(self) -> Optional[Outcome]:
        return self.state.outcome

    @property
    def awaiting_manual_start(self) -> bool:
        return (
            self.state.running
            and not self.at_checkpoint
            and self.waves.phase is WavePhase.COMPLETE
            and not self.waves.next_wave_pending
        )

    def hud(self) -> HudState:
        return self.state.hud()

    def tower_views(self) -> Tuple[TowerView, ...]:
        return tuple(TowerView.of(tower) for tower in self.store.iter_towers())

    def drop_views(self) -> Tuple[DropView, ...]:
        return tuple(self._drop_view(drop) for drop in self.store.drops if drop.path_index < len(self.path))

    def _drop_view(self, drop: Drop) -> DropView:
        return DropView(
            id=drop.id,
            path_index=drop.path_index,
            cell_index=self.store.drop_cell(drop),
            hp=drop.hp,
            max_hp=drop.max_hp,
            cleaned=drop.cleaned,
            damaged=not drop.cleaned and drop.hp < drop.max_hp,
            targeted=drop.targeted,
            recently_hit=drop.recently_hit,
        )

    # ------------------------------------------------------------------
    # Collaborator notifications
    # ------------------------------------------------------------------
    def _render_grid(self) -> None:
        self.observers.emit("render_grid", tuple(range(self.grid.size)), self.path.cells, self.tower_views())

    def _render_drops(self) -> None:
        self.observers.emit("render_drops", self.drop_views())

    def _update_hud(self) -> None:
        self.observers.emit("update_hud", self.state.hud())

    def _reject(self, rejection: Rejection, target: int | str) -> ActionResult:
        reason = _REJECTION_FEEDBACK.get(rejection)
        if reason is not None:
            self.observers.emit("flash_feedback", target, reason)
        logger.debug(f"Action rejected at {target}: {rejection.value}")
        return ActionResult.rejected(rejection)

    def _busy(self) -> bool:
        if self.observers.dispatching:
            logger.warning("Command issued from inside an observer callback was ignored")
            return True
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def select_difficulty(self, name: str) -> str:
        key = str(name).strip().lower()
        if key not in self.rules.difficulties:
            logger.warning(f"Unknown difficulty '{name}', using '{self.rules.default_difficulty}'")
            key = self.rules.default_difficulty
        self.selected_difficulty = key
        return key

    def start_game(self) -> ActionResult:
        if self._busy():
            return ActionResult.rejected(Rejection.BUSY)
        self.state.difficulty = self.rules.difficulty(self.selected_difficulty)
        self._reset_state()

        self.state.running = True
        self.state.status = SessionStatus.RUNNING
        generation = self._generation
        self._tick_timer = self.clock.call_every(
            self.rules.tick_ms,
            lambda: self._scheduled_tick(generation),
            label="tick",
        )
        logger.info(
            f"Session started on '{self.state.difficulty.name}': "
            f"target wave {self.state.difficulty.wave_target}, {self.state.coins} coins"
        )
        self._render_grid()
        self.waves.start_wave(1)
        return ActionResult(action="started")

    def reset_game(self) -> ActionResult:
        if self._busy():
            return ActionResult.rejected(Rejection.BUSY)
        self._reset_state()
        logger.info("Session reset")
        self._render_grid()
        self._render_drops()
        self._update_hud()
        return ActionResult(action="reset")

    def return_to_title(self) -> ActionResult:
        if self._busy():
            return ActionResult.rejected(Rejection.BUSY)
        self._stop()
        if self.state.status is SessionStatus.RUNNING:
            self.state.status = SessionStatus.NOT_STARTED
        logger.info("Session stopped, back to title")
        return ActionResult(action="stopped")

    def _stop(self) -> None:
        self._generation += 1
        self.state.running = False
        self.state.spawning = False
        self.clock.cancel(self._tick_timer)
        self._tick_timer = None
        self.waves.cancel()

    def _reset_state(self) -> None:
        self._stop()
        self.store.clear()
        self.waves.reset()
        self.at_checkpoint = False

        state = self.state
        state.wave = 0
        state.score = 0
        state.coins = state.difficulty.starting_coins
        state.health = self.rules.max_health
        state.polluted_count = 0
        state.timer_seconds = 0
        state.auto_advance = self.rules.auto_advance
        state.status = SessionStatus.NOT_STARTED
        state.outcome = None
        state.selected_tower_type = None
        state.achieved_milestones.clear()

    def _end(self, outcome: Outcome) -> None:
        if self.state.status is SessionStatus.ENDED:
            return
        self._stop()
        self.state.status = SessionStatus.ENDED
        self.state.outcome = outcome
        victory = outcome is Outcome.VICTORY
        logger.info(
            f"Session ended in {outcome.value} at wave {self.state.wave} "
            f"(score {self.state.score}, health {self.state.health}, polluted {self.state.polluted_count})"
        )
        self._update_hud()
        self.observers.emit("notify_game_ended", victory, self.state.wave, self.state.score)

    # ------------------------------------------------------------------
    # Simulation tick
    # ------------------------------------------------------------------
    def _scheduled_tick(self, generation: int) -> None:
        if generation != self._generation:
            return
        self.tick()

    def tick(self) -> Optional[TickReport]:
        """Run one combat + movement step; None when the session is not running."""
        if not self.state.running:
            return None

        report = TickReport()
        clear_tick_flags(self.store)
        report.combat = resolve_combat(self.store, self.economy, self.observers)
        report.movement = resolve_movement(self.store, self.state, self.rules, self.rng)
        if report.movement.health_depleted:
            self._end(Outcome.DEFEAT)
            return report

        self._render_drops()
        self._update_hud()

        if self.state.polluted_count >= self.state.difficulty.polluted_limit:
            self._end(Outcome.DEFEAT)
            return report

        report.completion = self.waves.complete_wave()
        if report.completion is WaveCompletion.VICTORY:
            self._end(Outcome.VICTORY)
        elif report.completion is WaveCompletion.CHECKPOINT:
            self.at_checkpoint = True
            logger.info(f"Checkpoint reached after wave {self.state.wave}")
            self.observers.emit("notify_wave_checkpoint", self.state.wave)
        elif report.completion is WaveCompletion.AWAIT_MANUAL:
            logger.debug(f"Wave {self.state.wave} cleared, waiting for manual start")
        return report

    # ------------------------------------------------------------------
    # WaveHooks
    # ------------------------------------------------------------------
    def on_wave_started(self, wave: int) -> None:
        self._update_hud()

    def on_drop_spawned(self, drop: Drop) -> None:
        self._render_drops()

    def on_timer_changed(self) -> None:
        self._update_hud()

    def on_health_depleted(self) -> None:
        self._end(Outcome.DEFEAT)

    # ------------------------------------------------------------------
    # Player commands
    # ------------------------------------------------------------------
    def select_tower_type(self, tower_type: TowerType | str) -> ActionResult:
        if self._busy():
            return ActionResult.rejected(Rejection.BUSY)
        try:
            definition = self.rules.tower(tower_type)
        except (KeyError, ValueError):
            return self._reject(Rejection.UNKNOWN_TOWER_TYPE, "tower_type")
        self.state.selected_tower_type = definition.tower_type
        return ActionResult(action="selected")

    def place_or_upgrade_at(self, cell_index: int) -> ActionResult:
        if self._busy():
            return ActionResult.rejected(Rejection.BUSY)
        if not self.state.running:
            return self._reject(Rejection.NOT_RUNNING, cell_index)
        if not self.grid.contains(cell_index):
            return self._reject(Rejection.OUT_OF_BOUNDS, cell_index)
        if cell_index in self.path:
            return self._reject(Rejection.ON_PATH, cell_index)

        existing = self.store.towers.get(cell_index)
        if existing is not None:
            cost = self.rules.upgrade_cost(existing.level)
            result = self.store.upgrade_tower(cell_index, self.state.coins)
            action = "upgraded"
        else:
            tower_type = self.state.selected_tower_type
            if tower_type is None:
                return self._reject(Rejection.NO_TOWER_TYPE, cell_index)
            cost = self.rules.tower(tower_type).cost
            result = self.store.place_tower(cell_index, tower_type, self.state.coins)
            action = "placed"

        if isinstance(result, Rejection):
            target = "coins" if result is Rejection.NOT_ENOUGH_COINS else cell_index
            return self._reject(result, target)

        self.economy.spend(cost)
        logger.debug(f"Tower {action} at {cell_index}: level {result.level}, power {result.power}")
        self._render_grid()
        self._update_hud()
        return ActionResult(tower=TowerView.of(result), action=action)

    def dismiss_drop(self, drop_id: int) -> ActionResult:
        if self._busy():
            return ActionResult.rejected(Rejection.BUSY)
        if not self.state.running:
            return self._reject(Rejection.NOT_RUNNING, "drop")
        drop = self.store.find_drop(drop_id)
        if drop is None:
            return ActionResult.rejected(Rejection.UNKNOWN_DROP)

        rewarded = clean_drop(drop)
        if rewarded:
            self.economy.award_dismiss()
            self.observers.emit("play_clean_cue")
        self.store.remove_drop(drop_id)
        self._render_drops()
        self._update_hud()
        return ActionResult(action="dismissed" if rewarded else "removed")

    def cheer(self) -> ActionResult:
        if self._busy():
            return ActionResult.rejected(Rejection.BUSY)
        if not self.state.running:
            return self._reject(Rejection.NOT_RUNNING, "score")
        self.economy.award(self.rules.cheer_score, 0)
        self._update_hud()
        return ActionResult(action="cheered")

    def toggle_auto_advance(self) -> bool:
        if self._busy():
            return self.state.auto_advance
        self.state.auto_advance = not self.state.auto_advance
        if self.state.auto_advance and self.awaiting_manual_start:
            self.waves.schedule_next_wave()
        return self.state.auto_advance

    def start_next_wave_manual(self) -> bool:
        if self._busy() or not self.state.running:
            return False
        if not self.waves.drained:
            return False
        self.at_checkpoint = False
        self.waves.start_wave(self.state.wave + 1)
        return True

    def continue_after_checkpoint(self) -> bool:
        if self._busy() or not self.state.running or not self.at_checkpoint:
            return False
        self.at_checkpoint = False
        return self.waves.schedule_next_wave()

    def restart_after_checkpoint(self) -> ActionResult:
        if self._busy():
            return ActionResult.rejected(Rejection.BUSY)
        if not self.state.running or not self.at_checkpoint:
            return ActionResult.rejected(Rejection.NOT_AT_CHECKPOINT)
        self.reset_game()
        return self.start_game()
