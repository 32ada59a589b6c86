from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Set

from ..models import DifficultyPreset, TowerType


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    ENDED = "ended"


class Outcome(str, Enum):
    VICTORY = "victory"
    DEFEAT = "defeat"


class Rejection(str, Enum):
    NOT_RUNNING = "not_running"
    ON_PATH = "on_path"
    NO_TOWER_TYPE = "no_tower_type"
    NOT_ENOUGH_COINS = "not_enough_coins"
    ALREADY_OCCUPIED = "already_occupied"
    NO_TOWER = "no_tower"
    OUT_OF_BOUNDS = "out_of_bounds"
    UNKNOWN_DROP = "unknown_drop"
    UNKNOWN_TOWER_TYPE = "unknown_tower_type"
    NOT_AT_CHECKPOINT = "not_at_checkpoint"
    BUSY = "busy"


class FeedbackReason(str, Enum):
    ON_PATH = "on_path"
    NOT_ENOUGH_COINS = "not_enough_coins"
    WAVE_TIMEOUT = "wave_timeout"
    NO_TOWER_TYPE = "no_tower_type"
    UNKNOWN_TOWER_TYPE = "unknown_tower_type"
    NOT_RUNNING = "not_running"


@dataclass(slots=True)
class Tower:
    tower_type: TowerType
    cell_index: int
    level: int
    power: float
    range: int
    slow_amount: float = 0.0
    targeting: bool = False


@dataclass(slots=True)
class Drop:
    id: int
    hp: float
    max_hp: float
    path_index: int = 0
    cleaned: bool = False
    slow_stacks: float = 0.0
    targeted: bool = False
    recently_hit: bool = False


@dataclass(slots=True, frozen=True)
class ActionResult:
    """Outcome of a player command; rejections are values, not exceptions."""

    rejection: Optional[Rejection] = None
    tower: Optional["TowerView"] = None
    action: str = ""

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @classmethod
    def rejected(cls, rejection: Rejection) -> "ActionResult":
        return cls(rejection=rejection)


@dataclass(slots=True, frozen=True)
class TowerView:
    tower_type: str
    cell_index: int
    level: int
    power: float
    range: int
    slow_amount: float
    targeting: bool

    @classmethod
    def of(cls, tower: Tower) -> "TowerView":
        return cls(
            tower_type=tower.tower_type.value,
            cell_index=tower.cell_index,
            level=tower.level,
            power=tower.power,
            range=tower.range,
            slow_amount=tower.slow_amount,
            targeting=tower.targeting,
        )


@dataclass(slots=True, frozen=True)
class DropView:
    id: int
    path_index: int
    cell_index: int
    hp: float
    max_hp: float
    cleaned: bool
    damaged: bool
    targeted: bool
    recently_hit: bool


@dataclass(slots=True, frozen=True)
class HudState:
    wave: int
    score: int
    coins: int
    health: int
    timer_seconds: int
    polluted_count: int


@dataclass(slots=True)
class SessionState:
    """Process-wide counters of one game session."""

    difficulty: DifficultyPreset
    coins: int
    wave: int = 0
    score: int = 0
    health: int = 100
    polluted_count: int = 0
    running: bool = False
    spawning: bool = False
    auto_advance: bool = True
    timer_seconds: int = 0
    status: SessionStatus = SessionStatus.NOT_STARTED
    outcome: Optional[Outcome] = None
    selected_tower_type: Optional[TowerType] = None
    achieved_milestones: Set[int] = field(default_factory=set)

    def hud(self) -> HudState:
        return HudState(
            wave=self.wave,
            score=self.score,
            coins=self.coins,
            health=self.health,
            timer_seconds=self.timer_seconds,
            polluted_count=self.polluted_count,
        )
