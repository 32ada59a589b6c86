from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Sequence, Tuple


class TowerType(str, Enum):
    BASIC = "basic"
    SLOW = "slow"


def _normalize_tower_type(value: Any) -> TowerType:
    try:
        return TowerType(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported tower type '{value}'. Use basic or slow.") from exc


def _positive_int(payload: Dict[str, Any], key: str, default: int) -> int:
    try:
        value = int(payload.get(key, default))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Field '{key}' must be integer.") from exc
    if value <= 0:
        raise ValueError(f"Field '{key}' must be > 0.")
    return value


def _non_negative_float(payload: Dict[str, Any], key: str, default: float) -> float:
    try:
        value = float(payload.get(key, default))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Field '{key}' must be a number.") from exc
    if value < 0:
        raise ValueError(f"Field '{key}' must be >= 0.")
    return value


@dataclass(slots=True, frozen=True)
class TowerDefinition:
    tower_type: TowerType
    cost: int
    range: int
    power: float
    slow: float = 0.0

    @classmethod
    def from_dict(cls, tower_type: str, payload: Dict[str, Any]) -> "TowerDefinition":
        return cls(
            tower_type=_normalize_tower_type(tower_type),
            cost=int(_non_negative_float(payload, "cost", 10)),
            range=int(_non_negative_float(payload, "range", 2)),
            power=_non_negative_float(payload, "power", 1.0),
            slow=_non_negative_float(payload, "slow", 0.0),
        )


@dataclass(slots=True, frozen=True)
class DifficultyPreset:
    name: str
    wave_target: int
    polluted_limit: int
    spawn_speed: float
    starting_coins: int
    wave_time_limit_s: int

    @classmethod
    def from_dict(cls, name: str, payload: Dict[str, Any]) -> "DifficultyPreset":
        spawn_speed = _non_negative_float(payload, "spawn_speed", 1.0)
        if spawn_speed <= 0:
            raise ValueError(f"Difficulty '{name}' must have spawn_speed > 0.")
        return cls(
            name=str(name).strip().lower(),
            wave_target=_positive_int(payload, "wave_target", 15),
            polluted_limit=_positive_int(payload, "polluted_limit", 8),
            spawn_speed=spawn_speed,
            starting_coins=int(_non_negative_float(payload, "starting_coins", 10)),
            wave_time_limit_s=_positive_int(payload, "wave_time_limit_s", 60),
        )


@dataclass(slots=True, frozen=True)
class Milestone:
    score: int
    title: str
    message: str

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Milestone":
        try:
            score = int(payload["score"])
            title = str(payload["title"])
        except KeyError as exc:
            raise ValueError(f"Missing field in milestone definition: {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid milestone definition: {exc}") from exc
        return cls(score=score, title=title, message=str(payload.get("message", "")))


DEFAULT_TOWERS: Tuple[TowerDefinition, ...] = (
    TowerDefinition(tower_type=TowerType.BASIC, cost=10, range=2, power=1.0),
    TowerDefinition(tower_type=TowerType.SLOW, cost=10, range=3, power=0.5, slow=1.0),
)

DEFAULT_DIFFICULTIES: Tuple[DifficultyPreset, ...] = (
    DifficultyPreset("easy", wave_target=10, polluted_limit=12, spawn_speed=0.85, starting_coins=14, wave_time_limit_s=90),
    DifficultyPreset("normal", wave_target=15, polluted_limit=8, spawn_speed=1.0, starting_coins=10, wave_time_limit_s=60),
    DifficultyPreset("hard", wave_target=20, polluted_limit=6, spawn_speed=1.25, starting_coins=8, wave_time_limit_s=45),
)

DEFAULT_MILESTONES: Tuple[Milestone, ...] = (
    Milestone(20, "First Steps", "Nice! You've cleaned 20 points, keep going!"),
    Milestone(50, "Helping Hands", "Great work, 50 points. The village thanks you!"),
    Milestone(100, "Community Hero", "Amazing! 100 points, you're making a real difference."),
    Milestone(200, "Water Champion", "Incredible, 200 points! The village is thriving."),
)


@dataclass(slots=True, frozen=True)
class GameRules:
    """Every tunable number of the game in one immutable bundle."""

    rows: int = 9
    cols: int = 15
    tick_ms: int = 450
    towers: Dict[TowerType, TowerDefinition] = field(
        default_factory=lambda: {tower.tower_type: tower for tower in DEFAULT_TOWERS}
    )
    difficulties: Dict[str, DifficultyPreset] = field(
        default_factory=lambda: {preset.name: preset for preset in DEFAULT_DIFFICULTIES}
    )
    default_difficulty: str = "normal"
    milestones: Sequence[Milestone] = DEFAULT_MILESTONES
    milestone_bonus: int = 5
    upgrade_cost_factor: int = 5
    upgrade_power_step: float = 1.0
    kill_score: int = 10
    kill_coins: int = 4
    dismiss_score: int = 6
    dismiss_coins: int = 3
    cheer_score: int = 1
    max_health: int = 100
    leak_penalty: int = 5
    timeout_penalty: int = 5
    checkpoint_wave: int = 10
    early_wave_limit: int = 10
    early_spawn_interval_ms: int = 1100
    late_spawn_interval_ms: int = 700
    min_spawn_interval_ms: int = 120
    auto_advance_delay_ms: int = 800
    wave_timer_step_ms: int = 1000
    slow_skip_chance: float = 0.5
    auto_advance: bool = True

    def tower(self, tower_type: TowerType | str) -> TowerDefinition:
        return self.towers[_normalize_tower_type(tower_type)]

    def difficulty(self, name: str) -> DifficultyPreset:
        preset = self.difficulties.get(str(name).strip().lower())
        if preset is None:
            return self.difficulties[self.default_difficulty]
        return preset

    def spawn_count(self, wave: int) -> int:
        if wave <= self.early_wave_limit:
            return max(1, int((2 + wave) // 1.5))
        return 4 + wave

    def spawn_interval_ms(self, wave: int, spawn_speed: float) -> int:
        base = self.early_spawn_interval_ms if wave <= self.early_wave_limit else self.late_spawn_interval_ms
        return max(self.min_spawn_interval_ms, _round_half_up(base / spawn_speed))

    def drop_hp(self, wave: int) -> int:
        base = 1 if wave <= self.early_wave_limit else 2
        return base + max(0, (wave - 1) // 2)

    def upgrade_cost(self, level: int) -> int:
        return level * self.upgrade_cost_factor


def _round_half_up(value: float) -> int:
    return int(value + 0.5)
