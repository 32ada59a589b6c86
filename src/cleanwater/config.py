from __future__ import annotations

import json
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .models import (
    DifficultyPreset,
    GameRules,
    Milestone,
    TowerDefinition,
    TowerType,
)


class ConfigError(RuntimeError):
    """Raised when configuration file is invalid."""


_SCALAR_FIELDS = {
    item.name for item in fields(GameRules)
} - {"towers", "difficulties", "milestones"}

_POSITIVE_FIELDS = (
    "tick_ms",
    "wave_timer_step_ms",
    "early_spawn_interval_ms",
    "late_spawn_interval_ms",
    "min_spawn_interval_ms",
    "checkpoint_wave",
)


def default_rules() -> GameRules:
    return GameRules()


def _read_raw(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")

    if suffix == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc

    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise ConfigError(
                "YAML config requested, but PyYAML is not installed. "
                "Install the `yaml` extra or use JSON."
            ) from exc
        return yaml.safe_load(text)

    raise ConfigError(f"Unsupported config format '{suffix}'. Use .json or .yaml/.yml.")


def _load_towers(payload: Dict[str, Any], base: Dict[TowerType, TowerDefinition]) -> Dict[TowerType, TowerDefinition]:
    if not isinstance(payload, dict):
        raise ConfigError("Field 'towers' must be a mapping of tower type -> definition.")
    towers = dict(base)
    for name, raw in payload.items():
        try:
            tower = TowerDefinition.from_dict(name, raw or {})
        except ValueError as exc:
            raise ConfigError(f"Invalid tower definition '{name}': {exc}") from exc
        towers[tower.tower_type] = tower
    return towers


def _load_difficulties(payload: Dict[str, Any], base: Dict[str, DifficultyPreset]) -> Dict[str, DifficultyPreset]:
    if not isinstance(payload, dict):
        raise ConfigError("Field 'difficulties' must be a mapping of name -> preset.")
    presets = dict(base)
    for name, raw in payload.items():
        try:
            preset = DifficultyPreset.from_dict(name, raw or {})
        except ValueError as exc:
            raise ConfigError(f"Invalid difficulty '{name}': {exc}") from exc
        presets[preset.name] = preset
    return presets


def _load_milestones(payload: Iterable[Dict[str, Any]]) -> tuple[Milestone, ...]:
    milestones: List[Milestone] = []
    for raw in payload:
        try:
            milestones.append(Milestone.from_dict(raw))
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
    return tuple(sorted(milestones, key=lambda item: item.score))


def _coerce_scalar(name: str, value: Any, default: Any) -> Any:
    try:
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ConfigError(f"Field '{name}' must be true or false, got {value!r}.")
            return value
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
        return str(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Field '{name}' has invalid value {value!r}.") from exc


def rules_from_dict(payload: Dict[str, Any], base: GameRules | None = None) -> GameRules:
    """Overlay a (partial) rules mapping on ``base`` or the built-in defaults."""
    if not isinstance(payload, dict):
        raise ConfigError("Config root must be an object (JSON/YAML mapping).")

    rules = base or default_rules()
    overrides: Dict[str, Any] = {}

    for key, value in payload.items():
        if key == "towers":
            overrides["towers"] = _load_towers(value, rules.towers)
        elif key == "difficulties":
            overrides["difficulties"] = _load_difficulties(value, rules.difficulties)
        elif key == "milestones":
            overrides["milestones"] = _load_milestones(value or [])
        elif key in _SCALAR_FIELDS:
            overrides[key] = _coerce_scalar(key, value, getattr(rules, key))
        else:
            raise ConfigError(f"Unknown config field '{key}'.")

    result = replace(rules, **overrides)
    if result.rows <= 0 or result.cols <= 0:
        raise ConfigError("Fields 'rows' and 'cols' must be positive.")
    for name in _POSITIVE_FIELDS:
        if getattr(result, name) <= 0:
            raise ConfigError(f"Field '{name}' must be positive.")
    if result.auto_advance_delay_ms < 0:
        raise ConfigError("Field 'auto_advance_delay_ms' must be >= 0.")
    if not 0.0 <= result.slow_skip_chance <= 1.0:
        raise ConfigError("Field 'slow_skip_chance' must be within [0, 1].")
    if result.default_difficulty not in result.difficulties:
        raise ConfigError(f"Default difficulty '{result.default_difficulty}' is not defined.")
    return result


def load_config(path: Path | str) -> GameRules:
    path = Path(path)
    payload = _read_raw(path)
    if payload is None:
        return default_rules()
    return rules_from_dict(payload)
