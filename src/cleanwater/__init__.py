"""Clean Water Defense: tower-defense simulation core, CLI and HTTP API."""

from .config import ConfigError, default_rules, load_config, rules_from_dict
from .formatting import format_board, format_hud, format_summary, session_to_dict
from .models import (
    DifficultyPreset,
    GameRules,
    Milestone,
    TowerDefinition,
    TowerType,
)
from .simulation import (
    ActionResult,
    EventLog,
    GameObserver,
    GameSession,
    Outcome,
    Rejection,
    Scheduler,
    SessionStatus,
)

__all__ = [
    "ConfigError",
    "default_rules",
    "load_config",
    "rules_from_dict",
    "format_board",
    "format_hud",
    "format_summary",
    "session_to_dict",
    "DifficultyPreset",
    "GameRules",
    "Milestone",
    "TowerDefinition",
    "TowerType",
    "ActionResult",
    "EventLog",
    "GameObserver",
    "GameSession",
    "Outcome",
    "Rejection",
    "Scheduler",
    "SessionStatus",
]
