"""Wave/combat simulation core for Clean Water Defense."""

from .clock import Scheduler, TimerHandle
from .combat import CombatReport, resolve_combat
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
    Tower,
    TowerView,
)
from .grid import Grid, WaterPath
from .movement import MovementReport, resolve_movement
from .observers import EventLog, GameObserver, ObserverHub
from .session import GameSession, TickReport
from .store import EntityStore
from .waves import WaveCompletion, WavePhase, WaveScheduler

__all__ = [
    "Scheduler",
    "TimerHandle",
    "CombatReport",
    "resolve_combat",
    "Economy",
    "ActionResult",
    "Drop",
    "DropView",
    "FeedbackReason",
    "HudState",
    "Outcome",
    "Rejection",
    "SessionState",
    "SessionStatus",
    "Tower",
    "TowerView",
    "Grid",
    "WaterPath",
    "MovementReport",
    "resolve_movement",
    "EventLog",
    "GameObserver",
    "ObserverHub",
    "GameSession",
    "TickReport",
    "EntityStore",
    "WaveCompletion",
    "WavePhase",
    "WaveScheduler",
]
