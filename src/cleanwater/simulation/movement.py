from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import List, Protocol

from ..models import GameRules
from .entities import SessionState
from .store import EntityStore


class RandomSource(Protocol):
    def random(self) -> float: ...


@dataclass(slots=True)
class MovementReport:
    moved: List[int] = field(default_factory=list)
    held: List[int] = field(default_factory=list)
    exited: List[int] = field(default_factory=list)
    polluted: List[int] = field(default_factory=list)
    health_depleted: bool = False


def resolve_movement(
    store: EntityStore,
    state: SessionState,
    rules: GameRules,
    rng: RandomSource | None = None,
) -> MovementReport:
    """Advance every drop one path step and settle the ones reaching the village.

    A slowed drop holds position with probability ``rules.slow_skip_chance``
    and sheds one slow stack when it does, so the outcome depends on ``rng``.
    Processing stops at the first leak that empties health.
    """
    rng = rng or random
    report = MovementReport()
    path_length = len(store.path)
    finished: List[int] = []

    for drop in store.drops:
        if drop.slow_stacks > 0 and rng.random() < rules.slow_skip_chance:
            drop.slow_stacks = max(0, drop.slow_stacks - 1)
            report.held.append(drop.id)
            continue

        drop.path_index += 1
        report.moved.append(drop.id)
        if drop.path_index < path_length:
            continue

        finished.append(drop.id)
        if drop.cleaned:
            report.exited.append(drop.id)
            continue

        state.polluted_count += 1
        state.health = max(0, state.health - rules.leak_penalty)
        report.polluted.append(drop.id)
        if state.health <= 0:
            report.health_depleted = True
            break

    for drop_id in finished:
        store.remove_drop(drop_id)
    return report
