from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .economy import Economy
from .entities import Drop, Tower
from .observers import ObserverHub
from .store import EntityStore


@dataclass(slots=True)
class CombatReport:
    hits: List[Tuple[int, int]] = field(default_factory=list)
    cleaned: List[int] = field(default_factory=list)


def clear_tick_flags(store: EntityStore) -> None:
    for drop in store.drops:
        drop.targeted = False
        drop.recently_hit = False
    for tower in store.iter_towers():
        tower.targeting = False


def pick_target(store: EntityStore, tower: Tower) -> Optional[Drop]:
    """First live, uncleaned drop (spawn order) within the tower's Manhattan range."""
    for drop in store.drops:
        if drop.cleaned or drop.path_index >= len(store.path):
            continue
        if store.grid.distance(tower.cell_index, store.drop_cell(drop)) <= tower.range:
            return drop
    return None


def clean_drop(drop: Drop) -> bool:
    """Mark ``drop`` cleaned; False when it already was, so rewards are paid once."""
    if drop.cleaned:
        return False
    drop.cleaned = True
    drop.hp = 0
    return True


def resolve_combat(store: EntityStore, economy: Economy, observers: ObserverHub) -> CombatReport:
    report = CombatReport()
    for tower in store.iter_towers():
        drop = pick_target(store, tower)
        if drop is None:
            continue

        drop.targeted = True
        drop.recently_hit = True
        tower.targeting = True
        drop.hp -= tower.power
        if tower.slow_amount:
            drop.slow_stacks += tower.slow_amount
        report.hits.append((tower.cell_index, drop.id))

        if drop.hp <= 0 and clean_drop(drop):
            report.cleaned.append(drop.id)
            economy.award_kill()
            observers.emit("play_clean_cue")
    return report
