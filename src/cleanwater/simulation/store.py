from __future__ import annotations

from itertools import count
from typing import Dict, Iterator, List, Optional

from ..models import GameRules, TowerType
from .entities import Drop, Rejection, Tower
from .grid import Grid, WaterPath


class EntityStore:
    """Live towers (keyed by cell, in placement order) and drops (in spawn order).

    Coins are checked here but never spent; the caller owns the balance and
    passes it in so a rejection leaves every counter untouched.
    """

    def __init__(self, rules: GameRules, grid: Grid, path: WaterPath):
        self.rules = rules
        self.grid = grid
        self.path = path
        self.towers: Dict[int, Tower] = {}
        self.drops: List[Drop] = []
        self._drop_ids = count(1)

    def place_tower(self, cell_index: int, tower_type: TowerType, coins: int) -> Tower | Rejection:
        if not self.grid.contains(cell_index):
            return Rejection.OUT_OF_BOUNDS
        if cell_index in self.path:
            return Rejection.ON_PATH
        if cell_index in self.towers:
            return Rejection.ALREADY_OCCUPIED

        definition = self.rules.tower(tower_type)
        if coins < definition.cost:
            return Rejection.NOT_ENOUGH_COINS

        tower = Tower(
            tower_type=definition.tower_type,
            cell_index=cell_index,
            level=1,
            power=definition.power,
            range=definition.range,
            slow_amount=definition.slow,
        )
        self.towers[cell_index] = tower
        return tower

    def upgrade_tower(self, cell_index: int, coins: int) -> Tower | Rejection:
        tower = self.towers.get(cell_index)
        if tower is None:
            return Rejection.NO_TOWER
        if coins < self.rules.upgrade_cost(tower.level):
            return Rejection.NOT_ENOUGH_COINS
        tower.level += 1
        tower.power = round(tower.power + self.rules.upgrade_power_step, 2)
        return tower

    def spawn_drop(self, wave: int) -> Drop:
        hp = self.rules.drop_hp(wave)
        drop = Drop(id=next(self._drop_ids), hp=hp, max_hp=hp)
        self.drops.append(drop)
        return drop

    def find_drop(self, drop_id: int) -> Optional[Drop]:
        for drop in self.drops:
            if drop.id == drop_id:
                return drop
        return None

    def remove_drop(self, drop_id: int) -> bool:
        for index, drop in enumerate(self.drops):
            if drop.id == drop_id:
                del self.drops[index]
                return True
        return False

    def iter_towers(self) -> Iterator[Tower]:
        return iter(self.towers.values())

    def drop_cell(self, drop: Drop) -> int:
        return self.path.cell_at(drop.path_index)

    def clear(self) -> None:
        self.towers.clear()
        self.drops.clear()
