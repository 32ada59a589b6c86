from __future__ import annotations

import unittest

from cleanwater.models import GameRules, TowerType
from cleanwater.simulation.entities import Rejection, Tower
from cleanwater.simulation.grid import Grid
from cleanwater.simulation.store import EntityStore


def _store() -> EntityStore:
    rules = GameRules()
    grid = Grid(rules.rows, rules.cols)
    return EntityStore(rules, grid, grid.build_path())


class GridTests(unittest.TestCase):
    def test_cell_identity_and_default_path(self) -> None:
        grid = Grid(9, 15)
        self.assertEqual(grid.cell_index(4, 0), 60)
        self.assertEqual(grid.row_col(61), (4, 1))
        self.assertEqual(grid.size, 135)

        path = grid.build_path()
        self.assertEqual(path.cells, tuple(range(60, 75)))
        self.assertEqual(len(path), 15)
        self.assertEqual(path.end_cell, 74)
        self.assertIn(67, path)
        self.assertNotIn(52, path)

    def test_manhattan_distance_and_bounds(self) -> None:
        grid = Grid(9, 15)
        self.assertEqual(grid.distance(grid.cell_index(2, 3), grid.cell_index(4, 3)), 2)
        self.assertEqual(grid.distance(grid.cell_index(3, 1), grid.cell_index(4, 3)), 3)
        self.assertTrue(grid.contains(0))
        self.assertTrue(grid.contains(134))
        self.assertFalse(grid.contains(-1))
        self.assertFalse(grid.contains(135))


class EntityStoreTests(unittest.TestCase):
    def test_place_tower_uses_type_definition(self) -> None:
        store = _store()
        basic = store.place_tower(45, TowerType.BASIC, coins=10)
        self.assertIsInstance(basic, Tower)
        self.assertEqual((basic.level, basic.power, basic.range, basic.slow_amount), (1, 1.0, 2, 0.0))

        slow = store.place_tower(30, TowerType.SLOW, coins=10)
        self.assertEqual((slow.power, slow.range, slow.slow_amount), (0.5, 3, 1.0))
        self.assertEqual(list(store.towers), [45, 30])

    def test_place_tower_rejections_leave_store_untouched(self) -> None:
        store = _store()
        self.assertIs(store.place_tower(60, TowerType.BASIC, coins=10), Rejection.ON_PATH)
        self.assertIs(store.place_tower(45, TowerType.BASIC, coins=9), Rejection.NOT_ENOUGH_COINS)
        self.assertIs(store.place_tower(500, TowerType.BASIC, coins=10), Rejection.OUT_OF_BOUNDS)
        self.assertEqual(store.towers, {})

        store.place_tower(45, TowerType.BASIC, coins=10)
        self.assertIs(store.place_tower(45, TowerType.SLOW, coins=10), Rejection.ALREADY_OCCUPIED)
        self.assertEqual(store.towers[45].tower_type, TowerType.BASIC)

    def test_upgrade_costs_level_times_five_and_adds_power(self) -> None:
        store = _store()
        store.place_tower(45, TowerType.SLOW, coins=10)

        self.assertIs(store.upgrade_tower(45, coins=4), Rejection.NOT_ENOUGH_COINS)
        self.assertEqual(store.towers[45].level, 1)

        tower = store.upgrade_tower(45, coins=5)
        self.assertEqual(tower.level, 2)
        self.assertEqual(tower.power, 1.5)

        self.assertIs(store.upgrade_tower(45, coins=9), Rejection.NOT_ENOUGH_COINS)
        tower = store.upgrade_tower(45, coins=10)
        self.assertEqual(tower.level, 3)
        self.assertEqual(tower.power, 2.5)

        self.assertIs(store.upgrade_tower(46, coins=100), Rejection.NO_TOWER)

    def test_spawned_drop_hp_scales_with_wave(self) -> None:
        store = _store()
        first = store.spawn_drop(1)
        third = store.spawn_drop(3)
        eleventh = store.spawn_drop(11)

        self.assertEqual((first.hp, first.max_hp, first.path_index), (1, 1, 0))
        self.assertEqual(third.hp, 2)
        self.assertEqual(eleventh.hp, 7)
        self.assertEqual(len({first.id, third.id, eleventh.id}), 3)
        self.assertFalse(first.cleaned)

        self.assertTrue(store.remove_drop(third.id))
        self.assertFalse(store.remove_drop(third.id))
        self.assertEqual([drop.id for drop in store.drops], [first.id, eleventh.id])
        self.assertIsNone(store.find_drop(third.id))


if __name__ == "__main__":
    unittest.main()
