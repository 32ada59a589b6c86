from __future__ import annotations

import random
import unittest

from cleanwater.models import GameRules, TowerType
from cleanwater.simulation.combat import clean_drop, pick_target, resolve_combat
from cleanwater.simulation.economy import Economy
from cleanwater.simulation.entities import SessionState
from cleanwater.simulation.grid import Grid
from cleanwater.simulation.movement import resolve_movement
from cleanwater.simulation.observers import EventLog, ObserverHub
from cleanwater.simulation.store import EntityStore


class FixedRandom:
    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


def _world(rules: GameRules | None = None):
    rules = rules or GameRules()
    grid = Grid(rules.rows, rules.cols)
    store = EntityStore(rules, grid, grid.build_path())
    preset = rules.difficulty("normal")
    state = SessionState(difficulty=preset, coins=100, health=rules.max_health)
    log = EventLog()
    economy = Economy(rules, state, ObserverHub([log]))
    return rules, store, state, economy, log


class CombatTests(unittest.TestCase):
    def test_tower_targets_first_spawned_drop_in_range(self) -> None:
        _, store, _, _, _ = _world()
        tower = store.place_tower(46, TowerType.BASIC, coins=100)
        first = store.spawn_drop(1)
        second = store.spawn_drop(1)
        first.path_index = 3
        second.path_index = 1

        self.assertIs(pick_target(store, tower), second)
        first.path_index = 2
        self.assertIs(pick_target(store, tower), first)
        first.cleaned = True
        self.assertIs(pick_target(store, tower), second)
        second.path_index = 5
        self.assertIsNone(pick_target(store, tower))

    def test_each_tower_hits_once_and_kill_pays_once(self) -> None:
        _, store, state, economy, log = _world()
        store.place_tower(46, TowerType.BASIC, coins=100)
        store.place_tower(31, TowerType.SLOW, coins=100)
        drop = store.spawn_drop(3)
        drop.hp = drop.max_hp = 1.5

        report = resolve_combat(store, economy, ObserverHub([log]))

        self.assertEqual(report.hits, [(46, drop.id), (31, drop.id)])
        self.assertEqual(report.cleaned, [drop.id])
        self.assertTrue(drop.cleaned)
        self.assertEqual(drop.hp, 0)
        self.assertEqual(drop.slow_stacks, 1.0)
        self.assertTrue(drop.targeted and drop.recently_hit)
        self.assertEqual((state.score, state.coins), (10, 104))
        self.assertEqual([event["event"] for event in log.since()], ["cleaned"])

        again = resolve_combat(store, economy, ObserverHub([log]))
        self.assertEqual(again.hits, [])
        self.assertEqual(state.score, 10)

    def test_clean_drop_is_idempotent(self) -> None:
        _, store, _, _, _ = _world()
        drop = store.spawn_drop(5)
        self.assertTrue(clean_drop(drop))
        self.assertFalse(clean_drop(drop))
        self.assertEqual(drop.hp, 0)


class MovementTests(unittest.TestCase):
    def test_slowed_drop_holds_and_sheds_a_stack(self) -> None:
        rules, store, state, _, _ = _world()
        drop = store.spawn_drop(1)
        drop.slow_stacks = 1.5

        report = resolve_movement(store, state, rules, FixedRandom(0.0))
        self.assertEqual(report.held, [drop.id])
        self.assertEqual((drop.path_index, drop.slow_stacks), (0, 0.5))

        report = resolve_movement(store, state, rules, FixedRandom(0.0))
        self.assertEqual(drop.slow_stacks, 0)

        report = resolve_movement(store, state, rules, FixedRandom(0.0))
        self.assertEqual(report.moved, [drop.id])
        self.assertEqual(drop.path_index, 1)

    def test_slowed_drop_moves_when_roll_misses(self) -> None:
        rules, store, state, _, _ = _world()
        drop = store.spawn_drop(1)
        drop.slow_stacks = 2

        resolve_movement(store, state, rules, FixedRandom(0.99))
        self.assertEqual((drop.path_index, drop.slow_stacks), (1, 2))

    def test_seeded_hold_rate_is_near_skip_chance(self) -> None:
        rules, store, state, _, _ = _world()
        rng = random.Random(7)
        held = 0
        for _ in range(400):
            drop = store.spawn_drop(1)
            drop.slow_stacks = 1
            report = resolve_movement(store, state, rules, rng)
            held += len(report.held)
            store.clear()
        self.assertGreater(held, 150)
        self.assertLess(held, 250)

    def test_uncleaned_drop_at_village_pollutes_and_costs_health(self) -> None:
        rules, store, state, _, _ = _world()
        leaking = store.spawn_drop(1)
        cleaned = store.spawn_drop(1)
        walking = store.spawn_drop(1)
        leaking.path_index = 14
        cleaned.path_index = 14
        cleaned.cleaned = True
        walking.path_index = 3

        report = resolve_movement(store, state, rules, FixedRandom(0.99))

        self.assertEqual(report.polluted, [leaking.id])
        self.assertEqual(report.exited, [cleaned.id])
        self.assertEqual((state.polluted_count, state.health), (1, 95))
        self.assertEqual([drop.id for drop in store.drops], [walking.id])
        self.assertEqual(walking.path_index, 4)
        self.assertFalse(report.health_depleted)

    def test_processing_stops_when_health_runs_out(self) -> None:
        rules, store, state, _, _ = _world()
        state.health = 5
        first = store.spawn_drop(1)
        second = store.spawn_drop(1)
        first.path_index = 14
        second.path_index = 14

        report = resolve_movement(store, state, rules, FixedRandom(0.99))

        self.assertTrue(report.health_depleted)
        self.assertEqual(state.health, 0)
        self.assertEqual(state.polluted_count, 1)
        self.assertEqual([drop.id for drop in store.drops], [second.id])


class EconomyTests(unittest.TestCase):
    def test_spend_refuses_overdraft(self) -> None:
        _, _, state, economy, _ = _world()
        economy.spend(40)
        self.assertEqual(state.coins, 60)
        self.assertTrue(economy.can_afford(60))
        self.assertFalse(economy.can_afford(61))
        with self.assertRaises(ValueError):
            economy.spend(61)
        self.assertEqual(state.coins, 60)

    def test_milestones_pay_bonus_once_each(self) -> None:
        _, _, state, economy, log = _world()
        state.coins = 0

        reached = economy.award(25, 0)
        self.assertEqual([item.score for item in reached], [20])
        self.assertEqual(state.coins, 5)

        self.assertEqual(economy.award(0, 0), [])
        self.assertEqual(state.coins, 5)

        reached = economy.award(80, 1)
        self.assertEqual([item.score for item in reached], [50, 100])
        self.assertEqual(state.coins, 16)
        self.assertEqual(state.achieved_milestones, {20, 50, 100})
        self.assertEqual(
            [event["title"] for event in log.since() if event["event"] == "milestone"],
            ["First Steps", "Helping Hands", "Community Hero"],
        )


if __name__ == "__main__":
    unittest.main()
