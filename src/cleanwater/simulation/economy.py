from __future__ import annotations

from typing import List

from loguru import logger

from ..models import GameRules, Milestone
from .entities import SessionState
from .observers import ObserverHub


class Economy:
    """Coins, score and one-shot milestone bonuses of a session."""

    def __init__(self, rules: GameRules, state: SessionState, observers: ObserverHub):
        self.rules = rules
        self.state = state
        self.observers = observers

    def can_afford(self, cost: int) -> bool:
        return self.state.coins >= cost

    def spend(self, cost: int) -> None:
        if cost > self.state.coins:
            raise ValueError(f"Cannot spend {cost} coins with balance {self.state.coins}.")
        self.state.coins -= cost

    def award(self, score: int, coins: int) -> List[Milestone]:
        self.state.score += score
        self.state.coins += coins
        return self.check_milestones()

    def award_kill(self) -> List[Milestone]:
        return self.award(self.rules.kill_score, self.rules.kill_coins)

    def award_dismiss(self) -> List[Milestone]:
        return self.award(self.rules.dismiss_score, self.rules.dismiss_coins)

    def check_milestones(self) -> List[Milestone]:
        reached: List[Milestone] = []
        for milestone in self.rules.milestones:
            if self.state.score < milestone.score or milestone.score in self.state.achieved_milestones:
                continue
            self.state.achieved_milestones.add(milestone.score)
            self.state.coins += self.rules.milestone_bonus
            reached.append(milestone)
            logger.info(f"Milestone '{milestone.title}' reached at score {self.state.score}")
            self.observers.emit("notify_milestone", milestone.title, milestone.message)
        return reached
