"""Per-task and per-goal completion for one week of placed tasks."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from yearcompass.config import GoalsConfig
from yearcompass.models import CalendarTaskInstance, GoalCategory


def percentage(completed: int, target: int, clamp: bool = False) -> int:
    """Whole-number completion percentage; 0 when there is no target.

    Halves round up. Values over 100 are kept unless *clamp* is set.
    """
    if target <= 0:
        return 0
    value = math.floor(completed / target * 100 + 0.5)
    return min(100, value) if clamp else value


@dataclass
class Progress:
    completed: int = 0
    target: int = 0

    @property
    def percentage(self) -> int:
        return percentage(self.completed, self.target)

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "target": self.target,
            "percentage": self.percentage,
        }


class ProgressAggregator:
    """Counts placed instances against each definition's weekly target."""

    def __init__(self, config: GoalsConfig):
        self.config = config

    def task_progress(self, instances: Iterable[CalendarTaskInstance]) -> dict[str, Progress]:
        counts: dict[str, int] = {}
        for inst in instances:
            counts[inst.task_id] = counts.get(inst.task_id, 0) + 1
        return {
            t.id: Progress(completed=counts.get(t.id, 0), target=t.weekly_target)
            for t in self.config.tasks
        }

    def goal_progress(self, instances: Iterable[CalendarTaskInstance]) -> dict[GoalCategory, Progress]:
        by_task = self.task_progress(instances)
        result = {category: Progress() for category in self.config.categories}
        for t in self.config.tasks:
            p = by_task[t.id]
            result[t.category].completed += p.completed
            result[t.category].target += p.target
        return result

    def goal_percentages(
        self,
        instances: Iterable[CalendarTaskInstance],
        clamp: bool = False,
    ) -> dict[GoalCategory, int]:
        return {
            category: percentage(p.completed, p.target, clamp=clamp)
            for category, p in self.goal_progress(instances).items()
        }

    def category_percentages(
        self,
        instances: Iterable[CalendarTaskInstance],
        clamp: bool = False,
    ) -> dict[GoalCategory, int]:
        """Percentages from each instance's own category.

        Instances still count after their definition is retired or renamed.
        Targets come from the current definitions.
        """
        counts: dict[GoalCategory, int] = {}
        for inst in instances:
            counts[inst.category] = counts.get(inst.category, 0) + 1
        targets = {category: 0 for category in self.config.categories}
        for t in self.config.tasks:
            targets[t.category] += t.weekly_target
        return {
            category: percentage(counts.get(category, 0), target, clamp=clamp)
            for category, target in targets.items()
        }
