"""Goal/task configuration and runtime settings.

``GoalsConfig`` is built once at startup and handed to every component that
needs it; nothing mutates it afterwards.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from yearcompass.models import Goal, GoalCategory, TaskDefinition

logger = logging.getLogger(__name__)

ENV_PREFIX = "YEARCOMPASS"
DEFAULT_DB_FILE = "yearcompass.json"
DEFAULT_MAX_WEEKS = 12


@dataclass(frozen=True)
class GoalsConfig:
    """Immutable goal categories, their metadata and the task definitions."""

    year: int
    theme: str
    goals: Mapping[GoalCategory, Goal]
    tasks: tuple[TaskDefinition, ...]
    bottom_lines: tuple[str, ...] = ()

    @property
    def categories(self) -> tuple[GoalCategory, ...]:
        return tuple(self.goals)

    def task(self, task_id: str) -> TaskDefinition | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def tasks_in(self, category: GoalCategory) -> list[TaskDefinition]:
        return [t for t in self.tasks if t.category == category]

    @classmethod
    def from_dict(cls, d: dict) -> GoalsConfig:
        goals = {}
        for raw in d["goals"]:
            goal = Goal.from_dict(raw)
            goals[goal.id] = goal
        tasks = tuple(TaskDefinition.from_dict(t) for t in d["tasks"])
        for t in tasks:
            if t.category not in goals:
                raise ValueError(f"Task {t.id} references unknown goal {t.category}")
        ids = [t.id for t in tasks]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate task definition ids")
        return cls(
            year=int(d.get("year", 2026)),
            theme=d.get("theme", ""),
            goals=MappingProxyType(goals),
            tasks=tasks,
            bottom_lines=tuple(d.get("bottom_lines", [])),
        )


def default_config() -> GoalsConfig:
    """The built-in 2026 plan: four goals, eight weekly tasks."""
    goals = {
        GoalCategory.WORK: Goal(
            id=GoalCategory.WORK,
            name="Work",
            name_en="WORK",
            subtitle="Plaud",
            objective="Ship one core increment you lead, proven by data",
            metrics=("One owned core metric improves for 8 straight weeks",),
            actions=(
                "2 deep-work sessions (2h) per week",
                "At least 5 user touchpoints per week",
            ),
            time_slots="Tue/Thu 9:00-11:00 deep work",
            color="#4A90A4",
        ),
        GoalCategory.BUILD: Goal(
            id=GoalCategory.BUILD,
            name="Build",
            name_en="BUILD",
            subtitle="Side project",
            objective="Ship a public MVP and get real feedback",
            metrics=(
                "10 real users (or 3 paying)",
                "A weekly release for 12 weeks in a row",
            ),
            actions=("1 ship per week", "1 growth experiment per week"),
            time_slots="Sat 10:00-13:00 ship only",
            color="#E07B39",
        ),
        GoalCategory.HEALTH: Goal(
            id=GoalCategory.HEALTH,
            name="Health",
            name_en="HEALTH",
            subtitle="Body and energy",
            objective="Fix the right shoulder and neck; keep training sustainable",
            metrics=(
                "Shoulder discomfort self-rating (0-10) down by 2",
                "Neck rotation up 10 degrees each side",
            ),
            actions=(
                "Strength training 3x per week",
                "Zone 2 cardio 2x per week",
                "10 min shoulder/neck rehab daily",
            ),
            time_slots="Mon/Wed/Fri 18:30-19:30 strength; rehab before bed",
            color="#7CB342",
        ),
        GoalCategory.RELATIONSHIPS: Goal(
            id=GoalCategory.RELATIONSHIPS,
            name="Relationships",
            name_en="RELS",
            subtitle="Partner and close friends",
            objective="Make time for people a fixed rhythm",
            metrics=("One phone-free quality hour per week",),
            actions=("Book it in advance", "Reach out to a close friend monthly"),
            time_slots="Fixed weekly slot",
            color="#D4A574",
        ),
    }
    tasks = (
        TaskDefinition("deep-work", "Deep work", GoalCategory.WORK, 2, 2, "Deep work"),
        TaskDefinition("user-touchpoint", "User touchpoint", GoalCategory.WORK, 1, 5, "Users"),
        TaskDefinition("ship", "Ship a release", GoalCategory.BUILD, 3, 1, "Ship"),
        TaskDefinition("growth-experiment", "Growth experiment", GoalCategory.BUILD, 1, 1, "Growth"),
        TaskDefinition("strength-training", "Strength training", GoalCategory.HEALTH, 1, 3, "Strength"),
        TaskDefinition("zone2-cardio", "Zone 2 cardio", GoalCategory.HEALTH, 0.5, 2, "Zone2"),
        TaskDefinition("rehab", "Shoulder/neck rehab", GoalCategory.HEALTH, 0.17, 7, "Rehab"),
        TaskDefinition("quality-time", "Quality time", GoalCategory.RELATIONSHIPS, 1, 1, "Together"),
    )
    return GoalsConfig(
        year=2026,
        theme="Focus + compounding + body repair",
        goals=MappingProxyType(goals),
        tasks=tasks,
        bottom_lines=(
            "Never push more than 2 main projects at once (1 Work + 1 Build)",
            "Don't substitute learning or planning for shipping",
            "Don't train through shoulder/neck pain; don't sit for hours on end",
            "Keep the phone from fragmenting attention on workdays",
            "Never skip the weekly review",
        ),
    )


def load_config(path: str | Path | None = None) -> GoalsConfig:
    """Load goals/tasks from a JSON file, or the built-in plan if *path* is None.

    Raises ValueError if the file is malformed.
    """
    if path is None:
        return default_config()
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        config = GoalsConfig.from_dict(raw)
    except (OSError, KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid goals config {path}: {e}") from e
    logger.info("Loaded %d goals, %d tasks from %s", len(config.goals), len(config.tasks), path)
    return config


# ---------------------------------------------------------------------------
# Environment settings
# ---------------------------------------------------------------------------


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path | None) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    db_path: Path = field(default_factory=lambda: Path(DEFAULT_DB_FILE))
    config_path: Path | None = None
    log_level: str = "WARNING"
    max_weeks: int = DEFAULT_MAX_WEEKS

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            db_path=_env_path(_k("DB"), Path(DEFAULT_DB_FILE)),
            config_path=_env_path(_k("CONFIG"), None),
            log_level=os.getenv(_k("LOG_LEVEL"), "WARNING").upper(),
            max_weeks=max(1, _env_int(_k("MAX_WEEKS"), DEFAULT_MAX_WEEKS)),
        )
