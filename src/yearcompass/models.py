"""Goal, task definition and calendar instance models."""

from __future__ import annotations

import enum
import math
import re
from dataclasses import dataclass, field

GRID_START_HOUR = 6
GRID_END_HOUR = 22  # exclusive: last visible row is 21:00
DAYS_PER_WEEK = 7
TOTAL_WEEKS = 52

_WEEK_KEY_RE = re.compile(r"^(\d{1,4})-W([1-9]\d*)$")


class GoalCategory(enum.StrEnum):
    WORK = "work"
    BUILD = "build"
    HEALTH = "health"
    RELATIONSHIPS = "relationships"


@dataclass(frozen=True)
class Goal:
    """Display metadata for one annual goal."""

    id: GoalCategory
    name: str
    name_en: str
    objective: str
    color: str
    subtitle: str | None = None
    objective_detail: str | None = None
    metrics: tuple[str, ...] = ()
    actions: tuple[str, ...] = ()
    time_slots: str | None = None

    @classmethod
    def from_dict(cls, d: dict) -> Goal:
        return cls(
            id=GoalCategory(d["id"]),
            name=d["name"],
            name_en=d.get("name_en", d["name"].upper()),
            objective=d.get("objective", ""),
            color=d.get("color", "#9CA3AF"),
            subtitle=d.get("subtitle"),
            objective_detail=d.get("objective_detail"),
            metrics=tuple(d.get("metrics", [])),
            actions=tuple(d.get("actions", [])),
            time_slots=d.get("time_slots"),
        )


@dataclass(frozen=True)
class TaskDefinition:
    """A recurring task template that can be placed on the calendar."""

    id: str
    name: str
    category: GoalCategory
    default_duration: float
    weekly_target: int
    name_short: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> TaskDefinition:
        return cls(
            id=d["id"],
            name=d["name"],
            category=GoalCategory(d["category"]),
            default_duration=float(d["default_duration"]),
            weekly_target=int(d["weekly_target"]),
            name_short=d.get("name_short", d["name"]),
        )


@dataclass
class CalendarTaskInstance:
    """A task definition placed on a specific day and hour of one week."""

    id: str
    task_id: str
    category: GoalCategory
    name: str
    day_index: int  # 0 = Monday
    start_hour: float
    duration: float

    def __post_init__(self):
        self.category = GoalCategory(self.category)

    @property
    def end_hour(self) -> float:
        return self.start_hour + self.duration

    def occupies(self, day_index: int, hour: float) -> bool:
        return self.day_index == day_index and self.start_hour <= hour < self.end_hour

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "category": self.category.value,
            "name": self.name,
            "dayIndex": self.day_index,
            "startHour": self.start_hour,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, d: dict) -> CalendarTaskInstance:
        return cls(
            id=str(d["id"]),
            task_id=str(d["taskId"]),
            category=GoalCategory(d["category"]),
            name=str(d.get("name", "")),
            day_index=int(d["dayIndex"]),
            start_hour=float(d["startHour"]),
            duration=float(d["duration"]),
        )


@dataclass(frozen=True, order=True)
class WeekKey:
    """Composite ``(year, week)`` identifier, serialized as ``"2026-W7"``."""

    year: int
    week: int

    def __str__(self) -> str:
        return f"{self.year}-W{self.week}"

    @classmethod
    def parse(cls, raw: str) -> WeekKey | None:
        """Return the key for ``"<year>-W<week>"``, or None if it doesn't parse."""
        m = _WEEK_KEY_RE.fullmatch(raw)
        if m is None:
            return None
        return cls(int(m.group(1)), int(m.group(2)))


@dataclass
class CurrentWeek:
    year: int
    week: int
    total_weeks: int = TOTAL_WEEKS
    day_of_week: int = field(default=0)  # 0 = Monday


def validate_placement(day_index: int, start_hour: float, duration: float) -> None:
    """Raise ValueError if a placement falls outside the visible grid."""
    if not (math.isfinite(start_hour) and math.isfinite(duration)):
        raise ValueError(f"start_hour and duration must be finite, got {start_hour} and {duration}")
    if not 0 <= day_index < DAYS_PER_WEEK:
        raise ValueError(f"day_index must be 0-6, got {day_index}")
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")
    if start_hour < GRID_START_HOUR:
        raise ValueError(f"start_hour {start_hour} is before {GRID_START_HOUR}:00")
    if start_hour + duration > GRID_END_HOUR:
        raise ValueError(
            f"task ending at {start_hour + duration:g} runs past {GRID_END_HOUR}:00"
        )
