"""Weekly calendar grid: week/date arithmetic and task placement."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import date, timedelta

from yearcompass.config import GoalsConfig
from yearcompass.events import EventBus, StoreChanged
from yearcompass.models import (
    GRID_END_HOUR,
    GRID_START_HOUR,
    TOTAL_WEEKS,
    CalendarTaskInstance,
    CurrentWeek,
    GoalCategory,
    WeekKey,
    validate_placement,
)
from yearcompass.persistence import WeekKeyStore

logger = logging.getLogger(__name__)

HOURS = list(range(GRID_START_HOUR, GRID_END_HOUR))
DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

MUTABLE_FIELDS = frozenset({"name", "day_index", "start_hour", "duration"})


# ---------------------------------------------------------------------------
# Week arithmetic
# ---------------------------------------------------------------------------


def get_week_dates(year: int, week: int) -> list[date]:
    """The seven dates (Monday first) of *week* in *year*.

    Week 1 starts on the first Monday on or after January 1st. This is
    not ISO-8601 week numbering.
    """
    jan1 = date(year, 1, 1)
    days_to_first_monday = (8 - jan1.isoweekday()) % 7
    week_start = jan1 + timedelta(days=days_to_first_monday + (week - 1) * 7)
    return [week_start + timedelta(days=i) for i in range(7)]


def get_current_week(today: date | None = None) -> CurrentWeek:
    """Week number of *today* (defaults to the local date), capped at 52."""
    today = today or date.today()
    jan1 = date(today.year, 1, 1)
    days = (today - jan1).days
    jan1_weekday = jan1.isoweekday() % 7  # Sunday = 0
    week = math.ceil((days + jan1_weekday + 1) / 7)
    return CurrentWeek(
        year=today.year,
        week=min(max(week, 1), TOTAL_WEEKS),
        day_of_week=today.weekday(),
    )


def _short_date(d: date) -> str:
    return f"{d:%b} {d.day}"


def week_options(year: int) -> list[tuple[int, str]]:
    """(week, "Week 3: Jan 19 - Jan 25") for every week of *year*."""
    options = []
    for w in range(1, TOTAL_WEEKS + 1):
        dates = get_week_dates(year, w)
        options.append((w, f"Week {w}: {_short_date(dates[0])} - {_short_date(dates[6])}"))
    return options


def instance_occupies(instance: CalendarTaskInstance, day_index: int, hour: float) -> bool:
    return instance.occupies(day_index, hour)


# ---------------------------------------------------------------------------
# Grid model
# ---------------------------------------------------------------------------


class CalendarGrid:
    """One week of placed tasks, backed by a WeekKeyStore.

    The in-memory list is authoritative for the session: every mutation
    writes the whole mapping back and then publishes ``StoreChanged``,
    whether or not the write succeeded. Overlapping placements are allowed.
    """

    def __init__(
        self,
        config: GoalsConfig,
        store: WeekKeyStore,
        bus: EventBus | None = None,
        year: int | None = None,
        week: int | None = None,
    ):
        self.config = config
        self.store = store
        self.bus = bus if bus is not None else EventBus()
        current = get_current_week()
        self.year = current.year if year is None else year
        self.week = current.week if week is None else week
        _check_week(self.week)
        self.tasks: list[CalendarTaskInstance] = []
        self.reload()

    @property
    def week_key(self) -> str:
        return str(WeekKey(self.year, self.week))

    @property
    def dates(self) -> list[date]:
        return get_week_dates(self.year, self.week)

    def reload(self) -> None:
        self.tasks = self.store.load_week(self.week_key)

    # --- navigation ---

    def select_week(self, year: int, week: int) -> None:
        _check_week(week)
        self.year, self.week = year, week
        self.reload()

    def prev_week(self) -> None:
        if self.week > 1:
            self.select_week(self.year, self.week - 1)

    def next_week(self) -> None:
        if self.week < TOTAL_WEEKS:
            self.select_week(self.year, self.week + 1)

    def go_to_current_week(self, today: date | None = None) -> None:
        current = get_current_week(today)
        self.select_week(current.year, current.week)

    # --- queries ---

    def get(self, instance_id: str) -> CalendarTaskInstance | None:
        return next((t for t in self.tasks if t.id == instance_id), None)

    def tasks_for_cell(self, day_index: int, hour: float) -> list[CalendarTaskInstance]:
        return [t for t in self.tasks if t.occupies(day_index, hour)]

    def tasks_for_day(self, day_index: int) -> list[CalendarTaskInstance]:
        return sorted(
            (t for t in self.tasks if t.day_index == day_index),
            key=lambda t: t.start_hour,
        )

    # --- mutations ---

    def add(
        self,
        task_id: str,
        category: GoalCategory | str,
        name: str,
        day_index: int,
        start_hour: float,
        duration: float,
    ) -> CalendarTaskInstance:
        """Append a new instance with a fresh id."""
        validate_placement(day_index, start_hour, duration)
        instance = CalendarTaskInstance(
            id=self.store.generate_id(t.id for t in self.tasks),
            task_id=task_id,
            category=GoalCategory(category),
            name=name,
            day_index=day_index,
            start_hour=start_hour,
            duration=duration,
        )
        self.tasks.append(instance)
        self._commit()
        logger.info("Placed %s (%s) on %s day %d at %g", instance.task_id, instance.id, self.week_key, day_index, start_hour)
        return instance

    def place(
        self,
        task_id: str,
        day_index: int,
        start_hour: float,
        duration: float | None = None,
    ) -> CalendarTaskInstance:
        """Drop a task definition onto cell (day_index, start_hour)."""
        definition = self.config.task(task_id)
        if definition is None:
            raise ValueError(f"Unknown task definition {task_id}")
        return self.add(
            task_id=definition.id,
            category=definition.category,
            name=definition.name,
            day_index=day_index,
            start_hour=start_hour,
            duration=definition.default_duration if duration is None else duration,
        )

    def update(self, instance_id: str, **fields) -> CalendarTaskInstance | None:
        """Merge *fields* into an instance. Unknown ids are ignored."""
        bad = set(fields) - MUTABLE_FIELDS
        if bad:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(bad))}")
        for i, t in enumerate(self.tasks):
            if t.id != instance_id:
                continue
            updated = replace(t, **fields)
            validate_placement(updated.day_index, updated.start_hour, updated.duration)
            self.tasks[i] = updated
            self._commit()
            return updated
        logger.debug("update: no instance %s in %s", instance_id, self.week_key)
        return None

    def remove(self, instance_id: str) -> bool:
        """Delete an instance. Returns False (and writes nothing) if absent."""
        remaining = [t for t in self.tasks if t.id != instance_id]
        if len(remaining) == len(self.tasks):
            logger.debug("remove: no instance %s in %s", instance_id, self.week_key)
            return False
        self.tasks = remaining
        self._commit()
        return True

    def _commit(self) -> None:
        mapping = self.store.load()
        mapping[self.week_key] = list(self.tasks)
        self.store.save(mapping)
        self.bus.publish(StoreChanged(self.store.storage_key))


def _check_week(week: int) -> None:
    if not 1 <= week <= TOTAL_WEEKS:
        raise ValueError(f"week must be 1-{TOTAL_WEEKS}, got {week}")
