"""Multi-week completion trend built from every stored week of a year."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from yearcompass.config import DEFAULT_MAX_WEEKS, GoalsConfig
from yearcompass.events import EventBus, StoreChanged
from yearcompass.grid import get_current_week
from yearcompass.models import GoalCategory, WeekKey
from yearcompass.persistence import WeekKeyStore
from yearcompass.progress import ProgressAggregator

logger = logging.getLogger(__name__)


@dataclass
class TrendPoint:
    """Clamped completion percentages for one week."""

    week: int
    values: dict[GoalCategory, int]

    @property
    def week_label(self) -> str:
        return f"W{self.week}"

    def to_dict(self) -> dict:
        d: dict = {"week": self.week, "weekLabel": self.week_label}
        for category, value in self.values.items():
            d[category.value] = value
        return d


@dataclass
class TrendSeries:
    year: int
    categories: tuple[GoalCategory, ...]
    points: list[TrendPoint] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def has_category_data(self) -> dict[GoalCategory, bool]:
        return {
            c: any(p.values.get(c, 0) > 0 for p in self.points)
            for c in self.categories
        }

    @property
    def has_data(self) -> bool:
        return any(self.has_category_data.values())

    @property
    def range_label(self) -> str:
        if not self.points:
            return ""
        return f"W{self.points[0].week} - W{self.points[-1].week}"

    def latest(self, category: GoalCategory) -> int:
        if not self.points:
            return 0
        return self.points[-1].values.get(category, 0)

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "data": [p.to_dict() for p in self.points],
            "hasData": self.has_data,
            "hasCategoryData": {c.value: v for c, v in self.has_category_data.items()},
        }


@dataclass(frozen=True)
class ChartPadding:
    left: int
    right: int


def calculate_chart_padding(length: int) -> ChartPadding:
    """Symmetric side margins (percent of chart width) for *length* points."""
    if length == 0:
        return ChartPadding(0, 0)
    if length == 1:
        return ChartPadding(50, 50)
    if length == 2:
        return ChartPadding(35, 35)
    if length <= 4:
        return ChartPadding(20, 20)
    return ChartPadding(10, 10)


class TrendSeriesBuilder:
    """Scans the store for a year's non-empty weeks and charts the latest ones.

    With a bus, the cached ``series`` is rebuilt every time the store's
    record changes.
    """

    def __init__(
        self,
        config: GoalsConfig,
        store: WeekKeyStore,
        bus: EventBus | None = None,
        max_weeks: int = DEFAULT_MAX_WEEKS,
        year: int | None = None,
    ):
        if max_weeks < 1:
            raise ValueError("max_weeks must be at least 1")
        self.config = config
        self.store = store
        self.max_weeks = max_weeks
        self.year = get_current_week().year if year is None else year
        self.aggregator = ProgressAggregator(config)
        self._series: TrendSeries | None = None
        self._unsubscribe = bus.subscribe(self._on_store_changed) if bus is not None else None

    def build(self, year: int | None = None) -> TrendSeries:
        year = self.year if year is None else year
        mapping = self.store.load()
        weeks = []
        for raw_key, tasks in mapping.items():
            if not raw_key.startswith(f"{year}-W") or not tasks:
                continue
            key = WeekKey.parse(raw_key)
            if key is None:
                logger.debug("Skipping unparseable week key %r", raw_key)
                continue
            weeks.append((key.week, tasks))
        weeks.sort(key=lambda item: item[0])
        weeks = weeks[-self.max_weeks:]

        series = TrendSeries(year=year, categories=self.config.categories)
        for week, tasks in weeks:
            series.points.append(
                TrendPoint(week=week, values=self.aggregator.category_percentages(tasks, clamp=True))
            )
        return series

    @property
    def series(self) -> TrendSeries:
        if self._series is None:
            self._series = self.build()
        return self._series

    def refresh(self) -> TrendSeries:
        self._series = self.build()
        return self._series

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_store_changed(self, event: StoreChanged) -> None:
        if event.storage_key != self.store.storage_key:
            return
        self.refresh()
