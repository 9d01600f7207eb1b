"""MCP server for YearCompass: exposes the weekly calendar to AI assistants."""

from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP

from yearcompass.config import Settings, load_config
from yearcompass.grid import DAY_NAMES, CalendarGrid, get_current_week
from yearcompass.logging_setup import setup_logging
from yearcompass.persistence import WeekKeyStore
from yearcompass.progress import ProgressAggregator
from yearcompass.trends import TrendSeriesBuilder, calculate_chart_padding

mcp = FastMCP(
    "yearcompass",
    instructions="""\
YearCompass tracks recurring weekly tasks against four annual goals (work, \
build, health, relationships). Each goal has task definitions with a weekly \
target count (e.g. "strength-training" 3x per week).

Key concepts:
- **Week**: weeks are numbered 1-52. Week 1 starts on the first Monday on or \
after January 1st. Omit year/week to use the current week.
- **Placing a task**: put a task definition on a day (0 = Monday .. 6 = Sunday) \
at a start hour between 6 and 22. Each placed instance counts once toward the \
definition's weekly target.
- **Progress**: completed / target per goal for one week. Over 100% is possible.
- **Trends**: per-goal completion of the most recent non-empty weeks of a \
year, capped at 100%.

Typical workflow:
1. list_task_definitions to see what can be placed
2. place_task to schedule it, get_week to review the week
3. get_progress for the week's standing, get_trends for the longer view
""",
)


def _settings() -> Settings:
    return Settings.from_env()


def _get_store() -> WeekKeyStore:
    return WeekKeyStore(_settings().db_path)


def _open_grid(year: int | None, week: int | None) -> CalendarGrid:
    current = get_current_week()
    return CalendarGrid(
        load_config(_settings().config_path),
        _get_store(),
        year=current.year if year is None else year,
        week=current.week if week is None else week,
    )


@mcp.tool()
def list_task_definitions() -> str:
    """List every task definition with its goal, default duration and weekly target."""
    try:
        config = load_config(_settings().config_path)
    except ValueError as e:
        return f"Error: {e}"
    result = [
        {
            "id": t.id,
            "name": t.name,
            "goal": t.category.value,
            "default_duration_hrs": t.default_duration,
            "weekly_target": t.weekly_target,
        }
        for t in config.tasks
    ]
    return json.dumps(result, indent=2)


@mcp.tool()
def get_week(year: int | None = None, week: int | None = None) -> str:
    """Get the tasks placed in a week, with the week's dates.

    Args:
        year: Calendar year (default: current)
        week: Week number 1-52 (default: current)
    """
    try:
        grid = _open_grid(year, week)
    except ValueError as e:
        return f"Error: {e}"
    dates = grid.dates
    result = {
        "week_key": grid.week_key,
        "days": [f"{name} {d.isoformat()}" for name, d in zip(DAY_NAMES, dates)],
        "tasks": [t.to_dict() for t in grid.tasks],
    }
    return json.dumps(result, indent=2)


@mcp.tool()
def place_task(
    task_id: str,
    day_index: int,
    start_hour: float,
    duration_hrs: float | None = None,
    year: int | None = None,
    week: int | None = None,
) -> str:
    """Place a task definition on the calendar.

    Args:
        task_id: Task definition id (e.g. "deep-work")
        day_index: 0 = Monday .. 6 = Sunday
        start_hour: Start hour, 6-21 (fractions allowed, e.g. 18.5)
        duration_hrs: Duration in hours (default: the definition's default)
        year: Calendar year (default: current)
        week: Week number 1-52 (default: current)
    """
    try:
        grid = _open_grid(year, week)
        inst = grid.place(task_id, day_index, start_hour, duration_hrs)
    except ValueError as e:
        return f"Error: {e}"
    return f"Placed '{inst.name}' as {inst.id} in {grid.week_key}"


@mcp.tool()
def update_task(
    instance_id: str,
    day_index: int | None = None,
    start_hour: float | None = None,
    duration_hrs: float | None = None,
    name: str | None = None,
    year: int | None = None,
    week: int | None = None,
) -> str:
    """Reschedule or resize a placed task. Only provided fields are changed.

    Args:
        instance_id: Id of the placed task (from get_week)
        day_index: New day, 0 = Monday .. 6 = Sunday
        start_hour: New start hour
        duration_hrs: New duration in hours
        name: New display name
        year: Calendar year (default: current)
        week: Week number 1-52 (default: current)
    """
    fields: dict = {}
    if day_index is not None:
        fields["day_index"] = day_index
    if start_hour is not None:
        fields["start_hour"] = start_hour
    if duration_hrs is not None:
        fields["duration"] = duration_hrs
    if name is not None:
        fields["name"] = name
    try:
        grid = _open_grid(year, week)
        updated = grid.update(instance_id, **fields)
    except ValueError as e:
        return f"Error: {e}"
    if updated is None:
        return f"No task {instance_id} in {grid.week_key}; nothing changed."
    return f"Updated {instance_id}."


@mcp.tool()
def remove_task(instance_id: str, year: int | None = None, week: int | None = None) -> str:
    """Remove a placed task. Removing an unknown id changes nothing.

    Args:
        instance_id: Id of the placed task (from get_week)
        year: Calendar year (default: current)
        week: Week number 1-52 (default: current)
    """
    try:
        grid = _open_grid(year, week)
    except ValueError as e:
        return f"Error: {e}"
    if grid.remove(instance_id):
        return f"Removed {instance_id}."
    return f"No task {instance_id} in {grid.week_key}; nothing changed."


@mcp.tool()
def get_progress(year: int | None = None, week: int | None = None) -> str:
    """Get completed/target/percentage per goal and per task for a week.

    Args:
        year: Calendar year (default: current)
        week: Week number 1-52 (default: current)
    """
    try:
        grid = _open_grid(year, week)
    except ValueError as e:
        return f"Error: {e}"
    aggregator = ProgressAggregator(grid.config)
    result = {
        "week_key": grid.week_key,
        "goals": {c.value: p.to_dict() for c, p in aggregator.goal_progress(grid.tasks).items()},
        "tasks": {tid: p.to_dict() for tid, p in aggregator.task_progress(grid.tasks).items()},
    }
    return json.dumps(result, indent=2)


@mcp.tool()
def get_trends(year: int | None = None, max_weeks: int | None = None) -> str:
    """Get weekly per-goal completion (capped at 100%) for the most recent weeks with data.

    Args:
        year: Calendar year (default: current)
        max_weeks: How many recent weeks to include (default: 12)
    """
    settings = _settings()
    try:
        builder = TrendSeriesBuilder(
            load_config(settings.config_path),
            _get_store(),
            max_weeks=settings.max_weeks if max_weeks is None else max_weeks,
            year=year,
        )
    except ValueError as e:
        return f"Error: {e}"
    series = builder.series
    result = series.to_dict()
    pad = calculate_chart_padding(len(series))
    result["padding"] = {"left": pad.left, "right": pad.right}
    return json.dumps(result, indent=2)


def main():
    """Entry point for the MCP server."""
    setup_logging(_settings().log_level)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
