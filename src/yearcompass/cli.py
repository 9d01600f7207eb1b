"""Typer CLI for YearCompass."""

from __future__ import annotations

import json
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from yearcompass.config import GoalsConfig, Settings, load_config
from yearcompass.grid import DAY_NAMES, HOURS, CalendarGrid, get_current_week, week_options
from yearcompass.logging_setup import setup_logging
from yearcompass.persistence import WeekKeyStore
from yearcompass.progress import ProgressAggregator
from yearcompass.trends import TrendSeriesBuilder, calculate_chart_padding

app = typer.Typer(
    name="yearcompass",
    help="Weekly task calendar and goal progress tracker.",
    no_args_is_help=True,
)
console = Console()

YearOpt = Annotated[Optional[int], typer.Option("--year", "-y", help="Year (default: current)")]
WeekOpt = Annotated[Optional[int], typer.Option("--week", "-w", help="Week number 1-52 (default: current)")]


@app.callback()
def main() -> None:
    setup_logging(Settings.from_env().log_level)


def _get_settings() -> Settings:
    return Settings.from_env()


def _get_config() -> GoalsConfig:
    try:
        return load_config(_get_settings().config_path)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _get_store() -> WeekKeyStore:
    return WeekKeyStore(_get_settings().db_path)


def _open_grid(year: int | None, week: int | None) -> CalendarGrid:
    current = get_current_week()
    try:
        return CalendarGrid(
            _get_config(),
            _get_store(),
            year=current.year if year is None else year,
            week=current.week if week is None else week,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _complete_task_def(incomplete: str) -> list[str]:
    """Shell completion for task definition ids."""
    try:
        config = load_config(_get_settings().config_path)
    except ValueError:
        return []
    q = incomplete.lower()
    return [t.id for t in config.tasks if q in t.id or q in t.name.lower()]


def _parse_day(raw: str) -> int:
    """Accept 0-6 or a day name (Mon, tuesday, ...)."""
    raw = raw.strip()
    if raw.isdigit():
        return int(raw)
    prefix = raw[:3].lower()
    for i, name in enumerate(DAY_NAMES):
        if name.lower() == prefix:
            return i
    console.print(f"[red]Unknown day '{raw}'. Use 0-6 or Mon..Sun.[/red]")
    raise typer.Exit(1)


def _pct_style(pct: int) -> str:
    if pct >= 100:
        return "bold green"
    if pct >= 50:
        return "yellow"
    if pct > 0:
        return "red"
    return "dim"


# ---------------------------------------------------------------------------
# Configuration views
# ---------------------------------------------------------------------------


@app.command()
def goals() -> None:
    """Show the annual goals."""
    config = _get_config()
    console.print(f"\n[bold]{config.year}[/bold]  {config.theme}")
    for goal in config.goals.values():
        console.print(f"\n[bold {goal.color}]{goal.name_en}[/]  {goal.name}"
                      + (f" [dim]({goal.subtitle})[/dim]" if goal.subtitle else ""))
        console.print(f"  Objective: {goal.objective}")
        for m in goal.metrics:
            console.print(f"  [dim]metric[/dim]  {m}")
        for a in goal.actions:
            console.print(f"  [dim]action[/dim]  {a}")
        if goal.time_slots:
            console.print(f"  Time slots: {goal.time_slots}")
    if config.bottom_lines:
        console.print("\n[bold]Bottom lines[/bold]")
        for line in config.bottom_lines:
            console.print(f"  - {line}")
    console.print()


@app.command()
def tasks() -> None:
    """List the task definitions that can be placed on the calendar."""
    config = _get_config()
    table = Table(title="Task definitions")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Goal")
    table.add_column("Duration (h)")
    table.add_column("Weekly target")
    for t in config.tasks:
        table.add_row(t.id, t.name, t.category.value, f"{t.default_duration:g}", str(t.weekly_target))
    console.print(table)


# ---------------------------------------------------------------------------
# Week navigation
# ---------------------------------------------------------------------------


@app.command()
def current() -> None:
    """Show the current week number."""
    cw = get_current_week()
    console.print(f"{cw.year} W{cw.week}/{cw.total_weeks}  ({DAY_NAMES[cw.day_of_week]})")


@app.command()
def weeks(year: YearOpt = None) -> None:
    """List every week of the year with its date range."""
    cw = get_current_week()
    year = cw.year if year is None else year
    for w, label in week_options(year):
        marker = "  [bold]<- current[/bold]" if (year, w) == (cw.year, cw.week) else ""
        console.print(f"{label}{marker}")


@app.command()
def week(year: YearOpt = None, week_number: WeekOpt = None) -> None:
    """Show the calendar grid for a week."""
    grid = _open_grid(year, week_number)
    config = grid.config

    table = Table(title=f"{grid.year} W{grid.week}")
    table.add_column("")
    for name, d in zip(DAY_NAMES, grid.dates):
        table.add_column(f"{name} {d.day}")
    for hour in HOURS:
        cells = []
        for day in range(7):
            occupants = grid.tasks_for_cell(day, hour)
            cells.append(", ".join(
                f"[{config.goals[t.category].color}]{t.name}[/]" if t.category in config.goals else t.name
                for t in occupants
            ))
        table.add_row(f"{hour:02d}:00", *cells)
    console.print(table)

    if not grid.tasks:
        console.print("[dim]No tasks placed this week.[/dim]")
        return
    for day in range(7):
        for t in grid.tasks_for_day(day):
            console.print(
                f"  [dim]{t.id}[/dim]  {DAY_NAMES[day]} {t.start_hour:g}-{t.end_hour:g}  {t.name} [dim]({t.category.value})[/dim]"
            )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


@app.command()
def place(
    task_id: Annotated[str, typer.Argument(autocompletion=_complete_task_def, help="Task definition id")],
    day: Annotated[str, typer.Argument(help="Day: 0-6 or Mon..Sun")],
    hour: Annotated[float, typer.Argument(help="Start hour (e.g. 9 or 18.5)")],
    duration: Annotated[Optional[float], typer.Option("--duration", "-d", help="Hours (default: task's default)")] = None,
    year: YearOpt = None,
    week_number: WeekOpt = None,
) -> None:
    """Place a task definition on the calendar."""
    grid = _open_grid(year, week_number)
    try:
        inst = grid.place(task_id, _parse_day(day), hour, duration)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Placed '{inst.name}' as {inst.id} in {grid.week_key}[/green]")


@app.command()
def move(
    instance_id: str,
    day: Annotated[Optional[str], typer.Option(help="New day: 0-6 or Mon..Sun")] = None,
    hour: Annotated[Optional[float], typer.Option(help="New start hour")] = None,
    duration: Annotated[Optional[float], typer.Option("--duration", "-d", help="New duration in hours")] = None,
    name: Annotated[Optional[str], typer.Option(help="New display name")] = None,
    year: YearOpt = None,
    week_number: WeekOpt = None,
) -> None:
    """Reschedule or resize a placed task."""
    grid = _open_grid(year, week_number)
    fields: dict = {}
    if day is not None:
        fields["day_index"] = _parse_day(day)
    if hour is not None:
        fields["start_hour"] = hour
    if duration is not None:
        fields["duration"] = duration
    if name is not None:
        fields["name"] = name
    if not fields:
        console.print("[yellow]Nothing to change.[/yellow]")
        return
    try:
        updated = grid.update(instance_id, **fields)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if updated is None:
        console.print(f"[yellow]{instance_id} not found in {grid.week_key}, nothing changed.[/yellow]")
        return
    console.print(f"[green]Updated {instance_id}.[/green]")


@app.command()
def remove(instance_id: str, year: YearOpt = None, week_number: WeekOpt = None) -> None:
    """Remove a placed task."""
    grid = _open_grid(year, week_number)
    if grid.remove(instance_id):
        console.print(f"[green]Removed {instance_id}.[/green]")
    else:
        console.print(f"[yellow]{instance_id} not found in {grid.week_key}, nothing changed.[/yellow]")


# ---------------------------------------------------------------------------
# Progress and trends
# ---------------------------------------------------------------------------


@app.command()
def progress(year: YearOpt = None, week_number: WeekOpt = None) -> None:
    """Show completion per goal and per task for a week."""
    grid = _open_grid(year, week_number)
    config = grid.config
    aggregator = ProgressAggregator(config)
    by_goal = aggregator.goal_progress(grid.tasks)
    by_task = aggregator.task_progress(grid.tasks)

    table = Table(title=f"Progress {grid.week_key}")
    table.add_column("Goal / Task")
    table.add_column("Done")
    table.add_column("Target")
    table.add_column("%")
    for category, p in by_goal.items():
        table.add_row(
            f"[bold]{config.goals[category].name_en}[/bold]",
            str(p.completed),
            str(p.target),
            f"{p.percentage}%",
            style=_pct_style(p.percentage),
        )
        for t in config.tasks_in(category):
            tp = by_task[t.id]
            table.add_row(f"  {t.name}", str(tp.completed), str(tp.target), f"{tp.percentage}%")
    console.print(table)


@app.command()
def trends(
    year: YearOpt = None,
    max_weeks: Annotated[Optional[int], typer.Option("--max-weeks", "-n", help="Most recent weeks to show")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the series as JSON")] = False,
) -> None:
    """Show weekly completion trend per goal."""
    config = _get_config()
    settings = _get_settings()
    try:
        builder = TrendSeriesBuilder(
            config,
            _get_store(),
            max_weeks=settings.max_weeks if max_weeks is None else max_weeks,
            year=year,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    series = builder.series

    if as_json:
        payload = series.to_dict()
        pad = calculate_chart_padding(len(series))
        payload["padding"] = {"left": pad.left, "right": pad.right}
        typer.echo(json.dumps(payload, indent=2))
        return

    if not series.has_data:
        console.print("No trend data yet. Place some tasks on the calendar first.")
        return

    table = Table(title=f"{series.year} {series.range_label}")
    table.add_column("Week")
    for category in series.categories:
        table.add_column(config.goals[category].name_en)
    for point in series.points:
        table.add_row(
            point.week_label,
            *(f"[{_pct_style(point.values[c])}]{point.values[c]}%[/]" for c in series.categories),
        )
    console.print(table)

    missing = [config.goals[c].name_en for c, has in series.has_category_data.items() if not has]
    if missing:
        console.print(f"[dim]No data yet for: {', '.join(missing)}[/dim]")


