from datetime import date, timedelta

import pytest

from yearcompass.events import StoreChanged
from yearcompass.grid import CalendarGrid, get_current_week, get_week_dates, instance_occupies, week_options
from yearcompass.models import GoalCategory
from yearcompass.persistence import STORAGE_KEY


@pytest.mark.parametrize("year", range(2020, 2032))
def test_week_dates_start_monday_and_are_consecutive(year):
    dates = get_week_dates(year, 1)
    assert dates[0].weekday() == 0
    assert len(dates) == 7
    assert all(b - a == timedelta(days=1) for a, b in zip(dates, dates[1:]))
    # first Monday on or after Jan 1
    assert date(year, 1, 1) <= dates[0] <= date(year, 1, 7)


def test_week_dates_known_values():
    # 2026-01-01 is a Thursday, first Monday is Jan 5
    assert get_week_dates(2026, 1)[0] == date(2026, 1, 5)
    assert get_week_dates(2026, 2)[0] == date(2026, 1, 12)
    # 2024-01-01 is a Monday
    assert get_week_dates(2024, 1)[0] == date(2024, 1, 1)
    # last modeled week may spill into the next year
    assert get_week_dates(2026, 52)[6] == date(2027, 1, 3)


def test_current_week():
    # Jan 1 2026 is a Thursday (Sunday-based index 4)
    assert get_current_week(date(2026, 1, 1)).week == 1
    assert get_current_week(date(2026, 1, 3)).week == 1
    assert get_current_week(date(2026, 1, 4)).week == 2
    cw = get_current_week(date(2026, 10, 19))
    assert (cw.year, cw.week, cw.total_weeks) == (2026, 43, 52)
    assert cw.day_of_week == 0


def test_current_week_capped_at_52():
    assert get_current_week(date(2026, 12, 31)).week == 52


def test_week_options_labels():
    options = week_options(2026)
    assert len(options) == 52
    assert options[0] == (1, "Week 1: Jan 5 - Jan 11")


def test_cell_query_spans_duration(grid):
    inst = grid.add("deep-work", "work", "Deep work", day_index=2, start_hour=9, duration=2)
    assert grid.tasks_for_cell(2, 9) == [inst]
    assert grid.tasks_for_cell(2, 10) == [inst]
    assert grid.tasks_for_cell(2, 11) == []
    assert grid.tasks_for_cell(1, 9) == []


def test_overlapping_placements_are_kept(grid):
    a = grid.place("deep-work", 0, 9)
    b = grid.place("user-touchpoint", 0, 10)
    assert grid.tasks_for_cell(0, 10) == [a, b]


def test_place_uses_definition_defaults(grid):
    inst = grid.place("ship", 5, 10)
    assert inst.task_id == "ship"
    assert inst.category is GoalCategory.BUILD
    assert inst.name == "Ship a release"
    assert inst.duration == 3
    assert grid.place("ship", 5, 14, duration=1).duration == 1


def test_place_unknown_definition(grid):
    with pytest.raises(ValueError):
        grid.place("nap", 0, 9)


def test_add_rejects_out_of_grid(grid):
    with pytest.raises(ValueError):
        grid.place("ship", 0, 20)  # 20 + 3 > 22
    with pytest.raises(ValueError):
        grid.place("ship", 7, 9)
    assert grid.tasks == []


def test_mutations_persist_and_notify(grid, store, bus):
    events = []
    bus.subscribe(events.append)

    inst = grid.place("strength-training", 0, 18)
    assert store.load_week("2026-W2") == [inst]

    grid.update(inst.id, day_index=2, start_hour=18.5)
    assert store.load_week("2026-W2")[0].day_index == 2
    assert store.load_week("2026-W2")[0].start_hour == 18.5

    assert grid.remove(inst.id) is True
    assert store.load_week("2026-W2") == []

    assert events == [StoreChanged(STORAGE_KEY)] * 3


def test_update_rejects_immutable_fields(grid):
    inst = grid.place("ship", 5, 10)
    with pytest.raises(ValueError):
        grid.update(inst.id, task_id="rehab")
    with pytest.raises(ValueError):
        grid.update(inst.id, category="health")


def test_update_validates_result(grid):
    inst = grid.place("ship", 5, 10)
    with pytest.raises(ValueError):
        grid.update(inst.id, duration=20)
    assert grid.get(inst.id).duration == 3


def test_update_unknown_id_is_noop(grid, bus):
    events = []
    bus.subscribe(events.append)
    assert grid.update("nope", start_hour=9) is None
    assert events == []


def test_remove_unknown_id_is_noop(grid, store, bus):
    inst = grid.place("ship", 5, 10)
    before = store.load()
    events = []
    bus.subscribe(events.append)

    assert grid.remove("does-not-exist") is False
    assert store.load() == before
    assert grid.tasks == [inst]
    assert events == []


def test_weeks_are_isolated(config, store, bus):
    w2 = CalendarGrid(config, store, bus, year=2026, week=2)
    w2.place("ship", 5, 10)
    w3 = CalendarGrid(config, store, bus, year=2026, week=3)
    assert w3.tasks == []
    w3.place("rehab", 0, 21)
    assert len(store.load_week("2026-W2")) == 1
    assert len(store.load_week("2026-W3")) == 1


def test_navigation(grid):
    grid.place("ship", 5, 10)
    grid.next_week()
    assert grid.week_key == "2026-W3"
    assert grid.tasks == []
    grid.prev_week()
    assert grid.week_key == "2026-W2"
    assert len(grid.tasks) == 1

    grid.select_week(2026, 1)
    grid.prev_week()
    assert grid.week == 1
    grid.select_week(2026, 52)
    grid.next_week()
    assert grid.week == 52

    with pytest.raises(ValueError):
        grid.select_week(2026, 53)

    grid.go_to_current_week(date(2026, 10, 19))
    assert grid.week_key == "2026-W43"


def test_save_failure_keeps_memory_authoritative(config, tmp_path, bus):
    from yearcompass.persistence import WeekKeyStore

    store = WeekKeyStore(tmp_path / "no-such-dir" / "db.json")
    grid = CalendarGrid(config, store, bus, year=2026, week=2)
    inst = grid.place("ship", 5, 10)
    assert grid.tasks == [inst]


def test_instance_occupies_matches_cell_query(grid):
    inst = grid.add("deep-work", "work", "Deep work", day_index=2, start_hour=9, duration=2)
    for hour in range(6, 22):
        assert instance_occupies(inst, 2, hour) == (inst in grid.tasks_for_cell(2, hour))
    assert [h for h in range(6, 22) if instance_occupies(inst, 2, h)] == [9, 10]


def test_nan_placement_rejected(grid, store):
    with pytest.raises(ValueError):
        grid.place("ship", 5, 10, duration=float("nan"))
    inst = grid.place("ship", 5, 10)
    with pytest.raises(ValueError):
        grid.update(inst.id, start_hour=float("nan"))
    assert store.load_week("2026-W2") == [inst]
