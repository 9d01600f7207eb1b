import json

import pytest

from yearcompass import mcp_server


@pytest.fixture(autouse=True)
def db(monkeypatch, tmp_path):
    monkeypatch.setenv("YEARCOMPASS_DB", str(tmp_path / "db.json"))
    monkeypatch.delenv("YEARCOMPASS_CONFIG", raising=False)
    monkeypatch.delenv("YEARCOMPASS_MAX_WEEKS", raising=False)


def test_place_update_remove_round():
    msg = mcp_server.place_task("quality-time", 6, 19, year=2026, week=10)
    assert msg.startswith("Placed 'Quality time'")

    week = json.loads(mcp_server.get_week(year=2026, week=10))
    assert week["week_key"] == "2026-W10"
    assert week["days"][0] == "Mon 2026-03-09"
    [task] = week["tasks"]
    assert task["taskId"] == "quality-time"

    assert mcp_server.update_task(task["id"], start_hour=20, year=2026, week=10) == f"Updated {task['id']}."
    assert mcp_server.update_task(task["id"], start_hour=21.5, year=2026, week=10).startswith("Error:")
    assert mcp_server.remove_task(task["id"], year=2026, week=10) == f"Removed {task['id']}."
    assert "nothing changed" in mcp_server.remove_task(task["id"], year=2026, week=10)


def test_progress_and_trends():
    for day in range(3):
        mcp_server.place_task("strength-training", day, 18, year=2026, week=11)

    progress = json.loads(mcp_server.get_progress(year=2026, week=11))
    assert progress["tasks"]["strength-training"] == {"completed": 3, "target": 3, "percentage": 100}
    assert progress["goals"]["health"]["percentage"] == 25

    trends = json.loads(mcp_server.get_trends(year=2026))
    assert [p["week"] for p in trends["data"]] == [11]
    assert trends["hasData"] is True


def test_errors_are_returned_not_raised():
    assert mcp_server.place_task("nap", 0, 9, year=2026, week=1).startswith("Error:")
    assert mcp_server.get_week(year=2026, week=60).startswith("Error:")
    assert mcp_server.get_trends(max_weeks=0).startswith("Error:")


def test_list_task_definitions():
    defs = json.loads(mcp_server.list_task_definitions())
    assert {d["id"] for d in defs} >= {"ship", "rehab", "deep-work"}


def test_list_task_definitions_bad_config(monkeypatch, tmp_path):
    bad = tmp_path / "goals.json"
    bad.write_text("{not json")
    monkeypatch.setenv("YEARCOMPASS_CONFIG", str(bad))
    assert mcp_server.list_task_definitions().startswith("Error:")
