import json

from yearcompass.events import EXTERNAL, EventBus, StorageWatcher, StoreChanged
from yearcompass.grid import CalendarGrid
from yearcompass.persistence import STORAGE_KEY, WeekKeyStore


def test_subscribe_and_unsubscribe():
    bus = EventBus()
    seen = []
    unsubscribe = bus.subscribe(seen.append)
    bus.publish(StoreChanged(STORAGE_KEY))
    unsubscribe()
    unsubscribe()
    bus.publish(StoreChanged(STORAGE_KEY))
    assert seen == [StoreChanged(STORAGE_KEY)]


def test_failing_listener_does_not_block_others():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(broken)
    bus.subscribe(seen.append)
    bus.publish(StoreChanged(STORAGE_KEY))
    assert len(seen) == 1


def test_watcher_reports_changes_from_another_writer(config, db_path):
    bus = EventBus()
    seen = []
    bus.subscribe(seen.append)
    watcher = StorageWatcher(db_path, bus)
    assert watcher.poll() == []

    # a second, independent view of the same file
    other = CalendarGrid(config, WeekKeyStore(db_path), EventBus(), year=2026, week=2)
    other.place("ship", 5, 10)

    assert watcher.poll() == [STORAGE_KEY]
    assert seen == [StoreChanged(STORAGE_KEY, origin=EXTERNAL)]
    assert watcher.poll() == []


def test_watcher_carries_the_changed_key(db_path):
    bus = EventBus()
    seen = []
    bus.subscribe(seen.append)
    db_path.write_text(json.dumps({STORAGE_KEY: {}, "prefs": {"theme": "light"}}))
    watcher = StorageWatcher(db_path, bus)

    db_path.write_text(json.dumps({STORAGE_KEY: {}, "prefs": {"theme": "dark"}}))
    assert watcher.poll() == ["prefs"]
    assert [e.storage_key for e in seen] == ["prefs"]


def test_watcher_sync_swallows_pending_changes(store, db_path):
    bus = EventBus()
    watcher = StorageWatcher(db_path, bus)
    store.save({"2026-W1": []})
    watcher.sync()
    assert watcher.poll() == []


def test_watcher_survives_corrupt_file(db_path):
    bus = EventBus()
    watcher = StorageWatcher(db_path, bus)
    db_path.write_text("{broken")
    assert watcher.poll() == []
