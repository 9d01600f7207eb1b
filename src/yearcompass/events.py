"""Store-changed notifications.

Two channels deliver the same ``StoreChanged`` event:

* ``EventBus``: in-process. The calendar publishes after every mutation.
* ``StorageWatcher``: cross-process. Polls the database file and publishes
  one event per record that another writer changed.

Receivers re-read the store on notification and ignore events for storage
keys they don't own.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from yearcompass.persistence import read_records

logger = logging.getLogger(__name__)

LOCAL = "local"
EXTERNAL = "external"


@dataclass(frozen=True)
class StoreChanged:
    storage_key: str
    origin: str = LOCAL


Listener = Callable[[StoreChanged], None]


class EventBus:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: StoreChanged) -> None:
        # Copy so listeners may unsubscribe while being notified.
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %s", listener, event)

    def __len__(self) -> int:
        return len(self._listeners)


class StorageWatcher:
    """Detects writes made to the database file by another process."""

    def __init__(self, db_path: str | Path, bus: EventBus):
        self.db_path = Path(db_path)
        self.bus = bus
        self._snapshot = self._read()

    def _read(self) -> dict[str, str]:
        return {
            key: json.dumps(value, sort_keys=True)
            for key, value in read_records(self.db_path).items()
        }

    def sync(self) -> None:
        """Accept the file's current contents without publishing anything."""
        self._snapshot = self._read()

    def poll(self) -> list[str]:
        """Publish a StoreChanged for every record changed since the last poll."""
        current = self._read()
        changed = sorted(
            key
            for key in current.keys() | self._snapshot.keys()
            if current.get(key) != self._snapshot.get(key)
        )
        self._snapshot = current
        for key in changed:
            logger.debug("External change to %s in %s", key, self.db_path)
            self.bus.publish(StoreChanged(key, origin=EXTERNAL))
        return changed
