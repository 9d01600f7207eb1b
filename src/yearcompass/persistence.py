"""JSON file persistence for per-week calendar task lists."""

from __future__ import annotations

import json
import logging
import secrets
import string
from collections.abc import Iterable
from pathlib import Path

from yearcompass.config import DEFAULT_DB_FILE
from yearcompass.models import CalendarTaskInstance

logger = logging.getLogger(__name__)

STORAGE_KEY = "yearcompass-calendar-tasks"

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 9

WeekMapping = dict[str, list[CalendarTaskInstance]]


def read_records(db_path: Path) -> dict:
    """Return every record in the database file ({} if missing or unreadable)."""
    try:
        raw = json.loads(db_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Could not read %s: %s", db_path, e)
        return {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring %s: top level is not an object", db_path)
        return {}
    return raw


class WeekKeyStore:
    """Reads and writes the week-key -> task instances mapping.

    The mapping lives under a single record (``STORAGE_KEY``) in a JSON
    file; other records in the same file are left alone. Neither ``load``
    nor ``save`` raise: bad data reads as empty and failed writes are
    logged and reported through the return value.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_FILE, storage_key: str = STORAGE_KEY):
        self.db_path = Path(db_path)
        self.storage_key = storage_key

    def load(self) -> WeekMapping:
        """Return {week_key: [CalendarTaskInstance, ...]}."""
        record = read_records(self.db_path).get(self.storage_key)
        if record is None:
            return {}
        try:
            if not isinstance(record, dict):
                raise TypeError("record is not an object")
            mapping: WeekMapping = {}
            for week_key, items in record.items():
                if not isinstance(items, list):
                    raise TypeError(f"{week_key} is not a list")
                mapping[week_key] = [CalendarTaskInstance.from_dict(d) for d in items]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed %s in %s, treating as empty: %s", self.storage_key, self.db_path, e)
            return {}
        return mapping

    def load_week(self, week_key: str) -> list[CalendarTaskInstance]:
        return self.load().get(week_key, [])

    def save(self, mapping: WeekMapping) -> bool:
        """Persist the whole mapping. Returns False if the write failed."""
        records = read_records(self.db_path)
        try:
            records[self.storage_key] = {
                key: [t.to_dict() for t in tasks] for key, tasks in mapping.items()
            }
            self.db_path.write_text(json.dumps(records, indent=4, ensure_ascii=False, allow_nan=False), encoding="utf-8")
        except (AttributeError, OSError, TypeError, ValueError) as e:
            logger.warning("Failed to save %s to %s: %s", self.storage_key, self.db_path, e)
            return False
        logger.debug("Saved %d weeks to %s", len(mapping), self.db_path)
        return True

    def generate_id(self, existing: Iterable[str] = ()) -> str:
        """Generate a random 9-character id not present in *existing*."""
        taken = set(existing)
        while True:
            candidate = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))
            if candidate not in taken:
                return candidate
