"""JSON file backed key registry.

The file holds an array of records::

    [
      {"id": "k1", "key": "s3cret", "revoked": false},
      {"id": "k2", "key": "other", "revoked": false, "expires": "2030-01-01T00:00:00Z"}
    ]

Records missing ``id``, ``key`` or ``revoked`` (or holding the wrong types, or
an unparseable ``expires``) are skipped with a warning; the rest still load.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from jtokens.errors import KeyNotFoundError, KeyStoreError
from jtokens.keys import Key, KeyResolver

logger = logging.getLogger("jtokens.keystore")

REQUIRED_FIELDS = ("id", "key", "revoked")


def parse_expires(value: object) -> datetime | None:
    """Parse an ``expires`` field: ISO-8601 text or a unix timestamp.

    Naive date/times are taken as UTC. Raises ValueError when unparseable.
    """

    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("expires must be a date/time or a timestamp")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=UTC)
    if not isinstance(value, str):
        raise ValueError("expires must be a date/time or a timestamp")

    dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def parse_key_record(record: object) -> Key | None:
    """Build a Key from one registry record, or return None if it is unusable."""

    if not isinstance(record, Mapping):
        logger.warning("Skipping key record: expected an object, got %s", type(record).__name__)
        return None

    missing = [f for f in REQUIRED_FIELDS if f not in record]
    if missing:
        logger.warning("Skipping key record %r: missing %s", record.get("id"), ", ".join(missing))
        return None

    key_id, value, revoked = record["id"], record["key"], record["revoked"]
    if not isinstance(key_id, str) or not isinstance(value, str) or not isinstance(revoked, bool):
        logger.warning("Skipping key record %r: id/key must be strings, revoked a boolean", key_id)
        return None

    try:
        expires = parse_expires(record.get("expires"))
    except (ValueError, OverflowError, OSError) as e:
        logger.warning("Skipping key record %r: bad expires (%s)", key_id, e)
        return None

    return Key(id=key_id, expires=expires, value=value, revoked=revoked)


def _read_records(path: Path) -> list[Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise KeyStoreError(f"Missing keys file at: {path}") from e
    except OSError as e:
        raise KeyStoreError(f"Failed reading keys file: {path}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise KeyStoreError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, list):
        raise KeyStoreError(f"Expected a JSON array of key records in {path}")
    return data


class KeyStore(KeyResolver):
    """In-memory snapshot of a key registry.

    ``reload`` builds a fresh snapshot and swaps it in one assignment, so
    concurrent lookups see either the old or the new set of keys.
    """

    def __init__(self, records: Iterable[object] = (), *, path: Path | None = None) -> None:
        self.path = path
        self._keys = self._index(records)

    @classmethod
    def from_file(cls, path: Path | str) -> KeyStore:
        p = Path(path)
        return cls(_read_records(p), path=p)

    @staticmethod
    def _index(records: Iterable[object]) -> dict[str, Key]:
        keys: dict[str, Key] = {}
        for record in records:
            key = parse_key_record(record)
            if key is None:
                continue
            # Later records with the same id win.
            keys[key.id] = key
        return keys

    def reload(self) -> int:
        """Re-read the backing file; returns the number of usable keys."""

        if self.path is None:
            raise KeyStoreError("This key store was not loaded from a file")
        self._keys = self._index(_read_records(self.path))
        logger.info("Reloaded %d key(s) from %s", len(self._keys), self.path)
        return len(self._keys)

    def get_key_by_id(self, key_id: str) -> Key:
        key = self._keys.get(key_id)
        if key is None:
            raise KeyNotFoundError(f"Key not found: {key_id!r}")
        return key

    def ids(self) -> list[str]:
        return sorted(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key_id: object) -> bool:
        return key_id in self._keys
