from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from models.records import SensorReading, ensure_utc
from services.errors import ReadingStoreError
from settings import get_settings

logger = logging.getLogger(__name__)


class ReadingStore:
    """Thread-safe in-memory reading store with optional JSON persistence."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[int, SensorReading] = {}
        self._next_id = 1
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_reading(self, reading: SensorReading) -> SensorReading:
        with self._lock:
            stored = replace(
                reading,
                timestamp=ensure_utc(reading.timestamp),
                reading_id=self._next_id,
            )
            self._items[stored.reading_id] = stored
            try:
                self._persist()
            except ReadingStoreError:
                del self._items[stored.reading_id]
                raise
            self._next_id += 1
        return stored

    def range_fetch(self, start: datetime, end: datetime) -> list[SensorReading]:
        """Return every reading with ``start <= timestamp <= end``."""

        lower, upper = ensure_utc(start), ensure_utc(end)
        with self._lock:
            return [
                item for item in self._items.values() if lower <= item.timestamp <= upper
            ]

    def find_matching(
        self, sensor_id: int, metric_type: str, start: datetime, end: datetime
    ) -> list[SensorReading]:
        return [
            item
            for item in self.range_fetch(start, end)
            if item.sensor_id == sensor_id and item.metric_type == metric_type
        ]

    def scan(self) -> list[SensorReading]:
        with self._lock:
            return list(self._items.values())

    def clear(self) -> None:
        with self._lock:
            previous, self._items = self._items, {}
            try:
                self._persist()
            except ReadingStoreError:
                self._items = previous
                raise
            self._next_id = 1

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [
            {
                "id": item.reading_id,
                "sensor_id": item.sensor_id,
                "metric_type": item.metric_type,
                "metric_value": item.metric_value,
                "timestamp": item.timestamp.isoformat(),
            }
            for item in self._items.values()
        ]
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2))
        except OSError as exc:
            raise ReadingStoreError(
                f"Could not persist store {self.name!r} to {self.persistence_path}."
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning(
                "Ignoring unreadable reading store file %s", self.persistence_path
            )
            data = []

        for payload in data:
            reading = SensorReading(
                sensor_id=int(payload["sensor_id"]),
                metric_type=payload["metric_type"],
                metric_value=float(payload["metric_value"]),
                timestamp=ensure_utc(datetime.fromisoformat(payload["timestamp"])),
                reading_id=int(payload["id"]),
            )
            self._items[reading.reading_id] = reading
            self._next_id = max(self._next_id, reading.reading_id + 1)


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> ReadingStore:
    settings = get_settings()
    store_name = settings.store_name if name is None else name
    store_path = settings.store_persistence_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(name=store_name, persistence_path=persistence)
