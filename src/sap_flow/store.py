"""Data stores: JSON envelopes on disk and key/value weather caches.

``DataStore`` reads and writes JSON files wrapped in a metadata envelope::

    {"meta": {"source": ..., "fetched_at": ...}, "data": ...}

organized into tiers by update frequency:
  - historical/: Weather days before today (24h freshness)
  - live/: Today and forecast days (1h freshness)
  - derived/: Computed outputs (analytics reports), always recomputed

The weather cache stores (``MemoryWeatherStore``, ``FileWeatherStore``) are
dumb key/value stores of :class:`CachedWeather`. Freshness rules live in
``services.weather_cache``, not here.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Protocol

from sap_flow.datasources.weather.models import DailyWeatherRecord

HISTORICAL_TIER = Path("historical")
LIVE_TIER = Path("live")
DERIVED_TIER = Path("derived")


class DataStore:
    """Manages read/write of JSON data files with envelope metadata."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir
        self.historical = base_dir / HISTORICAL_TIER
        self.live = base_dir / LIVE_TIER
        self.derived = base_dir / DERIVED_TIER

    def read_raw(self, path: Path) -> dict[str, Any] | None:
        """Read the full envelope (meta + data) from a JSON file."""
        full = self._resolve(path)
        if not full.exists():
            return None
        with full.open() as f:
            result: dict[str, Any] = json.load(f)
        return result

    def write(
        self,
        path: Path,
        data: Any,
        source: str,
        **params: Any,
    ) -> Path:
        """Write data wrapped in a metadata envelope.

        Args:
            path: Relative path under base_dir (e.g. ``derived/analytics/2026.json``).
            data: Payload to store under the ``data`` key.
            source: Data source identifier (e.g. ``"open-meteo.com"``).
            **params: Extra metadata fields; may override ``fetched_at``.

        Returns:
            Absolute path of the written file.
        """
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)

        meta: dict[str, Any] = {
            "source": source,
            "fetched_at": datetime.now(UTC).isoformat(),
        }
        if params:
            meta.update(params)

        envelope = {"meta": meta, "data": data}
        with full.open("w") as f:
            json.dump(envelope, f, indent=2)

        return full

    def _resolve(self, path: Path) -> Path:
        full = self.base / path if not path.is_absolute() else path
        try:
            full.resolve().relative_to(self.base.resolve())
        except ValueError:
            msg = f"Path escapes store base directory: {path}"
            raise ValueError(msg) from None
        return full


# =============================================================================
# Weather cache stores
# =============================================================================


@dataclass
class CachedWeather:
    """A cached daily record and when it was fetched upstream."""

    record: DailyWeatherRecord
    fetched_at: datetime


class WeatherStore(Protocol):
    """Key/value store for cached weather days."""

    async def get(self, key: str) -> CachedWeather | None: ...

    async def put(self, key: str, entry: CachedWeather) -> None: ...


class MemoryWeatherStore:
    """Process-local weather store."""

    def __init__(self) -> None:
        self.entries: dict[str, CachedWeather] = {}

    async def get(self, key: str) -> CachedWeather | None:
        return self.entries.get(key)

    async def put(self, key: str, entry: CachedWeather) -> None:
        self.entries[key] = entry


class FileWeatherStore:
    """Weather store backed by one ``DataStore`` envelope per key.

    Days before today go under ``historical/weather/``; today and later
    under ``live/weather/``.
    """

    def __init__(self, store: DataStore, today: Callable[[], date] = date.today) -> None:
        self.store = store
        self._today = today

    def _path(self, key: str) -> Path:
        return Path("weather") / f"{key}.json"

    def _candidates(self, key: str) -> list[Path]:
        rel = self._path(key)
        return [HISTORICAL_TIER / rel, LIVE_TIER / rel]

    async def get(self, key: str) -> CachedWeather | None:
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, entry: CachedWeather) -> None:
        await asyncio.to_thread(self._write, key, entry)

    def _read(self, key: str) -> CachedWeather | None:
        for path in self._candidates(key):
            envelope = self.store.read_raw(path)
            if envelope is None:
                continue
            fetched_at = datetime.fromisoformat(envelope["meta"]["fetched_at"])
            if fetched_at.tzinfo is None:
                fetched_at = fetched_at.replace(tzinfo=UTC)
            return CachedWeather(
                record=DailyWeatherRecord.from_dict(envelope["data"]),
                fetched_at=fetched_at,
            )
        return None

    def _write(self, key: str, entry: CachedWeather) -> None:
        tier = HISTORICAL_TIER if entry.record.date < self._today() else LIVE_TIER
        self.store.write(
            tier / self._path(key),
            entry.record.to_dict(),
            source="open-meteo.com",
            fetched_at=entry.fetched_at.isoformat(),
        )
