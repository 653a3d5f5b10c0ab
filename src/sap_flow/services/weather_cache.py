"""Freshness-aware weather cache keyed by rounded coordinates and date.

Coordinates are rounded to 2 decimals (~1 km), so nearby requests share one
slot. A cached day is valid while its age is within:

  - 24 hours for dates before today (archive data, effectively immutable)
  - 1 hour for today and later (forecast data that keeps changing)

An expired entry reads as a miss.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from loguru import logger

from sap_flow.store import CachedWeather

if TYPE_CHECKING:
    from sap_flow.config import Settings
    from sap_flow.datasources.weather.models import DailyWeatherRecord
    from sap_flow.store import WeatherStore

HISTORICAL_MAX_AGE = timedelta(hours=24)
CURRENT_MAX_AGE = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def date_range(start: date, end: date) -> list[date]:
    """Every calendar date from ``start`` to ``end`` inclusive."""
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


class WeatherCache:
    """Point and range lookups over a :class:`WeatherStore`."""

    def __init__(
        self,
        store: WeatherStore,
        *,
        historical_max_age: timedelta = HISTORICAL_MAX_AGE,
        current_max_age: timedelta = CURRENT_MAX_AGE,
        now: Callable[[], datetime] = _utcnow,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.historical_max_age = historical_max_age
        self.current_max_age = current_max_age
        self._now = now
        self._today = today

    @classmethod
    def from_settings(cls, store: WeatherStore, settings: Settings) -> WeatherCache:
        """Cache with max ages from ``settings``."""
        return cls(
            store,
            historical_max_age=timedelta(hours=settings.historical_max_age_hours),
            current_max_age=timedelta(hours=settings.current_max_age_hours),
        )

    @staticmethod
    def cache_key(lat: float, lon: float, day: date) -> str:
        """Slot key: ``{lat}_{lon}_{YYYY-MM-DD}`` with coordinates rounded to 2 places."""
        return f"{round(lat, 2)}_{round(lon, 2)}_{day.isoformat()}"

    def max_age(self, day: date) -> timedelta:
        """How long a cached record for ``day`` stays valid."""
        return self.historical_max_age if day < self._today() else self.current_max_age

    def is_fresh(self, entry: CachedWeather) -> bool:
        """True when ``entry`` is within the max age for its date."""
        return self._now() - entry.fetched_at <= self.max_age(entry.record.date)

    async def get(self, lat: float, lon: float, day: date) -> DailyWeatherRecord | None:
        """Return the cached record for ``day``, or None if missing or stale."""
        entry = await self.store.get(self.cache_key(lat, lon, day))
        if entry is None or not self.is_fresh(entry):
            return None
        return entry.record

    async def put(self, lat: float, lon: float, record: DailyWeatherRecord) -> None:
        """Cache ``record`` under its own date, stamped with the current time."""
        await self.store.put(
            self.cache_key(lat, lon, record.date),
            CachedWeather(record=record, fetched_at=self._now()),
        )

    async def put_many(self, lat: float, lon: float, records: list[DailyWeatherRecord]) -> None:
        """Cache each record individually."""
        await asyncio.gather(*(self.put(lat, lon, r) for r in records))

    async def get_range(
        self, lat: float, lon: float, start: date, end: date
    ) -> tuple[list[DailyWeatherRecord], list[date]]:
        """Look up every date in ``[start, end]``.

        Returns:
            ``(hits, misses)``: fresh records found, and dates with no fresh record.
        """
        days = date_range(start, end)
        found = await asyncio.gather(*(self.get(lat, lon, d) for d in days))

        hits: list[DailyWeatherRecord] = []
        misses: list[date] = []
        for day, record in zip(days, found, strict=True):
            if record is None:
                misses.append(day)
            else:
                hits.append(record)

        logger.debug("Weather cache {}..{}: {} hits, {} misses", start, end, len(hits), len(misses))
        return hits, misses
