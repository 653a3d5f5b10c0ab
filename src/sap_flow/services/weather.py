"""
Cache-aware weather lookups over the two Open-Meteo providers.

Routing for a range request with cache misses:

  - Missing dates older than the archive cutoff (30 days before today) are
    fetched from the Archive API in one call spanning min..max of the gap.
  - Missing dates at or after the cutoff come from the Forecast API in one
    call covering 30 past days plus 7 forecast days.

The two calls run concurrently and fail independently: a failed window is
reported in the :class:`FetchOutcome` and the range is assembled from
whatever did arrive. Every fetched day is written back to the cache, even
days outside the requested range.

Records are fetched and cached in Fahrenheit; Celsius conversion is applied
last, on the way out.

Example:
    service = WeatherService(WeatherCache(MemoryWeatherStore()))
    outcome = asyncio.run(service.get_weather_range(44.48, -73.21, start, end))
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import date, timedelta
from functools import partial
from typing import TYPE_CHECKING

from loguru import logger

from sap_flow.datasources.weather import forecast, historical
from sap_flow.datasources.weather.client import WeatherFetchError
from sap_flow.datasources.weather.models import DailyWeatherRecord, FailedWindow, FetchOutcome

if TYPE_CHECKING:
    from sap_flow.config import Settings
    from sap_flow.services.weather_cache import WeatherCache

RecentFetcher = Callable[..., list[DailyWeatherRecord]]
ArchiveFetcher = Callable[[float, float, date, date], list[DailyWeatherRecord]]

ARCHIVE_CUTOFF_DAYS = 30
RANGE_PAST_DAYS = 30
POINT_PAST_DAYS = 14
FORECAST_DAYS = 7


def convert_records(records: list[DailyWeatherRecord], unit: str) -> list[DailyWeatherRecord]:
    """Apply the caller's temperature unit to cached (Fahrenheit) records."""
    if unit == "celsius":
        return [r.to_celsius() for r in records]
    return list(records)


class WeatherService:
    """Point, range and forecast lookups with cache fill-on-miss."""

    def __init__(
        self,
        cache: WeatherCache,
        *,
        fetch_recent: RecentFetcher = forecast.fetch_recent,
        fetch_archive: ArchiveFetcher = historical.fetch_archive,
        archive_cutoff_days: int = ARCHIVE_CUTOFF_DAYS,
        range_past_days: int = RANGE_PAST_DAYS,
        forecast_days: int = FORECAST_DAYS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.cache = cache
        self._fetch_recent = fetch_recent
        self._fetch_archive = fetch_archive
        self.archive_cutoff_days = archive_cutoff_days
        self.range_past_days = range_past_days
        self.forecast_days = forecast_days
        self._today = today

    @classmethod
    def from_settings(cls, cache: WeatherCache, settings: Settings) -> WeatherService:
        """Build a service using windows and retry delay from ``settings``."""
        return cls(
            cache,
            fetch_archive=partial(historical.fetch_archive, retry_delay=settings.archive_retry_delay),
            archive_cutoff_days=settings.archive_cutoff_days,
            range_past_days=settings.forecast_past_days,
            forecast_days=settings.forecast_days,
        )

    def archive_cutoff(self) -> date:
        """Dates strictly before this are archive-only."""
        return self._today() - timedelta(days=self.archive_cutoff_days)

    async def get_weather(
        self, lat: float, lon: float, day: date, unit: str = "fahrenheit"
    ) -> DailyWeatherRecord | None:
        """Weather for a single date, or None if the provider has no such day.

        A miss triggers a near-term fetch (14 past days + 7 forecast days);
        every returned day is cached.

        Raises:
            WeatherFetchError: If the near-term fetch fails.
        """
        cached = await self.cache.get(lat, lon, day)
        if cached is not None:
            return convert_records([cached], unit)[0]

        days = await asyncio.to_thread(
            self._fetch_recent,
            lat,
            lon,
            past_days=POINT_PAST_DAYS,
            forecast_days=self.forecast_days,
        )
        await self.cache.put_many(lat, lon, days)

        match = next((d for d in days if d.date == day), None)
        return convert_records([match], unit)[0] if match is not None else None

    async def get_weather_range(
        self, lat: float, lon: float, start: date, end: date, unit: str = "fahrenheit"
    ) -> FetchOutcome:
        """Weather for every obtainable date in ``[start, end]``, sorted by date."""
        hits, misses = await self.cache.get_range(lat, lon, start, end)
        if not misses:
            return FetchOutcome(days=convert_records(sorted(hits, key=lambda d: d.date), unit))

        cutoff = self.archive_cutoff()
        historical_missing = [d for d in misses if d < cutoff]
        recent_missing = [d for d in misses if d >= cutoff]

        windows = []
        if historical_missing:
            windows.append(self._fetch_archive_window(lat, lon, historical_missing))
        if recent_missing:
            windows.append(self._fetch_recent_window(lat, lon))
        results = await asyncio.gather(*windows)

        by_date = {d.date: d for d in hits}
        failed: list[FailedWindow] = []
        for fetched, failure in results:
            if failure is not None:
                failed.append(failure)
                continue
            await self.cache.put_many(lat, lon, fetched)
            for record in fetched:
                by_date.setdefault(record.date, record)

        days = sorted((d for d in by_date.values() if start <= d.date <= end), key=lambda d: d.date)
        return FetchOutcome(days=convert_records(days, unit), failed_windows=failed)

    async def get_forecast(self, lat: float, lon: float, unit: str = "fahrenheit") -> list[DailyWeatherRecord]:
        """Forecast for today onward (no past days), uncached.

        Raises:
            WeatherFetchError: If the forecast fetch fails.
        """
        days = await asyncio.to_thread(
            self._fetch_recent, lat, lon, past_days=0, forecast_days=self.forecast_days
        )
        return convert_records(days, unit)

    async def _fetch_archive_window(
        self, lat: float, lon: float, missing: list[date]
    ) -> tuple[list[DailyWeatherRecord], FailedWindow | None]:
        start, end = min(missing), max(missing)
        try:
            days = await asyncio.to_thread(self._fetch_archive, lat, lon, start, end)
        except (WeatherFetchError, ValueError) as exc:
            logger.warning("Failed to fetch archive weather {}..{}: {}", start, end, exc)
            return [], FailedWindow(source=historical.SOURCE, start=start, end=end, error=str(exc))
        return days, None

    async def _fetch_recent_window(
        self, lat: float, lon: float
    ) -> tuple[list[DailyWeatherRecord], FailedWindow | None]:
        today = self._today()
        try:
            days = await asyncio.to_thread(
                self._fetch_recent,
                lat,
                lon,
                past_days=self.range_past_days,
                forecast_days=self.forecast_days,
            )
        except (WeatherFetchError, ValueError) as exc:
            logger.warning("Failed to fetch forecast weather: {}", exc)
            return [], FailedWindow(
                source=forecast.SOURCE,
                start=today - timedelta(days=self.range_past_days),
                end=today + timedelta(days=self.forecast_days - 1),
                error=str(exc),
            )
        return days, None
