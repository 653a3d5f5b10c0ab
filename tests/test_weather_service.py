"""Tests for the cache-aware WeatherService."""

from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest

from sap_flow.datasources.weather.client import WeatherFetchError
from sap_flow.datasources.weather.models import DailyWeatherRecord
from sap_flow.services.weather import WeatherService
from sap_flow.services.weather_cache import WeatherCache, date_range
from sap_flow.store import CachedWeather, MemoryWeatherStore

TODAY = date(2026, 3, 15)
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)
LAT, LON = 44.48, -73.21


def _record(day: date, high: float = 50.0, low: float = 20.0) -> DailyWeatherRecord:
    return DailyWeatherRecord(date=day, temp_high=high, temp_low=low, temp_avg=(high + low) / 2)


class StubFetchers:
    """Records calls and serves synthetic days for both upstream windows."""

    def __init__(self, fail_archive: bool = False, fail_recent: bool = False) -> None:
        self.fail_archive = fail_archive
        self.fail_recent = fail_recent
        self.archive_calls: list[tuple[date, date]] = []
        self.recent_calls: list[dict[str, Any]] = []

    def fetch_archive(self, lat: float, lon: float, start: date, end: date) -> list[DailyWeatherRecord]:
        self.archive_calls.append((start, end))
        if self.fail_archive:
            raise WeatherFetchError("archive", "HTTP 429", 429)
        return [_record(d) for d in date_range(start, end)]

    def fetch_recent(
        self, lat: float, lon: float, *, past_days: int, forecast_days: int
    ) -> list[DailyWeatherRecord]:
        self.recent_calls.append({"past_days": past_days, "forecast_days": forecast_days})
        if self.fail_recent:
            raise WeatherFetchError("forecast", "HTTP 500", 500)
        start = TODAY - timedelta(days=past_days)
        end = TODAY + timedelta(days=forecast_days - 1)
        return [_record(d) for d in date_range(start, end)]


def _service(stubs: StubFetchers, store: MemoryWeatherStore | None = None) -> WeatherService:
    cache = WeatherCache(store or MemoryWeatherStore(), now=lambda: NOW, today=lambda: TODAY)
    return WeatherService(
        cache,
        fetch_recent=stubs.fetch_recent,
        fetch_archive=stubs.fetch_archive,
        today=lambda: TODAY,
    )


class TestArchiveCutoff:
    def test_thirty_days_before_today(self) -> None:
        assert _service(StubFetchers()).archive_cutoff() == date(2026, 2, 13)


class TestGetWeatherRange:
    """Routing, write-back and partial failure."""

    def test_routes_old_dates_to_archive_and_recent_to_forecast(self) -> None:
        stubs = StubFetchers()
        outcome = asyncio.run(
            _service(stubs).get_weather_range(LAT, LON, date(2026, 2, 10), date(2026, 2, 16))
        )

        assert stubs.archive_calls == [(date(2026, 2, 10), date(2026, 2, 12))]
        assert stubs.recent_calls == [{"past_days": 30, "forecast_days": 7}]
        assert [d.date for d in outcome.days] == date_range(date(2026, 2, 10), date(2026, 2, 16))
        assert outcome.complete

    def test_only_archive_when_range_is_old(self) -> None:
        stubs = StubFetchers()
        asyncio.run(_service(stubs).get_weather_range(LAT, LON, date(2026, 1, 1), date(2026, 1, 5)))
        assert stubs.archive_calls == [(date(2026, 1, 1), date(2026, 1, 5))]
        assert stubs.recent_calls == []

    def test_only_forecast_when_range_is_recent(self) -> None:
        stubs = StubFetchers()
        asyncio.run(_service(stubs).get_weather_range(LAT, LON, TODAY - timedelta(days=1), TODAY))
        assert stubs.archive_calls == []
        assert len(stubs.recent_calls) == 1

    def test_all_fetched_days_written_back(self) -> None:
        store = MemoryWeatherStore()
        stubs = StubFetchers()
        asyncio.run(
            _service(stubs, store).get_weather_range(LAT, LON, date(2026, 2, 10), date(2026, 2, 16))
        )
        # 3 archive days + 30 past + 7 forecast days
        assert len(store.entries) == 40
        assert WeatherCache.cache_key(LAT, LON, TODAY + timedelta(days=6)) in store.entries

    def test_second_request_served_from_cache(self) -> None:
        stubs = StubFetchers()
        service = _service(stubs)
        asyncio.run(service.get_weather_range(LAT, LON, date(2026, 2, 10), date(2026, 2, 16)))
        outcome = asyncio.run(service.get_weather_range(LAT, LON, date(2026, 2, 10), date(2026, 2, 16)))

        assert len(stubs.archive_calls) == 1
        assert len(stubs.recent_calls) == 1
        assert len(outcome.days) == 7

    def test_cached_day_wins_over_fetched(self) -> None:
        store = MemoryWeatherStore()
        day = date(2026, 3, 10)
        store.entries[WeatherCache.cache_key(LAT, LON, day)] = CachedWeather(
            record=_record(day, high=61.0), fetched_at=NOW - timedelta(hours=1)
        )
        outcome = asyncio.run(
            _service(StubFetchers(), store).get_weather_range(LAT, LON, day, day + timedelta(days=1))
        )
        assert outcome.by_date()[day].temp_high == 61.0

    def test_archive_failure_keeps_forecast_days(self) -> None:
        stubs = StubFetchers(fail_archive=True)
        outcome = asyncio.run(
            _service(stubs).get_weather_range(LAT, LON, date(2026, 2, 10), date(2026, 2, 16))
        )

        assert not outcome.complete
        [window] = outcome.failed_windows
        assert window.source == "archive"
        assert (window.start, window.end) == (date(2026, 2, 10), date(2026, 2, 12))
        assert "429" in window.error
        assert [d.date for d in outcome.days] == date_range(date(2026, 2, 13), date(2026, 2, 16))

    def test_forecast_failure_keeps_archive_days(self) -> None:
        stubs = StubFetchers(fail_recent=True)
        outcome = asyncio.run(
            _service(stubs).get_weather_range(LAT, LON, date(2026, 2, 10), date(2026, 2, 16))
        )

        [window] = outcome.failed_windows
        assert window.source == "forecast"
        assert window.start == date(2026, 2, 13)
        assert window.end == date(2026, 3, 21)
        assert [d.date for d in outcome.days] == date_range(date(2026, 2, 10), date(2026, 2, 12))

    def test_both_failures_yield_empty_result(self) -> None:
        stubs = StubFetchers(fail_archive=True, fail_recent=True)
        outcome = asyncio.run(
            _service(stubs).get_weather_range(LAT, LON, date(2026, 2, 10), date(2026, 2, 16))
        )
        assert outcome.days == []
        assert len(outcome.failed_windows) == 2

    def test_celsius_applied_on_the_way_out(self) -> None:
        store = MemoryWeatherStore()
        outcome = asyncio.run(
            _service(StubFetchers(), store).get_weather_range(
                LAT, LON, date(2026, 1, 1), date(2026, 1, 1), "celsius"
            )
        )
        assert outcome.days[0].temp_high == 10.0
        assert outcome.days[0].temp_low == -6.7
        cached = store.entries[WeatherCache.cache_key(LAT, LON, date(2026, 1, 1))]
        assert cached.record.temp_high == 50.0


class TestGetWeather:
    """Single-date lookups."""

    def test_cache_hit_skips_fetch(self) -> None:
        store = MemoryWeatherStore()
        day = date(2026, 3, 10)
        store.entries[WeatherCache.cache_key(LAT, LON, day)] = CachedWeather(
            record=_record(day), fetched_at=NOW
        )
        stubs = StubFetchers()
        record = asyncio.run(_service(stubs, store).get_weather(LAT, LON, day))

        assert record is not None
        assert stubs.recent_calls == []

    def test_miss_fetches_near_term_window(self) -> None:
        store = MemoryWeatherStore()
        stubs = StubFetchers()
        record = asyncio.run(_service(stubs, store).get_weather(LAT, LON, date(2026, 3, 10)))

        assert record is not None
        assert record.date == date(2026, 3, 10)
        assert stubs.recent_calls == [{"past_days": 14, "forecast_days": 7}]
        assert len(store.entries) == 21

    def test_day_outside_window_returns_none(self) -> None:
        record = asyncio.run(_service(StubFetchers()).get_weather(LAT, LON, date(2025, 12, 1)))
        assert record is None

    def test_fetch_failure_raises(self) -> None:
        with pytest.raises(WeatherFetchError):
            asyncio.run(
                _service(StubFetchers(fail_recent=True)).get_weather(LAT, LON, date(2026, 3, 10))
            )

    def test_celsius(self) -> None:
        record = asyncio.run(
            _service(StubFetchers()).get_weather(LAT, LON, date(2026, 3, 10), "celsius")
        )
        assert record is not None
        assert record.temp_high == 10.0


class TestGetForecast:
    """Forward-looking forecast, never cached."""

    def test_no_past_days(self) -> None:
        store = MemoryWeatherStore()
        stubs = StubFetchers()
        days = asyncio.run(_service(stubs, store).get_forecast(LAT, LON))

        assert stubs.recent_calls == [{"past_days": 0, "forecast_days": 7}]
        assert [d.date for d in days] == date_range(TODAY, TODAY + timedelta(days=6))
        assert store.entries == {}

    def test_failure_raises(self) -> None:
        with pytest.raises(WeatherFetchError):
            asyncio.run(_service(StubFetchers(fail_recent=True)).get_forecast(LAT, LON))
