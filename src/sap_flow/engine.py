"""
Weather-yield correlation and sap-flow prediction engine.

``YieldEngine`` is the entry point for callers (routes, CLI, flows). It owns
its collaborators and caches; build a fresh one per test::

    engine = YieldEngine(
        records=InMemoryYieldRepository(...),
        weather=WeatherService(WeatherCache(MemoryWeatherStore())),
    )
    analytics = await engine.get_weather_analytics("2026", 44.48, -73.21)

No operation here raises for missing or sparse data: too few joined days,
singular regressions and failed forecast fetches all come back as results
with ``insufficient_data=True``.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING

from loguru import logger

from sap_flow.analysis import baseline, correlation, regression
from sap_flow.coalesce import ComputationCache
from sap_flow.datasources.weather.client import WeatherFetchError
from sap_flow.schemas import (
    CorrelationDatum,
    DetailedCorrelation,
    FlowPredictions,
    TemperatureUnit,
    TraditionalPredictions,
    WeatherAnalytics,
    WeatherCorrelation,
)

if TYPE_CHECKING:
    from sap_flow.config import Settings
    from sap_flow.datasources.weather.models import DailyWeatherRecord
    from sap_flow.repository import YieldRepository
    from sap_flow.services.weather import WeatherService

MIN_TRAINING_DAYS = 3
LAG_DAYS = 2

CorrelationKey = tuple[str, float, float, str]


class YieldEngine:
    """Correlation, regression and baseline forecasts for one season at a time."""

    def __init__(
        self,
        records: YieldRepository,
        weather: WeatherService,
        correlation_cache: ComputationCache[DetailedCorrelation] | None = None,
    ) -> None:
        self.records = records
        self.weather = weather
        if correlation_cache is None:
            correlation_cache = ComputationCache()
        self.correlation_cache = correlation_cache

    @classmethod
    def from_settings(
        cls, records: YieldRepository, weather: WeatherService, settings: Settings
    ) -> YieldEngine:
        """Engine with a correlation cache TTL from ``settings``."""
        return cls(records, weather, ComputationCache(ttl=settings.correlation_cache_ttl))

    # -------------------------------------------------------------------------
    # Correlation
    # -------------------------------------------------------------------------

    async def _joined_dataset(
        self, season_id: str, lat: float, lon: float, unit: str
    ) -> tuple[list[CorrelationDatum], int] | None:
        """Yield totals joined with weather, plus the season's tap count.

        Returns None when the season has no collection entries.
        """
        records, total_taps = await asyncio.gather(
            self.records.find_yield_records(season_id),
            self.records.find_tap_count(season_id),
        )
        if not records:
            return None

        volumes = correlation.aggregate_yield(records)
        start = min(volumes) - timedelta(days=LAG_DAYS)
        end = max(volumes)

        outcome = await self.weather.get_weather_range(lat, lon, start, end, unit)
        if not outcome.complete:
            logger.warning(
                "Season {}: weather incomplete, failed windows {}",
                season_id,
                [(w.source, w.start.isoformat(), w.end.isoformat()) for w in outcome.failed_windows],
            )

        data = correlation.build_dataset(volumes, outcome.by_date(), unit, total_taps)
        logger.debug(
            "Season {}: {} collection dates, {} weather days, {} matched",
            season_id,
            len(volumes),
            len(outcome.days),
            len(data),
        )
        return data, total_taps

    async def get_weather_correlation(
        self, season_id: str, lat: float, lon: float, unit: str = TemperatureUnit.FAHRENHEIT
    ) -> WeatherCorrelation:
        """Single-factor view: temperature delta vs volume."""
        joined = await self._joined_dataset(season_id, lat, lon, unit)
        if joined is None:
            return WeatherCorrelation()
        data, total_taps = joined

        return WeatherCorrelation(
            data=data,
            correlation=correlation.temperature_delta_correlation(data),
            ideal_days_count=sum(1 for d in data if d.ideal_conditions),
            total_days=len(data),
            total_taps=total_taps or None,
        )

    @staticmethod
    def correlation_key(season_id: str, lat: float, lon: float, unit: str) -> CorrelationKey:
        """Coalescing key: season, numeric coordinates and unit."""
        return (season_id, float(lat), float(lon), str(unit or TemperatureUnit.FAHRENHEIT))

    async def get_detailed_weather_correlation(
        self, season_id: str, lat: float, lon: float, unit: str = TemperatureUnit.FAHRENHEIT
    ) -> DetailedCorrelation:
        """All-factor correlation with insights.

        Results are cached briefly and concurrent identical requests share
        one computation.
        """
        key = self.correlation_key(season_id, lat, lon, unit)
        return await self.correlation_cache.get_or_compute(
            key, lambda: self._compute_detailed_correlation(season_id, lat, lon, unit)
        )

    async def _compute_detailed_correlation(
        self, season_id: str, lat: float, lon: float, unit: str
    ) -> DetailedCorrelation:
        joined = await self._joined_dataset(season_id, lat, lon, unit)
        if joined is None:
            return DetailedCorrelation()
        data, total_taps = joined

        correlations = correlation.compute_factor_correlations(data)
        return DetailedCorrelation(
            data=data,
            correlations=correlations,
            insights=correlation.generate_insights(correlations),
            total_days=len(data),
            total_taps=total_taps or None,
            ideal_days_count=sum(1 for d in data if d.ideal_conditions),
        )

    # -------------------------------------------------------------------------
    # Predictions
    # -------------------------------------------------------------------------

    async def _forecast(self, lat: float, lon: float, unit: str) -> list[DailyWeatherRecord] | None:
        try:
            return await self.weather.get_forecast(lat, lon, unit)
        except (WeatherFetchError, ValueError) as exc:
            logger.warning("Forecast unavailable for ({}, {}): {}", lat, lon, exc)
            return None

    async def get_flow_predictions(
        self,
        season_id: str,
        lat: float,
        lon: float,
        unit: str = TemperatureUnit.FAHRENHEIT,
        precomputed: DetailedCorrelation | None = None,
    ) -> FlowPredictions:
        """Seven-day regression forecast learned from this season's history."""
        detailed = precomputed
        if detailed is None:
            detailed = await self.get_detailed_weather_correlation(season_id, lat, lon, unit)
        data = detailed.data
        if len(data) < MIN_TRAINING_DAYS:
            logger.info("Season {}: only {} joined days, not predicting", season_id, len(data))
            return FlowPredictions(insufficient_data=True, total_days=len(data))

        total_taps = await self.records.find_tap_count(season_id)
        optional = regression.select_optional_features(detailed.correlations)
        design = regression.build_design(data, optional)
        model = regression.fit(design, [d.volume for d in data])
        if model is None:
            return FlowPredictions(insufficient_data=True, total_days=len(data))

        forecast = await self._forecast(lat, lon, unit)
        if not forecast:
            return FlowPredictions(insufficient_data=True, total_days=len(data))

        return FlowPredictions(
            predictions=regression.predict(model, design, forecast, unit, total_taps),
            model_quality=model.r_squared,
            total_days=len(data),
            total_taps=total_taps or None,
            features_used=model.features_used,
        )

    async def get_traditional_flow_predictions(
        self,
        season_id: str,
        lat: float,
        lon: float,
        unit: str = TemperatureUnit.FAHRENHEIT,
        precomputed: DetailedCorrelation | None = None,
    ) -> TraditionalPredictions:
        """Seven-day freeze/thaw rule forecast for comparison."""
        detailed = precomputed
        if detailed is None:
            detailed = await self.get_detailed_weather_correlation(season_id, lat, lon, unit)
        total_taps = await self.records.find_tap_count(season_id)
        forecast = await self._forecast(lat, lon, unit) or []

        predictions, average = baseline.predict_traditional(detailed.data, forecast, unit, total_taps)
        return TraditionalPredictions(
            predictions=predictions,
            description=baseline.DESCRIPTION,
            total_days=len(detailed.data),
            total_taps=total_taps or None,
            insufficient_data=not predictions or average is None,
        )

    async def get_weather_analytics(
        self, season_id: str, lat: float, lon: float, unit: str = TemperatureUnit.FAHRENHEIT
    ) -> WeatherAnalytics:
        """Detailed correlation plus both forecasts from a single correlation pass.

        A failure in either predictor is logged and replaced with an
        insufficient-data result; the correlation is still returned.
        """
        detailed = await self.get_detailed_weather_correlation(season_id, lat, lon, unit)
        total_days = len(detailed.data)

        try:
            flow = await self.get_flow_predictions(season_id, lat, lon, unit, detailed)
        except Exception:
            logger.opt(exception=True).warning("Flow predictions failed for season {}", season_id)
            flow = FlowPredictions(insufficient_data=True, total_days=total_days)

        try:
            conventional = await self.get_traditional_flow_predictions(
                season_id, lat, lon, unit, detailed
            )
        except Exception:
            logger.opt(exception=True).warning("Conventional predictions failed for season {}", season_id)
            conventional = TraditionalPredictions(
                insufficient_data=True, total_days=total_days, description=baseline.DESCRIPTION
            )

        return WeatherAnalytics(
            detailed_correlation=detailed,
            flow_predictions=flow,
            conventional_predictions=conventional,
        )
