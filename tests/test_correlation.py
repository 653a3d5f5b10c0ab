"""Tests for the yield/weather join, Pearson correlation and insights."""

from __future__ import annotations

from datetime import date

import pytest

from sap_flow.analysis.correlation import (
    FACTORS,
    aggregate_yield,
    build_dataset,
    classify_strength,
    compute_factor_correlations,
    generate_insights,
    pearson,
    per_tap,
    temperature_delta_correlation,
)
from sap_flow.datasources.weather.models import DailyWeatherRecord
from sap_flow.schemas import FactorCorrelation, Strength, YieldRecord


def _weather(day: int, high: float | None = 45.0, low: float | None = 25.0, **kwargs: float) -> DailyWeatherRecord:
    return DailyWeatherRecord(date=date(2026, 3, day), temp_high=high, temp_low=low, **kwargs)


class TestAggregateYield:
    def test_sums_per_date(self) -> None:
        records = [
            YieldRecord(date=date(2026, 3, 1), volume=10.0),
            YieldRecord(date=date(2026, 3, 1), volume=5.5),
            YieldRecord(date=date(2026, 3, 2), volume=3.0),
        ]
        assert aggregate_yield(records) == {date(2026, 3, 1): 15.5, date(2026, 3, 2): 3.0}

    def test_missing_volume_counts_as_zero(self) -> None:
        records = [
            YieldRecord(date=date(2026, 3, 1), volume=None),
            YieldRecord(date=date(2026, 3, 1), volume=4.0),
        ]
        assert aggregate_yield(records) == {date(2026, 3, 1): 4.0}


class TestPerTap:
    def test_rounded(self) -> None:
        assert per_tap(10.0, 3) == 3.33

    def test_unknown_taps(self) -> None:
        assert per_tap(10.0, 0) is None


class TestBuildDataset:
    """Same-day join with lagged features."""

    def test_unmatched_dates_dropped(self) -> None:
        volumes = {date(2026, 3, 1): 10.0, date(2026, 3, 2): 12.0}
        weather = {date(2026, 3, 2): _weather(2)}
        data = build_dataset(volumes, weather)
        assert [d.date for d in data] == [date(2026, 3, 2)]

    def test_weather_without_temperatures_dropped(self) -> None:
        volumes = {date(2026, 3, 1): 10.0}
        weather = {date(2026, 3, 1): _weather(1, high=None)}
        assert build_dataset(volumes, weather) == []

    def test_sorted_by_date(self) -> None:
        volumes = {date(2026, 3, 3): 1.0, date(2026, 3, 1): 2.0}
        weather = {date(2026, 3, d): _weather(d) for d in (1, 3)}
        assert [d.date for d in build_dataset(volumes, weather)] == [date(2026, 3, 1), date(2026, 3, 3)]

    def test_same_day_fields(self) -> None:
        volumes = {date(2026, 3, 5): 20.0}
        weather = {date(2026, 3, 5): _weather(5, high=48.0, low=22.0, humidity=75.0, sunshine_hours=6.5)}
        [datum] = build_dataset(volumes, weather, total_taps=8)

        assert datum.volume == 20.0
        assert datum.volume_per_tap == 2.5
        assert datum.temp_delta == 26.0
        assert datum.humidity == 75.0
        assert datum.sunshine_hours == 6.5
        assert datum.ideal_conditions is True

    def test_lag_features(self) -> None:
        volumes = {date(2026, 3, 5): 20.0}
        weather = {
            date(2026, 3, 3): _weather(3, high=35.0, low=15.0),
            date(2026, 3, 4): _weather(4, high=44.0, low=28.0),
            date(2026, 3, 5): _weather(5),
        }
        [datum] = build_dataset(volumes, weather)

        assert datum.prev_day_temp_high == 44.0
        assert datum.prev_day_temp_low == 28.0
        assert datum.prev_day_temp_delta == 16.0
        assert datum.prev_day_ideal is True
        assert datum.prev_day2_temp_high == 35.0
        assert datum.prev_day2_temp_low == 15.0

    def test_missing_lag_is_null(self) -> None:
        volumes = {date(2026, 3, 5): 20.0}
        [datum] = build_dataset(volumes, {date(2026, 3, 5): _weather(5)})
        assert datum.prev_day_temp_high is None
        assert datum.prev_day_temp_delta is None
        assert datum.prev_day_ideal is None

    def test_celsius_thresholds(self) -> None:
        volumes = {date(2026, 3, 5): 20.0}
        weather = {date(2026, 3, 5): _weather(5, high=7.2, low=-3.9)}
        [datum] = build_dataset(volumes, weather, temperature_unit="celsius")
        assert datum.ideal_conditions is True


class TestClassifyStrength:
    @pytest.mark.parametrize(
        ("coefficient", "expected"),
        [
            (None, Strength.NONE),
            (0.05, Strength.NONE),
            (0.1, Strength.WEAK),
            (-0.29, Strength.WEAK),
            (0.3, Strength.MODERATE),
            (-0.49, Strength.MODERATE),
            (0.5, Strength.STRONG),
            (-1.0, Strength.STRONG),
        ],
    )
    def test_thresholds(self, coefficient: float | None, expected: Strength) -> None:
        assert classify_strength(coefficient) == expected


class TestPearson:
    def test_perfect_positive(self) -> None:
        result = pearson([1.0, 2.0, 3.0, 4.0], [2.0, 4.0, 6.0, 8.0])
        assert result.coefficient == 1.0
        assert result.strength == Strength.STRONG
        assert result.sample_size == 4

    def test_perfect_negative(self) -> None:
        assert pearson([1.0, 2.0, 3.0], [3.0, 2.0, 1.0]).coefficient == -1.0

    def test_rounded_to_two_decimals(self) -> None:
        result = pearson([1.0, 2.0, 3.0, 4.0], [1.0, 3.0, 2.0, 4.0])
        assert result.coefficient == 0.8

    def test_too_few_pairs(self) -> None:
        result = pearson([1.0, 2.0], [3.0, 4.0])
        assert result.coefficient is None
        assert result.strength == Strength.NONE
        assert result.sample_size == 2

    def test_missing_values_skipped(self) -> None:
        result = pearson([1.0, None, 2.0, 3.0], [2.0, 5.0, None, 6.0])
        assert result.coefficient is None
        assert result.sample_size == 2

    def test_constant_side_is_null(self) -> None:
        result = pearson([5.0, 5.0, 5.0], [1.0, 2.0, 3.0])
        assert result.coefficient is None
        assert result.sample_size == 3


class TestFactorCorrelations:
    def test_all_factors_reported(self) -> None:
        volumes = {date(2026, 3, d): float(d) for d in range(1, 6)}
        weather = {date(2026, 3, d): _weather(d, high=40.0 + d, low=20.0, humidity=90.0 - d) for d in range(1, 6)}
        correlations = compute_factor_correlations(build_dataset(volumes, weather))

        assert list(correlations) == list(FACTORS)
        assert correlations["temp_high"].coefficient == 1.0
        assert correlations["humidity"].coefficient == -1.0
        assert correlations["precipitation"].coefficient is None
        assert correlations["precipitation"].sample_size == 0

    def test_temperature_delta_correlation(self) -> None:
        volumes = {date(2026, 3, d): float(d) for d in range(1, 5)}
        weather = {date(2026, 3, d): _weather(d, high=40.0 + d, low=20.0) for d in range(1, 5)}
        assert temperature_delta_correlation(build_dataset(volumes, weather)) == 1.0

    def test_temperature_delta_correlation_constant(self) -> None:
        volumes = {date(2026, 3, d): float(d) for d in range(1, 5)}
        weather = {date(2026, 3, d): _weather(d) for d in range(1, 5)}
        assert temperature_delta_correlation(build_dataset(volumes, weather)) is None


class TestGenerateInsights:
    def test_only_notable_factors_sorted_by_magnitude(self) -> None:
        correlations = {
            "temp_delta": FactorCorrelation(coefficient=0.45, strength=Strength.MODERATE, sample_size=10),
            "humidity": FactorCorrelation(coefficient=-0.72, strength=Strength.STRONG, sample_size=10),
            "wind_speed": FactorCorrelation(coefficient=0.2, strength=Strength.WEAK, sample_size=10),
            "pressure": FactorCorrelation(coefficient=None, strength=Strength.NONE, sample_size=2),
        }
        insights = generate_insights(correlations)

        assert [i.factor for i in insights] == ["humidity", "temp_delta"]
        assert insights[0].message == "Lower humidity correlates with better yields"
        assert insights[1].message == "Larger temperature swings correlate with higher sap flow"

    def test_unknown_factor_ignored(self) -> None:
        correlations = {
            "mystery": FactorCorrelation(coefficient=0.9, strength=Strength.STRONG, sample_size=5),
        }
        assert generate_insights(correlations) == []
