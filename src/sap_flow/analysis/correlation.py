"""Join daily yield totals with weather and measure per-factor correlation.

Each day with both a yield total and a same-day weather record becomes one
:class:`CorrelationDatum`, carrying the previous day's and the day before's
temperatures as lag features. Days without a matching weather record are
dropped, never imputed.

Correlation is Pearson's r against daily volume, over the pairs where both
values are present. Fewer than 3 pairs, or zero variance on either side,
gives a null coefficient.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sap_flow.datasources.weather.conditions import is_sap_flow_ideal
from sap_flow.schemas import CorrelationDatum, FactorCorrelation, Insight, Strength, YieldRecord

if TYPE_CHECKING:
    from sap_flow.datasources.weather.models import DailyWeatherRecord

MIN_SAMPLE_SIZE = 3

STRONG_THRESHOLD = 0.5
MODERATE_THRESHOLD = 0.3
WEAK_THRESHOLD = 0.1


def aggregate_yield(records: Iterable[YieldRecord]) -> dict[date, float]:
    """Sum collection volume per calendar date (missing volumes count as 0)."""
    totals: dict[date, float] = {}
    for record in records:
        totals[record.date] = totals.get(record.date, 0.0) + (record.volume or 0.0)
    return totals


def per_tap(volume: float, total_taps: int) -> float | None:
    """Volume divided across all taps, or None when the tap count is unknown."""
    if total_taps <= 0:
        return None
    return round(volume / total_taps, 2)


def _temps(record: DailyWeatherRecord | None) -> tuple[float, float] | None:
    if record is None or record.temp_high is None or record.temp_low is None:
        return None
    return record.temp_high, record.temp_low


def build_dataset(
    volumes_by_date: dict[date, float],
    weather_by_date: dict[date, DailyWeatherRecord],
    temperature_unit: str = "fahrenheit",
    total_taps: int = 0,
) -> list[CorrelationDatum]:
    """Join yield totals with same-day and lagged weather.

    Args:
        volumes_by_date: Daily yield totals.
        weather_by_date: Weather records, already in ``temperature_unit``.
        temperature_unit: Unit used for the freeze/thaw rule.
        total_taps: Tap count for per-tap volumes (0 = unknown).

    Returns:
        One datum per matched date, sorted by date.
    """
    data: list[CorrelationDatum] = []
    for day, volume in volumes_by_date.items():
        weather = weather_by_date.get(day)
        temps = _temps(weather)
        if weather is None or temps is None:
            continue
        high, low = temps

        prev1 = weather_by_date.get(day - timedelta(days=1))
        prev2 = weather_by_date.get(day - timedelta(days=2))
        prev1_temps = _temps(prev1)

        data.append(
            CorrelationDatum(
                date=day,
                volume=volume,
                volume_per_tap=per_tap(volume, total_taps),
                temp_high=high,
                temp_low=low,
                temp_delta=high - low,
                precipitation=weather.precipitation,
                precipitation_hours=weather.precipitation_hours,
                humidity=weather.humidity,
                pressure=weather.pressure,
                wind_speed=weather.wind_speed,
                wind_direction=weather.wind_direction,
                sunshine_hours=weather.sunshine_hours,
                solar_radiation=weather.solar_radiation,
                ideal_conditions=is_sap_flow_ideal(high, low, temperature_unit),
                prev_day_temp_high=prev1.temp_high if prev1 else None,
                prev_day_temp_low=prev1.temp_low if prev1 else None,
                prev_day_temp_delta=prev1_temps[0] - prev1_temps[1] if prev1_temps else None,
                prev_day_ideal=(
                    is_sap_flow_ideal(*prev1_temps, temperature_unit) if prev1_temps else None
                ),
                prev_day2_temp_high=prev2.temp_high if prev2 else None,
                prev_day2_temp_low=prev2.temp_low if prev2 else None,
            )
        )

    return sorted(data, key=lambda d: d.date)


# =============================================================================
# Pearson correlation
# =============================================================================


def classify_strength(coefficient: float | None) -> Strength:
    """Map |r| to a strength bucket (0.5 strong, 0.3 moderate, 0.1 weak)."""
    if coefficient is None:
        return Strength.NONE
    magnitude = abs(coefficient)
    if magnitude >= STRONG_THRESHOLD:
        return Strength.STRONG
    if magnitude >= MODERATE_THRESHOLD:
        return Strength.MODERATE
    if magnitude >= WEAK_THRESHOLD:
        return Strength.WEAK
    return Strength.NONE


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not math.isnan(value)


def pearson(xs: list[float | None], ys: list[float | None]) -> FactorCorrelation:
    """Pearson correlation over the pairs where both values are numeric.

    Returns:
        FactorCorrelation with the coefficient rounded to 2 decimals, or a null
        coefficient when fewer than 3 pairs exist or either side is constant.
    """
    pairs = [(x, y) for x, y in zip(xs, ys, strict=True) if _is_number(x) and _is_number(y)]
    n = len(pairs)
    if n < MIN_SAMPLE_SIZE:
        return FactorCorrelation(coefficient=None, strength=Strength.NONE, sample_size=n)

    mean_x = sum(x for x, _ in pairs) / n
    mean_y = sum(y for _, y in pairs) / n

    numerator = 0.0
    denom_x = 0.0
    denom_y = 0.0
    for x, y in pairs:
        dx = x - mean_x
        dy = y - mean_y
        numerator += dx * dy
        denom_x += dx**2
        denom_y += dy**2

    denominator = math.sqrt(denom_x * denom_y)
    if denominator == 0:
        return FactorCorrelation(coefficient=None, strength=Strength.NONE, sample_size=n)

    # Clamp guards against float drift just past +/-1
    coefficient = round(max(-1.0, min(1.0, numerator / denominator)), 2)
    return FactorCorrelation(
        coefficient=coefficient,
        strength=classify_strength(coefficient),
        sample_size=n,
    )


def _bool_as_number(value: bool | None) -> float | None:
    if value is None:
        return None
    return 1.0 if value else 0.0


#: Weather factors evaluated against volume, in report order
FACTORS: dict[str, Callable[[CorrelationDatum], float | None]] = {
    "temp_delta": lambda d: d.temp_delta,
    "temp_high": lambda d: d.temp_high,
    "temp_low": lambda d: d.temp_low,
    "precipitation": lambda d: d.precipitation,
    "humidity": lambda d: d.humidity,
    "pressure": lambda d: d.pressure,
    "wind_speed": lambda d: d.wind_speed,
    "sunshine_hours": lambda d: d.sunshine_hours,
    "prev_day_temp_delta": lambda d: d.prev_day_temp_delta,
    "prev_day_ideal": lambda d: _bool_as_number(d.prev_day_ideal),
}


def compute_factor_correlations(data: list[CorrelationDatum]) -> dict[str, FactorCorrelation]:
    """Correlate every factor in :data:`FACTORS` against daily volume."""
    volumes: list[float | None] = [d.volume for d in data]
    return {name: pearson([extract(d) for d in data], volumes) for name, extract in FACTORS.items()}


def temperature_delta_correlation(data: list[CorrelationDatum]) -> float | None:
    """Single-factor coefficient for the legacy correlation view."""
    return pearson([d.temp_delta for d in data], [d.volume for d in data]).coefficient


# =============================================================================
# Insights
# =============================================================================

INSIGHT_MESSAGES: dict[str, dict[str, str]] = {
    "temp_delta": {
        "positive": "Larger temperature swings correlate with higher sap flow",
        "negative": "Smaller temperature swings correlate with higher sap flow",
    },
    "temp_high": {
        "positive": "Warmer daytime highs correlate with more sap production",
        "negative": "Cooler daytime highs correlate with more sap production",
    },
    "temp_low": {
        "positive": "Warmer overnight lows correlate with higher yields",
        "negative": "Colder overnight lows correlate with higher yields",
    },
    "precipitation": {
        "positive": "Precipitation correlates with increased flow",
        "negative": "Dry days correlate with higher sap flow",
    },
    "humidity": {
        "positive": "Higher humidity correlates with more sap production",
        "negative": "Lower humidity correlates with better yields",
    },
    "pressure": {
        "positive": "High pressure systems correlate with better flow",
        "negative": "Low pressure systems correlate with better flow",
    },
    "wind_speed": {
        "positive": "Windier days correlate with higher yields",
        "negative": "Calm days correlate with better sap flow",
    },
    "sunshine_hours": {
        "positive": "Sunnier days correlate with more sap production",
        "negative": "Cloudier days correlate with better yields",
    },
    "prev_day_temp_delta": {
        "positive": "A large temperature swing the previous day predicts good flow",
        "negative": "Stable temperatures the previous day predict better flow",
    },
    "prev_day_ideal": {
        "positive": "Ideal conditions the previous day predict good flow the next day",
        "negative": "Non-ideal previous days surprisingly predict better flow",
    },
}


def generate_insights(correlations: dict[str, FactorCorrelation]) -> list[Insight]:
    """One message per moderate/strong factor, strongest first."""
    insights: list[Insight] = []
    for factor, corr in correlations.items():
        if corr.coefficient is None or not corr.strength.is_notable:
            continue
        direction = "positive" if corr.coefficient > 0 else "negative"
        message = INSIGHT_MESSAGES.get(factor, {}).get(direction)
        if message:
            insights.append(
                Insight(
                    factor=factor,
                    coefficient=corr.coefficient,
                    strength=corr.strength,
                    message=message,
                )
            )

    return sorted(insights, key=lambda i: abs(i.coefficient), reverse=True)
