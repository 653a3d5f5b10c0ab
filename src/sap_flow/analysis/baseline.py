"""Freeze/thaw rule baseline forecast.

No statistics: a forecast day either meets the freeze/thaw rule or it
doesn't. Ideal days are predicted to yield the season's average volume on
ideal days; every other day yields 0.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sap_flow.analysis.correlation import per_tap
from sap_flow.datasources.weather.conditions import is_sap_flow_ideal
from sap_flow.schemas import CorrelationDatum, PredictionPoint

if TYPE_CHECKING:
    from sap_flow.datasources.weather.models import DailyWeatherRecord

DESCRIPTION = (
    "Ideal vs non-ideal from the freeze-thaw rule (cold nights + warm days). "
    "Volume on ideal days uses your average collection on ideal days."
)


def average_ideal_volume(data: list[CorrelationDatum]) -> float | None:
    """Mean volume over ideal days, or None if there were none."""
    ideal = [d.volume for d in data if d.ideal_conditions]
    if not ideal:
        return None
    return sum(ideal) / len(ideal)


def predict_traditional(
    data: list[CorrelationDatum],
    forecast: list[DailyWeatherRecord],
    temperature_unit: str = "fahrenheit",
    total_taps: int = 0,
) -> tuple[list[PredictionPoint], float | None]:
    """Rule-based forecast.

    Returns:
        ``(predictions, average_ideal_volume)``.
    """
    average = average_ideal_volume(data)
    predictions: list[PredictionPoint] = []
    for day in forecast:
        high = day.temp_high if day.temp_high is not None else 0.0
        low = day.temp_low if day.temp_low is not None else 0.0
        ideal = is_sap_flow_ideal(high, low, temperature_unit)
        volume = round(average, 2) if ideal and average is not None else 0.0
        predictions.append(
            PredictionPoint(
                date=day.date,
                predicted_volume=volume,
                predicted_volume_per_tap=per_tap(volume, total_taps),
                temp_high=high,
                temp_low=low,
                ideal_for_sap=ideal,
            )
        )
    return predictions, average
