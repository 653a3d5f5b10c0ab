"""
Domain models for the sap flow engine.

Pydantic models for the results the engine hands back to callers. Upstream
weather records live in ``datasources.weather.models`` as dataclasses; these
models describe what leaves the engine.
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field

# =============================================================================
# Enums
# =============================================================================


class TemperatureUnit(StrEnum):
    """Temperature unit a caller wants results expressed in."""

    FAHRENHEIT = "fahrenheit"
    CELSIUS = "celsius"


class Strength(StrEnum):
    """Qualitative strength of a correlation coefficient."""

    NONE = "none"
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"

    @property
    def is_notable(self) -> bool:
        """Moderate or strong."""
        return self in (Strength.MODERATE, Strength.STRONG)


# =============================================================================
# Inputs from the record-keeping layer
# =============================================================================


class YieldRecord(BaseModel):
    """One raw sap-collection entry (many may share a date)."""

    date: date
    volume: float | None = None


# =============================================================================
# Correlation
# =============================================================================


class CorrelationDatum(BaseModel):
    """A daily yield total joined with same-day and lagged weather."""

    date: date
    volume: float
    volume_per_tap: float | None = None
    temp_high: float
    temp_low: float
    temp_delta: float
    precipitation: float | None = None
    precipitation_hours: float | None = None
    humidity: float | None = None
    pressure: float | None = None
    wind_speed: float | None = None
    wind_direction: float | None = None
    sunshine_hours: float | None = None
    solar_radiation: float | None = None
    ideal_conditions: bool
    prev_day_temp_high: float | None = None
    prev_day_temp_low: float | None = None
    prev_day_temp_delta: float | None = None
    prev_day_ideal: bool | None = None
    prev_day2_temp_high: float | None = None
    prev_day2_temp_low: float | None = None


class FactorCorrelation(BaseModel):
    """Pearson correlation of one weather factor against daily volume."""

    coefficient: float | None = Field(default=None, ge=-1, le=1)
    strength: Strength = Strength.NONE
    sample_size: int = 0


class Insight(BaseModel):
    """Human-readable finding for a moderate or strong factor."""

    factor: str
    coefficient: float
    strength: Strength
    message: str


class WeatherCorrelation(BaseModel):
    """Single-factor (temperature delta) correlation view."""

    data: list[CorrelationDatum] = Field(default_factory=list)
    correlation: float | None = None
    ideal_days_count: int = 0
    total_days: int = 0
    total_taps: int | None = None


class DetailedCorrelation(BaseModel):
    """Per-factor correlations with insights."""

    data: list[CorrelationDatum] = Field(default_factory=list)
    correlations: dict[str, FactorCorrelation] = Field(default_factory=dict)
    insights: list[Insight] = Field(default_factory=list)
    total_days: int = 0
    total_taps: int | None = None
    ideal_days_count: int = 0


# =============================================================================
# Predictions
# =============================================================================


class PredictionPoint(BaseModel):
    """Forecast yield for one day."""

    date: date
    predicted_volume: float = Field(..., ge=0)
    predicted_volume_per_tap: float | None = None
    temp_high: float
    temp_low: float
    ideal_for_sap: bool


class FlowPredictions(BaseModel):
    """Regression forecast, or an explicit insufficient-data marker."""

    predictions: list[PredictionPoint] = Field(default_factory=list)
    model_quality: float | None = None
    total_days: int = 0
    total_taps: int | None = None
    features_used: list[str] = Field(default_factory=list)
    insufficient_data: bool = False


class TraditionalPredictions(BaseModel):
    """Freeze/thaw rule forecast used as a baseline."""

    predictions: list[PredictionPoint] = Field(default_factory=list)
    method: str = "traditional"
    description: str = ""
    total_days: int = 0
    total_taps: int | None = None
    insufficient_data: bool = False


class WeatherAnalytics(BaseModel):
    """Detailed correlation plus both forecasts, computed from one correlation pass."""

    detailed_correlation: DetailedCorrelation
    flow_predictions: FlowPredictions
    conventional_predictions: TraditionalPredictions
