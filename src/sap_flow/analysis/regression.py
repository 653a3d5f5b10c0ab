"""Linear regression forecast of daily sap volume from weather.

Pipeline (each stage is a plain function so it can be tested on its own):

1. :func:`select_optional_features` - keep sunshine/pressure/humidity/wind
   only when their correlation with volume is moderate or strong.
2. :func:`build_design` - one row per day::

       [1, temp_high, temp_low, temp_delta, prev_high, prev_low, ideal, *optional]

   Missing lag temperatures fall back to same-day values; missing optional
   values are imputed with the training mean.
3. :func:`drop_constant_columns` - remove non-intercept columns with ~zero
   variance (they make ``X^T X`` singular and carry no information).
4. :func:`fit` - OLS on the kept columns. If that fails, refit the minimal
   ``[1, temp_high, temp_low]`` model. If that fails too, no model.
5. :func:`predict` - apply the model to forecast days; volumes are clamped to
   >= 0 and rounded to 2 decimals.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from loguru import logger

from sap_flow.analysis.correlation import MIN_SAMPLE_SIZE, per_tap
from sap_flow.analysis.linalg import LinAlgError, least_squares
from sap_flow.datasources.weather.conditions import is_sap_flow_ideal
from sap_flow.schemas import CorrelationDatum, FactorCorrelation, PredictionPoint

if TYPE_CHECKING:
    from sap_flow.datasources.weather.models import DailyWeatherRecord

VARIANCE_EPSILON = 1e-10

INTERCEPT = "intercept"
BASE_FEATURES = [
    INTERCEPT,
    "temp_high",
    "temp_low",
    "temp_delta",
    "prev_day_temp_high",
    "prev_day_temp_low",
    "ideal_conditions",
]
MINIMAL_FEATURES = [INTERCEPT, "temp_high", "temp_low"]


# =============================================================================
# Optional features
# =============================================================================


def has_notable_correlation(corr: FactorCorrelation | None) -> bool:
    """Valid (>= 3 samples, non-null) and moderate or strong."""
    return (
        corr is not None
        and corr.coefficient is not None
        and corr.sample_size >= MIN_SAMPLE_SIZE
        and corr.strength.is_notable
    )


@dataclass(frozen=True)
class OptionalFeature:
    """A weather column that joins the model only when it earns its place."""

    name: str
    extract: Callable[[Any], float | None]
    include: Callable[[FactorCorrelation | None], bool] = has_notable_correlation


#: Evaluated in order; works on CorrelationDatum and DailyWeatherRecord alike
OPTIONAL_FEATURES: tuple[OptionalFeature, ...] = (
    OptionalFeature("sunshine_hours", lambda d: d.sunshine_hours),
    OptionalFeature("pressure", lambda d: d.pressure),
    OptionalFeature("humidity", lambda d: d.humidity),
    OptionalFeature("wind_speed", lambda d: d.wind_speed),
)


def select_optional_features(
    correlations: dict[str, FactorCorrelation],
    candidates: Sequence[OptionalFeature] = OPTIONAL_FEATURES,
) -> list[OptionalFeature]:
    """Candidates whose inclusion predicate accepts their correlation."""
    return [f for f in candidates if f.include(correlations.get(f.name))]


# =============================================================================
# Design matrix
# =============================================================================


@dataclass
class Design:
    """Full feature matrix plus what is needed to rebuild rows for forecasts."""

    names: list[str]
    rows: list[list[float]]
    optional: list[OptionalFeature]
    means: dict[str, float] = field(default_factory=dict)

    def row(
        self,
        source: Any,
        temp_high: float,
        temp_low: float,
        prev_high: float,
        prev_low: float,
        ideal: bool,
    ) -> list[float]:
        """Full-width feature row for one day."""
        values = [1.0, temp_high, temp_low, temp_high - temp_low, prev_high, prev_low, float(ideal)]
        for feature in self.optional:
            value = feature.extract(source)
            values.append(value if value is not None else self.means[feature.name])
        return values


def _mean_present(values: list[float | None]) -> float:
    present = [v for v in values if v is not None]
    return sum(present) / len(present) if present else 0.0


def build_design(data: list[CorrelationDatum], optional: list[OptionalFeature]) -> Design:
    """Feature rows for the training window."""
    design = Design(
        names=BASE_FEATURES + [f.name for f in optional],
        rows=[],
        optional=optional,
        means={f.name: _mean_present([f.extract(d) for d in data]) for f in optional},
    )
    for d in data:
        design.rows.append(
            design.row(
                d,
                d.temp_high,
                d.temp_low,
                d.prev_day_temp_high if d.prev_day_temp_high is not None else d.temp_high,
                d.prev_day_temp_low if d.prev_day_temp_low is not None else d.temp_low,
                d.ideal_conditions,
            )
        )
    return design


def column_variances(rows: list[list[float]]) -> list[float]:
    """Population variance of every column."""
    if not rows:
        return []
    n = len(rows)
    variances = []
    for col in zip(*rows, strict=True):
        mean = sum(col) / n
        variances.append(sum((v - mean) ** 2 for v in col) / n)
    return variances


def drop_constant_columns(rows: list[list[float]]) -> list[int]:
    """Indices of columns to keep: the intercept plus every non-constant column."""
    return [
        i for i, variance in enumerate(column_variances(rows)) if i == 0 or variance >= VARIANCE_EPSILON
    ]


# =============================================================================
# Fitting
# =============================================================================


@dataclass
class FittedModel:
    """OLS coefficients aligned with ``feature_names`` (intercept first)."""

    feature_names: list[str]
    coefficients: list[float]
    columns: list[int]
    r_squared: float | None = None

    @property
    def features_used(self) -> list[str]:
        """Feature names excluding the intercept."""
        return [n for n in self.feature_names if n != INTERCEPT]

    def evaluate(self, full_row: list[float]) -> float:
        """Raw model output for a full-width feature row."""
        return sum(c * full_row[i] for c, i in zip(self.coefficients, self.columns, strict=True))


def r_squared(y: list[float], fitted: list[float]) -> float | None:
    """Coefficient of determination, rounded to 2 decimals (None if y is constant)."""
    mean_y = sum(y) / len(y)
    ss_tot = sum((v - mean_y) ** 2 for v in y)
    if ss_tot <= 0:
        return None
    ss_res = sum((v - f) ** 2 for v, f in zip(y, fitted, strict=True))
    return round(1 - ss_res / ss_tot, 2)


def _fit_columns(design: Design, y: list[float], columns: list[int]) -> FittedModel:
    x = [[row[i] for i in columns] for row in design.rows]
    model = FittedModel(
        feature_names=[design.names[i] for i in columns],
        coefficients=least_squares(x, y),
        columns=columns,
    )
    model.r_squared = r_squared(y, [model.evaluate(row) for row in design.rows])
    return model


def fit(design: Design, y: list[float]) -> FittedModel | None:
    """Fit the pruned full model, falling back to the minimal model.

    Returns:
        The fitted model, or None if even the minimal model is singular.
    """
    kept = drop_constant_columns(design.rows)
    logger.debug(
        "Regression n={} columns={} kept={}",
        len(design.rows),
        len(design.names),
        [design.names[i] for i in kept],
    )
    try:
        return _fit_columns(design, y, kept)
    except LinAlgError as exc:
        logger.info("Full regression failed ({}), trying minimal model", exc)

    try:
        return _fit_columns(design, y, [BASE_FEATURES.index(n) for n in MINIMAL_FEATURES])
    except LinAlgError as exc:
        logger.info("Minimal regression failed: {}", exc)
        return None


# =============================================================================
# Forecast
# =============================================================================


def predict(
    model: FittedModel,
    design: Design,
    forecast: list[DailyWeatherRecord],
    temperature_unit: str = "fahrenheit",
    total_taps: int = 0,
) -> list[PredictionPoint]:
    """Project ``model`` over forecast days.

    The previous forecast day supplies lag features; the first day (no
    neighbor) uses its own temperatures.
    """
    by_date = {d.date: d for d in forecast}
    predictions: list[PredictionPoint] = []
    for i, day in enumerate(forecast):
        prev = by_date.get(day.date - timedelta(days=1)) or (forecast[i - 1] if i > 0 else None)
        high = day.temp_high if day.temp_high is not None else 0.0
        low = day.temp_low if day.temp_low is not None else 0.0
        prev_high = prev.temp_high if prev is not None and prev.temp_high is not None else high
        prev_low = prev.temp_low if prev is not None and prev.temp_low is not None else low
        ideal = is_sap_flow_ideal(high, low, temperature_unit)

        raw = model.evaluate(design.row(day, high, low, prev_high, prev_low, ideal))
        volume = max(0.0, round(raw, 2))
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
    return predictions
