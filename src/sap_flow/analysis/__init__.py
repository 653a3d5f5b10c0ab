"""Yield/weather joins, statistics and forecasting models.

Dependency rule: analysis/ imports datasource *models* and schemas only.
It never fetches data; the engine passes weather and yield records in.

Modules:
  - correlation: yield + weather join, Pearson per factor, insights
  - linalg: transpose / multiply / Gauss-Jordan inverse / least squares
  - regression: feature selection, design matrix, OLS with fallback, forecast
  - baseline: freeze/thaw rule forecast for comparison
"""

from sap_flow.analysis.baseline import average_ideal_volume, predict_traditional
from sap_flow.analysis.correlation import (
    FACTORS,
    aggregate_yield,
    build_dataset,
    classify_strength,
    compute_factor_correlations,
    generate_insights,
    pearson,
    temperature_delta_correlation,
)
from sap_flow.analysis.linalg import SingularMatrixError, UnderdeterminedError
from sap_flow.analysis.regression import (
    OPTIONAL_FEATURES,
    FittedModel,
    OptionalFeature,
    build_design,
    fit,
    predict,
    select_optional_features,
)

__all__ = [
    "FACTORS",
    "OPTIONAL_FEATURES",
    "FittedModel",
    "OptionalFeature",
    "SingularMatrixError",
    "UnderdeterminedError",
    "aggregate_yield",
    "average_ideal_volume",
    "build_dataset",
    "build_design",
    "classify_strength",
    "compute_factor_correlations",
    "fit",
    "generate_insights",
    "pearson",
    "predict",
    "predict_traditional",
    "select_optional_features",
    "temperature_delta_correlation",
]
