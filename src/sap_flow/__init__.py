"""Sap Flow - weather/yield correlation and sap-flow forecasting.

Architecture::

    datasources/   Open-Meteo forecast + archive adapters (one daily record shape)
    services/      Shared HTTP session, cache-aware WeatherService
    store.py       JSON envelope store + weather cache stores (memory, file)
    analysis/      Correlation, linear algebra, regression and baseline predictors
    coalesce.py    Short-TTL memoization with in-flight request sharing
    engine.py      YieldEngine: correlation, predictions, analytics bundle
    flows/         Prefect orchestration (analytics report)

Data flow: repository + datasources -> weather cache -> analysis -> engine results
"""

__version__ = "0.1.0"

from sap_flow.config import Settings
from sap_flow.engine import YieldEngine

__all__ = ["Settings", "YieldEngine", "__version__"]
