"""Open-Meteo weather data source.

Fetches daily weather from two providers and normalizes both into
:class:`DailyWeatherRecord`:

Public API:
  - forecast: fetch_recent (rolling past window + forecast days)
  - historical: fetch_archive (explicit window, one rate-limit retry)
  - parse: parse_daily_response, daily_averages
  - conditions: conditions_from_code, fahrenheit_to_celsius, is_sap_flow_ideal
  - models: DailyWeatherRecord, FetchOutcome, FailedWindow
"""

from sap_flow.datasources.weather.client import (
    OPEN_METEO_API,
    OPEN_METEO_HISTORICAL,
    WeatherFetchError,
)
from sap_flow.datasources.weather.conditions import (
    conditions_from_code,
    fahrenheit_to_celsius,
    is_sap_flow_ideal,
)
from sap_flow.datasources.weather.forecast import fetch_recent
from sap_flow.datasources.weather.historical import fetch_archive
from sap_flow.datasources.weather.models import DailyWeatherRecord, FailedWindow, FetchOutcome
from sap_flow.datasources.weather.parse import daily_averages, parse_daily_response

__all__ = [
    "OPEN_METEO_API",
    "OPEN_METEO_HISTORICAL",
    "DailyWeatherRecord",
    "FailedWindow",
    "FetchOutcome",
    "WeatherFetchError",
    "conditions_from_code",
    "daily_averages",
    "fahrenheit_to_celsius",
    "fetch_archive",
    "fetch_recent",
    "is_sap_flow_ideal",
    "parse_daily_response",
]
