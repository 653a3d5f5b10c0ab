"""Open-Meteo API client constants and shared request helper.

API docs:
  - Forecast: https://open-meteo.com/en/docs
  - Archive: https://open-meteo.com/en/docs/historical-weather-api
"""

from __future__ import annotations

from typing import Any

import requests

from sap_flow.services.http import session

OPEN_METEO_API = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_HISTORICAL = "https://archive-api.open-meteo.com/v1/archive"

# Daily variables we request from both APIs
DAILY_VARS = [
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "precipitation_hours",
    "weather_code",
    "sunrise",
    "sunset",
    "wind_speed_10m_max",
    "wind_direction_10m_dominant",
    "shortwave_radiation_sum",
    "sunshine_duration",
]

# Hourly variables reduced to daily averages
HOURLY_VARS = [
    "relative_humidity_2m",
    "surface_pressure",
]

# Imperial units; Celsius is a post-processing step
UNIT_PARAMS: dict[str, str] = {
    "timezone": "auto",
    "temperature_unit": "fahrenheit",
    "precipitation_unit": "inch",
    "wind_speed_unit": "mph",
}

HTTP_TOO_MANY_REQUESTS = 429


class WeatherFetchError(RuntimeError):
    """An upstream weather request failed."""

    def __init__(self, source: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{source} weather API error: {message}")
        self.source = source
        self.status_code = status_code


def base_params(lat: float, lon: float) -> dict[str, Any]:
    """Query parameters shared by forecast and archive requests."""
    return {
        "latitude": lat,
        "longitude": lon,
        "daily": DAILY_VARS,
        "hourly": HOURLY_VARS,
        **UNIT_PARAMS,
    }


def get(url: str, params: dict[str, Any], source: str) -> requests.Response:
    """GET ``url``, wrapping network errors in :class:`WeatherFetchError`.

    The response is returned unchecked so callers can inspect the status.
    """
    try:
        return session.get(url, params=params)
    except requests.RequestException as exc:
        raise WeatherFetchError(source, str(exc)) from exc


def check(resp: requests.Response, source: str) -> dict[str, Any]:
    """Raise :class:`WeatherFetchError` on a non-2xx response, else return JSON."""
    if not resp.ok:
        raise WeatherFetchError(source, f"HTTP {resp.status_code}", resp.status_code)
    result: dict[str, Any] = resp.json()
    return result
