"""Near-term weather (recent past + forecast) from the Open-Meteo Forecast API."""

from __future__ import annotations

from typing import Any

from loguru import logger

from sap_flow.datasources.weather import client
from sap_flow.datasources.weather.models import DailyWeatherRecord
from sap_flow.datasources.weather.parse import parse_daily_response

SOURCE = "forecast"


def fetch_recent(
    lat: float,
    lon: float,
    *,
    past_days: int = 7,
    forecast_days: int = 7,
) -> list[DailyWeatherRecord]:
    """
    Fetch a rolling window of past days plus forecast days.

    Args:
        lat: Latitude.
        lon: Longitude.
        past_days: Days before today to include (max 92).
        forecast_days: Days from today to forecast (max 16).

    Returns:
        Daily records ordered by date.

    Raises:
        WeatherFetchError: On network failure or a non-2xx response.
    """
    params: dict[str, Any] = {
        **client.base_params(lat, lon),
        "past_days": past_days,
        "forecast_days": forecast_days,
    }
    logger.debug("Forecast request ({}, {}) past={} forecast={}", lat, lon, past_days, forecast_days)
    resp = client.get(client.OPEN_METEO_API, params, SOURCE)
    return parse_daily_response(client.check(resp, SOURCE))
