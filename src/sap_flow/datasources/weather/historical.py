"""Historical daily weather from the Open-Meteo Archive API.

The archive rate-limits aggressively; a single 429 is retried once after a
fixed delay. A second 429, or any other error, raises.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from loguru import logger

from sap_flow.datasources.weather import client
from sap_flow.datasources.weather.parse import parse_daily_response

if TYPE_CHECKING:
    from datetime import date

    from sap_flow.datasources.weather.models import DailyWeatherRecord

SOURCE = "archive"

RATE_LIMIT_RETRY_DELAY = 2.5  # seconds


def fetch_archive(
    lat: float,
    lon: float,
    start: date,
    end: date,
    *,
    retry_delay: float = RATE_LIMIT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> list[DailyWeatherRecord]:
    """
    Fetch daily weather for an explicit window from the archive API.

    Args:
        lat: Latitude.
        lon: Longitude.
        start: First date (inclusive).
        end: Last date (inclusive).
        retry_delay: Seconds to wait before retrying a rate-limited request.
        sleep: Sleep function (injected by tests).

    Returns:
        Daily records ordered by date.

    Raises:
        WeatherFetchError: On network failure or a non-2xx response.
    """
    params: dict[str, Any] = {
        **client.base_params(lat, lon),
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    }

    resp = client.get(client.OPEN_METEO_HISTORICAL, params, SOURCE)
    if resp.status_code == client.HTTP_TOO_MANY_REQUESTS:
        logger.warning("Archive rate-limited for {}..{}, retrying in {}s", start, end, retry_delay)
        sleep(retry_delay)
        resp = client.get(client.OPEN_METEO_HISTORICAL, params, SOURCE)

    return parse_daily_response(client.check(resp, SOURCE))
