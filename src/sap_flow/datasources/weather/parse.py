"""Normalize Open-Meteo responses into :class:`DailyWeatherRecord` lists.

Both APIs return column-oriented ``daily`` arrays plus an ``hourly`` block.
Humidity and pressure only exist hourly, so each day's value is the mean of
its 24-hour block. Missing hourly samples are skipped; a day with no samples
gets None.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from sap_flow.datasources.weather.models import DailyWeatherRecord

HOURS_PER_DAY = 24


def _mean(values: list[Any]) -> float | None:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def daily_averages(hourly: dict[str, Any], day_index: int) -> tuple[float | None, float | None]:
    """Average hourly humidity and pressure over one day's 24-hour block.

    Args:
        hourly: The ``hourly`` block of an Open-Meteo response.
        day_index: 0-based index of the day in the ``daily`` arrays.

    Returns:
        ``(humidity, pressure)`` with humidity rounded to a whole percent and
        pressure to 1 decimal (hPa). Either is None when no samples exist.
    """
    n_hours = len(hourly.get("time", []))
    start = day_index * HOURS_PER_DAY
    end = min(start + HOURS_PER_DAY, n_hours)

    humidity = _mean(hourly.get("relative_humidity_2m", [])[start:end])
    pressure = _mean(hourly.get("surface_pressure", [])[start:end])
    return (
        round(humidity) if humidity is not None else None,
        round(pressure, 1) if pressure is not None else None,
    )


def _at(daily: dict[str, Any], key: str, i: int) -> Any:
    values = daily.get(key)
    if not values or i >= len(values):
        return None
    return values[i]


def parse_daily_response(data: dict[str, Any]) -> list[DailyWeatherRecord]:
    """Convert a forecast or archive response to daily records.

    Args:
        data: Raw API response dict with ``daily`` (and optionally ``hourly``).

    Returns:
        One record per entry in ``daily.time``, in response order.
    """
    daily = data.get("daily", {})
    hourly = data.get("hourly")
    timezone = data.get("timezone")

    records: list[DailyWeatherRecord] = []
    for i, date_str in enumerate(daily.get("time", [])):
        humidity, pressure = daily_averages(hourly, i) if hourly else (None, None)
        high = _at(daily, "temperature_2m_max", i)
        low = _at(daily, "temperature_2m_min", i)
        sunshine_seconds = _at(daily, "sunshine_duration", i)

        records.append(
            DailyWeatherRecord(
                date=date.fromisoformat(date_str),
                temp_high=high,
                temp_low=low,
                temp_avg=(high + low) / 2 if high is not None and low is not None else None,
                precipitation=_at(daily, "precipitation_sum", i),
                precipitation_hours=_at(daily, "precipitation_hours", i),
                humidity=humidity,
                pressure=pressure,
                wind_speed=_at(daily, "wind_speed_10m_max", i),
                wind_direction=_at(daily, "wind_direction_10m_dominant", i),
                sunshine_hours=(
                    round(sunshine_seconds / 3600, 1) if sunshine_seconds is not None else None
                ),
                solar_radiation=_at(daily, "shortwave_radiation_sum", i),
                weather_code=_at(daily, "weather_code", i),
                sunrise=_at(daily, "sunrise", i),
                sunset=_at(daily, "sunset", i),
                timezone=timezone,
            )
        )

    return records
