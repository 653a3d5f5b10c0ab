"""Weather data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any

from sap_flow.datasources.weather.conditions import (
    conditions_from_code,
    fahrenheit_to_celsius,
    is_sap_flow_ideal,
)


@dataclass
class DailyWeatherRecord:
    """One location-local day of weather, in Open-Meteo's imperial units.

    Temperatures are Fahrenheit, precipitation inches, wind mph. Humidity and
    pressure are daily averages of the hourly series.
    """

    date: date
    temp_high: float | None
    temp_low: float | None
    temp_avg: float | None = None
    precipitation: float | None = None
    precipitation_hours: float | None = None
    humidity: float | None = None
    pressure: float | None = None
    wind_speed: float | None = None
    wind_direction: float | None = None
    sunshine_hours: float | None = None
    solar_radiation: float | None = None
    weather_code: int | None = None
    sunrise: str | None = None
    sunset: str | None = None
    timezone: str | None = None

    @property
    def conditions(self) -> str:
        """WMO weather code description."""
        return conditions_from_code(self.weather_code)

    def ideal_for_sap(self, temperature_unit: str = "fahrenheit") -> bool:
        """Freeze/thaw rule for this day, with temperatures in ``temperature_unit``."""
        return is_sap_flow_ideal(self.temp_high, self.temp_low, temperature_unit)

    def to_celsius(self) -> DailyWeatherRecord:
        """Copy with temperature fields converted to Celsius (1 decimal)."""
        return replace(
            self,
            temp_high=fahrenheit_to_celsius(self.temp_high),
            temp_low=fahrenheit_to_celsius(self.temp_low),
            temp_avg=fahrenheit_to_celsius(self.temp_avg),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible dict (date as ISO string)."""
        result = asdict(self)
        result["date"] = self.date.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyWeatherRecord:
        """Inverse of :meth:`to_dict`; unknown keys are ignored."""
        known = {f for f in cls.__dataclass_fields__}
        values = {k: v for k, v in data.items() if k in known}
        values["date"] = date.fromisoformat(str(values["date"])[:10])
        return cls(**values)


@dataclass
class FailedWindow:
    """An upstream sub-window that could not be fetched."""

    source: str  # "archive" or "forecast"
    start: date
    end: date
    error: str


@dataclass
class FetchOutcome:
    """Result of a cache-backed range lookup.

    ``days`` holds every record that could be obtained, sorted by date.
    ``failed_windows`` lists upstream windows that failed; the lookup is still
    usable when it is non-empty.
    """

    days: list[DailyWeatherRecord] = field(default_factory=list)
    failed_windows: list[FailedWindow] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True when no upstream window failed."""
        return not self.failed_windows

    def by_date(self) -> dict[date, DailyWeatherRecord]:
        """Index days by date."""
        return {d.date: d for d in self.days}
