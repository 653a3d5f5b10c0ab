"""WMO weather codes, unit conversion and the freeze/thaw rule.

Sap runs when nights freeze and days thaw. Thresholds:

    Fahrenheit: low < 32 and high > 40
    Celsius:    low < 0  and high > 4.4
"""

from __future__ import annotations

FREEZING_F = 32.0
THAW_F = 40.0
FREEZING_C = 0.0
THAW_C = 4.4

WMO_CONDITIONS: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def conditions_from_code(code: int | None) -> str:
    """Describe a WMO weather code ("Unknown" if unrecognised)."""
    if code is None:
        return "Unknown"
    return WMO_CONDITIONS.get(int(code), "Unknown")


def fahrenheit_to_celsius(value: float | None) -> float | None:
    """Convert to Celsius, rounded to 1 decimal. None passes through."""
    if value is None:
        return None
    return round((value - 32) * 5 / 9, 1)


def is_sap_flow_ideal(
    temp_high: float | None,
    temp_low: float | None,
    temperature_unit: str = "fahrenheit",
) -> bool:
    """Freeze/thaw rule: freezing low and a high above the thaw threshold.

    Args:
        temp_high: Daily high in ``temperature_unit``.
        temp_low: Daily low in ``temperature_unit``.
        temperature_unit: ``"fahrenheit"`` or ``"celsius"``.
    """
    if temp_high is None or temp_low is None:
        return False
    if temperature_unit == "celsius":
        return temp_low < FREEZING_C and temp_high > THAW_C
    return temp_low < FREEZING_F and temp_high > THAW_F
