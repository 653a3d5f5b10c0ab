"""
Prefect flow that computes weather analytics for one season.

Loads collection entries from a JSON seasons file, runs the engine with a
file-backed weather cache (so repeated runs reuse cached archive days), and
writes the result through the data store.

Run locally:
    python -m sap_flow.flows.analytics seasons.json 2026
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any

from prefect import flow, task

from sap_flow.config import get_settings
from sap_flow.engine import YieldEngine
from sap_flow.repository import load_repository
from sap_flow.services.weather import WeatherService
from sap_flow.services.weather_cache import WeatherCache
from sap_flow.store import DataStore, FileWeatherStore

# Module-level store, pointed at the configured data directory
store = DataStore(get_settings().data_dir)


def report_path(season_id: str) -> Path:
    """Store-relative path of a season's analytics report."""
    return Path("derived") / "analytics" / f"{season_id}.json"


@task(name="compute-analytics")
def compute_analytics(
    records_path: Path,
    season_id: str,
    lat: float,
    lon: float,
    unit: str = "fahrenheit",
) -> dict[str, Any]:
    """Run correlation and both forecasts; return a JSON-compatible dict."""
    settings = get_settings()
    repository = load_repository(records_path)
    cache = WeatherCache.from_settings(FileWeatherStore(store), settings)
    engine = YieldEngine.from_settings(
        repository, WeatherService.from_settings(cache, settings), settings
    )
    analytics = asyncio.run(engine.get_weather_analytics(season_id, lat, lon, unit))
    return analytics.model_dump(mode="json")


@task(name="save-analytics")
def save_analytics(
    season_id: str, analytics: dict[str, Any], lat: float, lon: float, unit: str
) -> Path:
    """Write the analytics report via the store."""
    return store.write(
        report_path(season_id),
        analytics,
        source="sap-flow",
        location={"lat": lat, "lon": lon},
        unit=unit,
    )


@flow(name="season-analytics", log_prints=True)
def season_analytics(
    records_path: Path,
    season_id: str,
    lat: float | None = None,
    lon: float | None = None,
    unit: str = "fahrenheit",
) -> dict[str, Any]:
    """Compute and save weather analytics for ``season_id``."""
    settings = get_settings()
    lat = settings.lat if lat is None else lat
    lon = settings.lon if lon is None else lon

    analytics = compute_analytics(records_path, season_id, lat, lon, unit)
    output_path = save_analytics(season_id, analytics, lat, lon, unit)

    detailed = analytics["detailed_correlation"]
    flow_predictions = analytics["flow_predictions"]
    print(f"Season {season_id}: {detailed['total_days']} matched days, report at {output_path}")

    return {
        "season_id": season_id,
        "total_days": detailed["total_days"],
        "insights": len(detailed["insights"]),
        "flow_predictions": len(flow_predictions["predictions"]),
        "model_quality": flow_predictions["model_quality"],
        "report": str(output_path),
    }


if __name__ == "__main__":
    result = season_analytics(Path(sys.argv[1]), sys.argv[2])
    print(f"Flow complete: {result}")
