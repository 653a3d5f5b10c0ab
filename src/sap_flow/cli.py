"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from sap_flow import __version__
from sap_flow.config import get_settings
from sap_flow.datasources.weather.client import WeatherFetchError
from sap_flow.engine import YieldEngine
from sap_flow.flows.analytics import season_analytics
from sap_flow.log import setup_logging
from sap_flow.repository import load_repository
from sap_flow.schemas import TemperatureUnit, WeatherAnalytics
from sap_flow.services.weather import WeatherService
from sap_flow.services.weather_cache import WeatherCache
from sap_flow.store import DataStore, FileWeatherStore


def _add_location_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--lat", type=float, default=None, help="Latitude (default: from settings)")
    parser.add_argument("--lon", type=float, default=None, help="Longitude (default: from settings)")
    parser.add_argument(
        "--unit",
        choices=[u.value for u in TemperatureUnit],
        default=TemperatureUnit.FAHRENHEIT.value,
        help="Temperature unit (default: fahrenheit)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="sap-flow",
        description="Weather/yield correlation and sap-flow forecasting for maple producers",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")

    # 'forecast' command - 7-day forecast with the freeze/thaw rule
    forecast_parser = subparsers.add_parser("forecast", help="Show the 7-day sap-flow forecast")
    _add_location_args(forecast_parser)

    # 'analyze' command - correlation + predictions printed to stdout
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a season's yield against weather")
    analyze_parser.add_argument("records", type=Path, help="JSON seasons file")
    analyze_parser.add_argument("season", help="Season id in the seasons file")
    analyze_parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    _add_location_args(analyze_parser)

    # 'report' command - Prefect flow writing an analytics report
    report_parser = subparsers.add_parser("report", help="Run the analytics flow and save a report")
    report_parser.add_argument("records", type=Path, help="JSON seasons file")
    report_parser.add_argument("season", help="Season id in the seasons file")
    _add_location_args(report_parser)

    return parser


def _location(args: argparse.Namespace) -> tuple[float, float]:
    settings = get_settings()
    lat = settings.lat if args.lat is None else args.lat
    lon = settings.lon if args.lon is None else args.lon
    return lat, lon


def _weather_service() -> WeatherService:
    settings = get_settings()
    cache = WeatherCache.from_settings(FileWeatherStore(DataStore(settings.data_dir)), settings)
    return WeatherService.from_settings(cache, settings)


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Debug: {settings.debug}")
    print(f"Location: ({settings.lat}, {settings.lon})")
    print(f"Data dir: {settings.data_dir}")
    return 0


def cmd_forecast(args: argparse.Namespace) -> int:
    """Handle the 'forecast' command."""
    lat, lon = _location(args)
    try:
        days = asyncio.run(_weather_service().get_forecast(lat, lon, args.unit))
    except WeatherFetchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    symbol = "C" if args.unit == TemperatureUnit.CELSIUS else "F"
    print(f"Forecast for ({lat}, {lon}):")
    for day in days:
        marker = "*" if day.ideal_for_sap(args.unit) else " "
        print(
            f" {marker} {day.date.isoformat()}  "
            f"{day.temp_low}/{day.temp_high}{symbol}  {day.conditions}"
        )
    print("* = freeze/thaw day (good sap flow)")
    return 0


def _print_analytics(analytics: WeatherAnalytics) -> None:
    detailed = analytics.detailed_correlation
    print(f"Matched days: {detailed.total_days} ({detailed.ideal_days_count} ideal)")
    if detailed.total_taps:
        print(f"Taps: {detailed.total_taps}")

    print("Correlations:")
    for factor, corr in detailed.correlations.items():
        coefficient = "n/a" if corr.coefficient is None else f"{corr.coefficient:+.2f}"
        print(f"  {factor:<22} {coefficient:>6}  {corr.strength} (n={corr.sample_size})")

    if detailed.insights:
        print("Insights:")
        for insight in detailed.insights:
            print(f"  - {insight.message} (r={insight.coefficient:+.2f})")

    flow = analytics.flow_predictions
    if flow.insufficient_data:
        print("Flow predictions: insufficient data")
    else:
        print(f"Flow predictions (R^2={flow.model_quality}, features: {', '.join(flow.features_used)}):")
        for p in flow.predictions:
            print(f"  {p.date.isoformat()}  {p.predicted_volume:>8.2f}")

    conventional = analytics.conventional_predictions
    if conventional.insufficient_data:
        print("Conventional predictions: insufficient data")
    else:
        print("Conventional predictions:")
        for p in conventional.predictions:
            print(f"  {p.date.isoformat()}  {p.predicted_volume:>8.2f}")


def cmd_analyze(args: argparse.Namespace) -> int:
    """Handle the 'analyze' command."""
    if not args.records.exists():
        print(f"Records file not found: {args.records}", file=sys.stderr)
        return 1

    settings = get_settings()
    lat, lon = _location(args)
    engine = YieldEngine.from_settings(load_repository(args.records), _weather_service(), settings)
    analytics = asyncio.run(engine.get_weather_analytics(args.season, lat, lon, args.unit))

    if args.json:
        print(analytics.model_dump_json(indent=2))
    else:
        _print_analytics(analytics)
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    """Handle the 'report' command: run the analytics flow."""
    if not args.records.exists():
        print(f"Records file not found: {args.records}", file=sys.stderr)
        return 1

    lat, lon = _location(args)
    result = season_analytics(args.records, args.season, lat=lat, lon=lon, unit=args.unit)
    print(f"Report written to {result['report']}")
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    settings = get_settings()
    setup_logging("DEBUG" if args.debug else settings.log_level)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "info": cmd_info,
        "forecast": cmd_forecast,
        "analyze": cmd_analyze,
        "report": cmd_report,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
