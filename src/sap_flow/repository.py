"""Yield-record collaborators.

The engine only needs two queries from the record-keeping layer: the raw
collection entries for a season, and the season's total tap count. Any
object implementing :class:`YieldRepository` will do.

``load_repository`` reads a JSON file shaped like::

    {
      "seasons": {
        "2026": {
          "taps": 120,
          "collections": [{"date": "2026-03-01T08:00:00Z", "volume": 40.5}, ...]
        }
      }
    }
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Protocol

from sap_flow.schemas import YieldRecord

if TYPE_CHECKING:
    from pathlib import Path


class YieldRepository(Protocol):
    """Read access to collection entries and tap counts."""

    async def find_yield_records(self, season_id: str) -> list[YieldRecord]: ...

    async def find_tap_count(self, season_id: str) -> int: ...


class InMemoryYieldRepository:
    """Dict-backed repository (tests, CLI, flows)."""

    def __init__(
        self,
        records: dict[str, list[YieldRecord]] | None = None,
        taps: dict[str, int] | None = None,
    ) -> None:
        self.records = records or {}
        self.taps = taps or {}

    async def find_yield_records(self, season_id: str) -> list[YieldRecord]:
        return list(self.records.get(season_id, []))

    async def find_tap_count(self, season_id: str) -> int:
        return self.taps.get(season_id, 0)


def _parse_collection(entry: dict[str, Any]) -> YieldRecord:
    # Entries may carry full timestamps; only the calendar date matters
    return YieldRecord(date=str(entry["date"]).split("T")[0], volume=entry.get("volume"))


def load_repository(path: Path) -> InMemoryYieldRepository:
    """Build an in-memory repository from a JSON seasons file."""
    with path.open() as f:
        payload: dict[str, Any] = json.load(f)

    records: dict[str, list[YieldRecord]] = {}
    taps: dict[str, int] = {}
    for season_id, season in payload.get("seasons", {}).items():
        records[season_id] = [_parse_collection(c) for c in season.get("collections", [])]
        taps[season_id] = int(season.get("taps", 0) or 0)
    return InMemoryYieldRepository(records, taps)
