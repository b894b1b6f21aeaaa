from __future__ import annotations

import asyncio
import math
from typing import Awaitable, Callable, Dict, List, Optional

import pandas as pd

from tourism.data import fetch_station_observations


StationFetcher = Callable[[str], Awaitable[pd.DataFrame]]

# Columns added by the loader that are never selectable attributes.
RESERVED_COLUMNS = {"date", "bucket"}


def discover_numeric_attributes(observations: Optional[pd.DataFrame]) -> List[str]:
    """Attribute names whose value in the first row is a finite number."""
    if observations is None or observations.empty:
        return []
    first = observations.iloc[0]
    out: List[str] = []
    for col in observations.columns:
        if str(col) in RESERVED_COLUMNS:
            continue
        value = pd.to_numeric(pd.Series([first[col]]), errors="coerce").iloc[0]
        if pd.notna(value) and math.isfinite(float(value)):
            out.append(str(col))
    return out


class StationCache:
    """Lazy per-station observation cache, memoized for the session.

    Concurrent loads of one station share a single fetch. Failed fetches are
    not cached, so a later load retries.
    """

    def __init__(self, fetcher: Optional[StationFetcher] = None):
        self._fetcher: StationFetcher = fetcher or fetch_station_observations
        self._frames: Dict[str, pd.DataFrame] = {}
        self._attributes: Dict[str, List[str]] = {}
        self._pending: Dict[str, asyncio.Task] = {}

    def __contains__(self, station_id: str) -> bool:
        return station_id in self._frames

    def get(self, station_id: Optional[str]) -> Optional[pd.DataFrame]:
        if station_id is None:
            return None
        return self._frames.get(station_id)

    def attributes_available(self, station_id: Optional[str]) -> List[str]:
        if station_id is None:
            return []
        return list(self._attributes.get(station_id, []))

    async def load(self, station_id: str) -> pd.DataFrame:
        if station_id in self._frames:
            return self._frames[station_id]
        task = self._pending.get(station_id)
        if task is None:
            task = asyncio.ensure_future(self._fetcher(station_id))
            self._pending[station_id] = task
        try:
            frame = await task
        finally:
            if self._pending.get(station_id) is task:
                del self._pending[station_id]
        if station_id not in self._frames:
            self._frames[station_id] = frame
            self._attributes[station_id] = discover_numeric_attributes(frame)
        return self._frames[station_id]
