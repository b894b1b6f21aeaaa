from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

import pandas as pd

from tourism.aggregation import (
    COMBINED_LABEL,
    SeriesGroup,
    derive_bed_series,
    derive_tourism_series,
    derive_weather_series,
    tourism_domain,
)
from tourism.data import RawDataStore
from tourism.range_query import RangeSummary, summarize_range
from tourism.state import InteractionState, InvalidStateTransition, Layer
from tourism.weather import StationCache, StationFetcher


logger = logging.getLogger(__name__)

Subscriber = Callable[["DerivedViews"], None]


@dataclass
class DerivedViews:
    """Datasets for one rendering pass. Rebuilt wholesale after every mutation."""

    domain: List[str]
    tourism: List[SeriesGroup]
    beds: List[SeriesGroup]
    weather: pd.DataFrame
    layers: List[Layer] = field(default_factory=list)
    title: str = ""
    station: Optional[str] = None
    attribute: Optional[str] = None
    weather_pending: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "domain": list(self.domain),
            "layers": [layer.value for layer in self.layers],
            "tourism": [g.to_dict() for g in self.tourism],
            "beds": [g.to_dict() for g in self.beds],
            "weather": {
                "station": self.station,
                "attribute": self.attribute,
                "pending": self.weather_pending,
                "points": self.weather.to_dict(orient="records"),
            },
        }


def chart_title(state: InteractionState) -> str:
    selected = state.selected_regions
    if not selected:
        return f"{COMBINED_LABEL} (total)"
    return ", ".join(selected)


def derive_views(
    store: RawDataStore,
    state: InteractionState,
    observations: Optional[pd.DataFrame] = None,
    *,
    weather_pending: bool = False,
) -> DerivedViews:
    return DerivedViews(
        domain=tourism_domain(store),
        tourism=derive_tourism_series(store, state),
        beds=derive_bed_series(store, state),
        weather=derive_weather_series(observations, state.active_attribute),
        layers=[layer for layer in Layer if layer in state.enabled_layers],
        title=chart_title(state),
        station=state.active_station,
        attribute=state.active_attribute,
        weather_pending=weather_pending,
    )


class ExplorerSession:
    """Coordinates interaction state, derived datasets and subscribers.

    Every named operation mutates the state, recomputes the derived views
    and hands them to subscribers. Station fetches are the only suspending
    operation; a fetch result is committed only if its token is still the
    current one when it resolves.
    """

    def __init__(
        self,
        store: RawDataStore,
        state: Optional[InteractionState] = None,
        *,
        cache: Optional[StationCache] = None,
        fetcher: Optional[StationFetcher] = None,
    ):
        self.store = store
        self.state = state or InteractionState()
        if self.state.active_country is None and store.countries:
            self.state.set_country(store.countries[0])
        self.cache = cache or StationCache(fetcher)
        self.diagnostics: List[str] = []
        self._failed_stations: Set[str] = set()
        self._subscribers: List[Subscriber] = []
        self.views = self.recompute()

    # ----- observers -----
    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def recompute(self) -> DerivedViews:
        station = self.state.active_station
        observations = self.cache.get(station)
        pending = station is not None and station not in self.cache and not self._failed(station)
        self.views = derive_views(self.store, self.state, observations, weather_pending=pending)
        return self.views

    def _changed(self) -> DerivedViews:
        views = self.recompute()
        for callback in list(self._subscribers):
            callback(views)
        return views

    def _failed(self, station: str) -> bool:
        return station in self._failed_stations

    # ----- operations -----
    def toggle_region(self, name: str) -> DerivedViews:
        self.state.toggle_region(name)
        return self._changed()

    def clear_regions(self) -> DerivedViews:
        self.state.clear_regions()
        return self._changed()

    def set_country(self, name: str) -> DerivedViews:
        if self.store.countries and name not in self.store.countries:
            raise InvalidStateTransition(f"unknown country {name!r}")
        self.state.set_country(name)
        return self._changed()

    def set_layer_enabled(self, layer: Layer | str, enabled: bool) -> DerivedViews:
        self.state.set_layer_enabled(layer, enabled)
        return self._changed()

    def attributes_available(self) -> List[str]:
        return self.cache.attributes_available(self.state.active_station)

    def set_attribute(self, name: str) -> DerivedViews:
        self.state.set_attribute(name, available=self.attributes_available())
        return self._changed()

    def deselect_station(self) -> DerivedViews:
        self.state.deselect_station()
        return self._changed()

    async def select_station(self, station: str) -> DerivedViews:
        """Toggle ``station`` and load its observations.

        A failed fetch is logged once and leaves the station active with no
        attribute and an empty weather series.
        """
        token = self.state.select_station(station)
        self._failed_stations.discard(station)
        views = self._changed()
        if token is None:
            return views

        try:
            await self.cache.load(station)
        except Exception as exc:
            if self.state.is_current_fetch(station, token):
                message = f"Weather fetch failed for station {station}: {exc}"
                logger.warning(message)
                self.diagnostics.append(message)
                self._failed_stations.add(station)
                return self._changed()
            logger.debug("Ignoring failed fetch for superseded station %s", station)
            return self.views

        if not self.state.is_current_fetch(station, token):
            logger.debug("Discarding stale weather result for station %s", station)
            return self.views
        return self._changed()

    # ----- range queries -----
    def range_summary(self, buckets: Sequence[str]) -> Optional[List[RangeSummary]]:
        return summarize_range(buckets, self.views.tourism, self.views.beds)
