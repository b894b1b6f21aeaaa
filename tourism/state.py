from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from tourism.data import normalize_region


class Layer(str, Enum):
    ARRIVALS = "arrivals"
    OVERNIGHTS = "overnights"
    AVERAGE_STAY = "average_stay"
    BEDS = "beds"
    WEATHER = "weather"


DEFAULT_LAYERS = frozenset({Layer.ARRIVALS, Layer.OVERNIGHTS})


class InvalidStateTransition(ValueError):
    """Raised when an operation's precondition does not hold. State is left unchanged."""


@dataclass
class InteractionState:
    """Shared interaction state of the explorer.

    Mutated only through the named operations below. None of them trigger
    recomputation; the owning session does that after each call.

    Selected regions are kept in insertion order, keyed by their normalized
    name, so legend and colour order follow the order of clicks.
    """

    active_country: Optional[str] = None
    enabled_layers: Set[Layer] = field(default_factory=lambda: set(DEFAULT_LAYERS))
    active_station: Optional[str] = None
    active_attribute: Optional[str] = None
    station_generation: int = 0
    _selected: Dict[str, str] = field(default_factory=dict, repr=False)

    # ----- regions -----
    @property
    def selected_regions(self) -> List[str]:
        return list(self._selected.values())

    def is_selected(self, name: str) -> bool:
        return normalize_region(name) in self._selected

    def toggle_region(self, name: str) -> bool:
        """Flip membership of ``name``. Returns True when it is now selected."""
        key = normalize_region(name)
        if key is None:
            return False
        if key in self._selected:
            del self._selected[key]
            return False
        self._selected[key] = str(name).strip()
        return True

    def clear_regions(self) -> None:
        self._selected.clear()

    # ----- metric -----
    def set_country(self, name: str) -> None:
        self.active_country = name

    def set_layer_enabled(self, layer: Layer | str, enabled: bool) -> None:
        layer = Layer(layer)
        if enabled:
            self.enabled_layers.add(layer)
        else:
            self.enabled_layers.discard(layer)

    def layer_enabled(self, layer: Layer | str) -> bool:
        return Layer(layer) in self.enabled_layers

    # ----- weather -----
    def select_station(self, station: str) -> Optional[int]:
        """Activate ``station`` and return its fetch token.

        Selecting the station that is already active deselects it and
        returns None.
        """
        if station == self.active_station:
            self.deselect_station()
            return None
        self.active_station = station
        self.active_attribute = None
        self.station_generation += 1
        return self.station_generation

    def deselect_station(self) -> None:
        self.active_station = None
        self.active_attribute = None
        self.station_generation += 1

    def is_current_fetch(self, station: str, token: int) -> bool:
        return self.active_station == station and self.station_generation == token

    def set_attribute(self, name: str, available: Optional[Iterable[str]] = None) -> None:
        if self.active_station is None:
            raise InvalidStateTransition("cannot set a weather attribute without an active station")
        if available is not None and name not in set(available):
            raise InvalidStateTransition(f"attribute {name!r} is not available for station {self.active_station!r}")
        self.active_attribute = name


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    return [str(v) for v in values if v is not None and str(v).strip()]


def normalize_state(raw: dict, *, available_countries: Optional[Iterable[str]] = None) -> InteractionState:
    """Build an ``InteractionState`` from a loose request payload."""
    countries = list(available_countries or [])
    state = InteractionState()

    for name in _as_str_list(raw.get("selected_regions")):
        if not state.is_selected(name):
            state.toggle_region(name)

    country = raw.get("active_country")
    if country not in countries:
        country = countries[0] if countries else None
    state.set_country(country)

    layers = raw.get("enabled_layers")
    if layers is not None:
        state.enabled_layers = set()
        for layer in layers:
            try:
                state.set_layer_enabled(layer, True)
            except ValueError:
                continue

    station = raw.get("active_station")
    if station:
        state.select_station(str(station))
        attribute = raw.get("active_attribute")
        if attribute:
            state.set_attribute(str(attribute))
    return state
