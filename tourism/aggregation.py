from __future__ import annotations

import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from tourism.buckets import bucket_domain
from tourism.data import RawDataStore, normalize_region, safe_class_name
from tourism.state import InteractionState


COMBINED_LABEL = "All Municipalities"
COMBINED_KEY = "combined"
COMBINED_COLOR = "#264653"
PALETTE = (
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#17becf",
    "#e377c2",
)

TOURISM_POINT_COLUMNS = ["region", "bucket", "arrivals", "overnights", "average_stay"]
BED_POINT_COLUMNS = ["region", "year", "beds"]
WEATHER_POINT_COLUMNS = ["bucket", "value"]


@dataclass
class SeriesGroup:
    """One drawable series: the combined pseudo-region or one selected region."""

    label: str
    key: str
    color: str
    points: pd.DataFrame = field(repr=False)

    @property
    def is_combined(self) -> bool:
        return self.key == COMBINED_KEY

    @property
    def css_id(self) -> str:
        return safe_class_name(self.label)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "key": self.key,
            "color": self.color,
            "combined": self.is_combined,
            "points": self.points.to_dict(orient="records"),
        }


def region_color(key: Optional[str]) -> str:
    """Stable palette colour for a normalized region key."""
    if key is None or key == COMBINED_KEY:
        return COMBINED_COLOR
    return PALETTE[zlib.crc32(key.encode("utf-8")) % len(PALETTE)]


def average_stay(overnights: pd.Series, arrivals: pd.Series) -> pd.Series:
    """overnights / arrivals, 0 where arrivals is not positive."""
    return (overnights / arrivals.where(arrivals > 0)).fillna(0.0)


def _selection(state: InteractionState) -> List[tuple]:
    out = []
    for name in state.selected_regions:
        key = normalize_region(name)
        if key is not None:
            out.append((name, key))
    return out


# ---------------- Tourism ----------------
def _country_metrics(store: RawDataStore, country: Optional[str]) -> pd.DataFrame:
    tourism = store.tourism
    out = pd.DataFrame({"region_key": tourism.get("region_key"), "bucket": tourism.get("bucket")})
    arr_col = store.schema.arrivals_column(country)
    over_col = store.schema.overnights_column(country)
    out["arrivals"] = tourism[arr_col] if arr_col in tourism.columns else 0.0
    out["overnights"] = tourism[over_col] if over_col in tourism.columns else 0.0
    return out


def _tourism_points(label: str, sums: pd.DataFrame, domain: List[str]) -> pd.DataFrame:
    sums = sums.reindex(domain, fill_value=0.0)
    points = sums.rename_axis("bucket").reset_index()
    points["arrivals"] = points["arrivals"].astype(float)
    points["overnights"] = points["overnights"].astype(float)
    points["average_stay"] = average_stay(points["overnights"], points["arrivals"])
    points.insert(0, "region", label)
    return points[TOURISM_POINT_COLUMNS]


def tourism_domain(store: RawDataStore) -> List[str]:
    if store.tourism.empty or "bucket" not in store.tourism.columns:
        return []
    return bucket_domain(store.tourism["bucket"].tolist())


def derive_tourism_series(store: RawDataStore, state: InteractionState) -> List[SeriesGroup]:
    """Tourism series for the current state.

    No selection gives one combined group summed over every region in the
    data; otherwise one group per selected region in selection order. Every
    group has one point per bucket of the domain (baseline bucket dropped),
    with missing rows filled as zero.
    """
    domain = tourism_domain(store)
    metrics = _country_metrics(store, state.active_country)
    selection = _selection(state)

    if not selection:
        sums = metrics.groupby("bucket")[["arrivals", "overnights"]].sum()
        points = _tourism_points(COMBINED_LABEL, sums, domain)
        return [SeriesGroup(label=COMBINED_LABEL, key=COMBINED_KEY, color=COMBINED_COLOR, points=points)]

    groups: List[SeriesGroup] = []
    for label, key in selection:
        rows = metrics[metrics["region_key"] == key]
        sums = rows.groupby("bucket")[["arrivals", "overnights"]].sum()
        points = _tourism_points(label, sums, domain)
        groups.append(SeriesGroup(label=label, key=key, color=region_color(key), points=points))
    return groups


# ---------------- Beds ----------------
def _bed_points(label: str, sums: pd.Series, years: List[int]) -> pd.DataFrame:
    points = sums.reindex(years, fill_value=0.0).astype(float).rename("beds").rename_axis("year").reset_index()
    points.insert(0, "region", label)
    return points[BED_POINT_COLUMNS]


def derive_bed_series(store: RawDataStore, state: InteractionState) -> List[SeriesGroup]:
    beds = store.beds
    years = sorted(int(y) for y in beds["year"].dropna().unique()) if not beds.empty else []
    selection = _selection(state)

    if not selection:
        sums = beds.groupby("year")["beds"].sum()
        points = _bed_points(COMBINED_LABEL, sums, years)
        return [SeriesGroup(label=COMBINED_LABEL, key=COMBINED_KEY, color=COMBINED_COLOR, points=points)]

    groups: List[SeriesGroup] = []
    for label, key in selection:
        sums = beds[beds["region_key"] == key].groupby("year")["beds"].sum()
        points = _bed_points(label, sums, years)
        groups.append(SeriesGroup(label=label, key=key, color=region_color(key), points=points))
    return groups


# ---------------- Weather ----------------
def derive_weather_series(observations: Optional[pd.DataFrame], attribute: Optional[str]) -> pd.DataFrame:
    """Monthly series of one weather attribute; non-numeric entries are excluded.

    Daily observations are averaged per bucket so the series lines up with
    the monthly tourism axis.
    """
    empty = pd.DataFrame(columns=WEATHER_POINT_COLUMNS)
    if observations is None or observations.empty or not attribute:
        return empty
    if attribute not in observations.columns or "bucket" not in observations.columns:
        return empty
    values = pd.DataFrame(
        {
            "bucket": observations["bucket"],
            "value": pd.to_numeric(observations[attribute], errors="coerce"),
        }
    ).dropna(subset=["bucket", "value"])
    if values.empty:
        return empty
    series = values.groupby("bucket")["value"].mean().sort_index()
    return series.rename_axis("bucket").reset_index()[WEATHER_POINT_COLUMNS]


def groups_to_frame(groups: List[SeriesGroup]) -> pd.DataFrame:
    """Long frame of all group points, preserving group order via ``group_order``."""
    frames = []
    for idx, group in enumerate(groups):
        frame = group.points.copy()
        frame["group_order"] = idx
        frame["color"] = group.color
        frames.append(frame)
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)
