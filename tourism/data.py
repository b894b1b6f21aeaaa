from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import unicodedata
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from tourism.buckets import normalize_bucket


logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("TOURISM_DATA_DIR", Path(__file__).resolve().parents[1] / "data"))
TOURISM_FILE = "turizem_mesecno.csv"
BEDS_FILE = "postelje_letno.csv"
GEOJSON_FILE = "vipava_obcine.geojson"
WEATHER_DIR = "weather"
WEATHER_GLOB = "*.csv"

ARRIVALS_SUFFIX = " (Arrivals)"
OVERNIGHTS_SUFFIX = " (Overnight stays)"

TOURISM_COLUMNS = {
    "Municipality": "region",
    "Občina": "region",
    "Obcina": "region",
    "Region": "region",
    "Month": "bucket",
    "Mesec": "bucket",
}

BEDS_COLUMNS = {
    "Municipality": "region",
    "Občina": "region",
    "Obcina": "region",
    "Region": "region",
    "Year": "year",
    "Leto": "year",
    "Beds": "beds",
    "Postelje": "beds",
    "Number of beds": "beds",
}

WEATHER_DATE_COLUMNS = ["date", "datum", "month", "mesec", "time", "valid"]

REGION_KEY_PATTERN = re.compile(r"name|naz|ime|obc", re.IGNORECASE)


@dataclass(frozen=True)
class TourismSchema:
    """Column layout discovered from the tourism table header."""

    countries: Tuple[str, ...] = ()
    arrivals_columns: Dict[str, str] = field(default_factory=dict)
    overnights_columns: Dict[str, str] = field(default_factory=dict)

    def arrivals_column(self, country: Optional[str]) -> Optional[str]:
        return self.arrivals_columns.get(country or "")

    def overnights_column(self, country: Optional[str]) -> Optional[str]:
        return self.overnights_columns.get(country or "")


@dataclass(frozen=True)
class RawDataStore:
    """Parsed source tables for one session. Treated as read-only."""

    tourism: pd.DataFrame
    beds: pd.DataFrame
    schema: TourismSchema
    regions: Tuple[str, ...] = ()
    stations: Tuple[str, ...] = ()
    files: Tuple[str, ...] = ()

    @property
    def countries(self) -> Tuple[str, ...]:
        return self.schema.countries


# ---------------- Helpers ----------------
def normalize_region(value: object) -> Optional[str]:
    """Matching key for region labels: trimmed and case-folded."""
    if value is None or pd.isna(value):
        return None
    s = str(value).strip().casefold()
    return s or None


def safe_class_name(name: str) -> str:
    stripped = unicodedata.normalize("NFD", name)
    stripped = "".join(ch for ch in stripped if not unicodedata.combining(ch))
    return re.sub(r"[^\w-]", "_", stripped)


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col].astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "": pd.NA})
            df[col] = series
    return df


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def discover_tourism_schema(columns: Iterable[object]) -> TourismSchema:
    """Find countries by scanning for ``<country> (Arrivals)`` columns."""
    cols = [str(c) for c in columns]
    arrivals: Dict[str, str] = {}
    overnights: Dict[str, str] = {}
    for col in cols:
        if col.endswith(ARRIVALS_SUFFIX):
            arrivals[col[: -len(ARRIVALS_SUFFIX)].strip()] = col
        elif col.endswith(OVERNIGHTS_SUFFIX):
            overnights[col[: -len(OVERNIGHTS_SUFFIX)].strip()] = col
    countries = tuple(sorted(arrivals))
    return TourismSchema(countries=countries, arrivals_columns=arrivals, overnights_columns=overnights)


def detect_region_name_key(properties: Dict[str, object]) -> Optional[str]:
    keys = list(properties.keys())
    if not keys:
        return None
    for key in keys:
        if REGION_KEY_PATTERN.search(str(key)):
            return key
    return keys[0]


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files if f.exists())


# ---------------- Loaders ----------------
def prepare_tourism_frame(raw: pd.DataFrame) -> Tuple[pd.DataFrame, TourismSchema]:
    df = raw.copy()
    df.columns = [str(c).strip() for c in df.columns]
    df = df.rename(columns=TOURISM_COLUMNS)
    df = drop_duplicate_columns(df)
    if "region" not in df.columns or "bucket" not in df.columns:
        logger.warning("Tourism table is missing a region or month column: %s", list(raw.columns))
        return pd.DataFrame(columns=["region", "region_key", "bucket"]), TourismSchema()

    schema = discover_tourism_schema(df.columns)
    df = coerce_str_safe(df, ["region"])
    df["bucket"] = df["bucket"].apply(normalize_bucket)
    df = df.dropna(subset=["region", "bucket"])
    df["region_key"] = df["region"].apply(normalize_region)
    df = numericize(df, list(schema.arrivals_columns.values()) + list(schema.overnights_columns.values()))
    return df.reset_index(drop=True), schema


def prepare_beds_frame(raw: pd.DataFrame) -> pd.DataFrame:
    df = raw.copy()
    df.columns = [str(c).strip() for c in df.columns]
    df = df.rename(columns=BEDS_COLUMNS)
    df = drop_duplicate_columns(df)
    if not {"region", "year", "beds"}.issubset(df.columns):
        return pd.DataFrame(columns=["region", "region_key", "year", "beds"])
    df = df[["region", "year", "beds"]].copy()
    df = coerce_str_safe(df, ["region"])
    df = numericize(df, ["year", "beds"])
    df = df.dropna(subset=["region", "year"])
    df["year"] = df["year"].astype(int)
    df["region_key"] = df["region"].apply(normalize_region)
    return df.reset_index(drop=True)


def prepare_weather_frame(raw: pd.DataFrame) -> pd.DataFrame:
    """Normalize a per-station table: a ``date`` column plus a ``bucket`` key."""
    df = raw.copy()
    df.columns = [str(c).strip() for c in df.columns]
    date_col = next((c for c in df.columns if c.lower() in WEATHER_DATE_COLUMNS), None)
    if date_col is None:
        raise ValueError(f"weather table has no date column (looked for {WEATHER_DATE_COLUMNS})")
    df = df.rename(columns={date_col: "date"})
    df = drop_duplicate_columns(df)
    df["bucket"] = df["date"].apply(normalize_bucket)
    df = df.dropna(subset=["bucket"])
    return df.reset_index(drop=True)


def load_tourism(path: Path) -> Tuple[pd.DataFrame, TourismSchema]:
    if not path.exists():
        return pd.DataFrame(columns=["region", "region_key", "bucket"]), TourismSchema()
    return prepare_tourism_frame(pd.read_csv(path))


def load_beds(path: Path) -> pd.DataFrame:
    if not path.exists():
        return pd.DataFrame(columns=["region", "region_key", "year", "beds"])
    return prepare_beds_frame(pd.read_csv(path))


def load_region_names(path: Path) -> List[str]:
    """Region names from GeoJSON feature properties, in file order."""
    if not path.exists():
        return []
    with path.open(encoding="utf-8") as fh:
        geo = json.load(fh)
    features = geo.get("features") or []
    if not features:
        return []
    name_key = detect_region_name_key(features[0].get("properties") or {})
    if name_key is None:
        return []
    names: List[str] = []
    for feature in features:
        value = (feature.get("properties") or {}).get(name_key)
        if value is not None and str(value).strip():
            names.append(str(value).strip())
    return names


def list_stations(weather_dir: Path) -> List[str]:
    if not weather_dir.is_dir():
        return []
    return sorted(p.stem for p in weather_dir.glob(WEATHER_GLOB))


def read_station_observations(station_id: str, weather_dir: Optional[Path] = None) -> pd.DataFrame:
    weather_dir = (weather_dir or (DATA_DIR / WEATHER_DIR)).resolve()
    path = (weather_dir / f"{station_id}.csv").resolve()
    if path.parent != weather_dir:
        raise ValueError(f"station {station_id!r} is outside the weather directory")
    return prepare_weather_frame(pd.read_csv(path))


async def fetch_station_observations(station_id: str, weather_dir: Optional[Path] = None) -> pd.DataFrame:
    """Default station fetcher: reads ``<weather_dir>/<station>.csv`` off the event loop."""
    return await asyncio.to_thread(read_station_observations, station_id, weather_dir)


def build_store(
    tourism_raw: pd.DataFrame,
    beds_raw: Optional[pd.DataFrame] = None,
    *,
    regions: Optional[Iterable[str]] = None,
    stations: Optional[Iterable[str]] = None,
    files: Iterable[str] = (),
) -> RawDataStore:
    tourism, schema = prepare_tourism_frame(tourism_raw)
    beds = prepare_beds_frame(beds_raw) if beds_raw is not None else prepare_beds_frame(pd.DataFrame())
    region_list = list(regions or [])
    if not region_list and not tourism.empty:
        region_list = list(dict.fromkeys(tourism["region"].astype(str).tolist()))
    return RawDataStore(
        tourism=tourism,
        beds=beds,
        schema=schema,
        regions=tuple(region_list),
        stations=tuple(stations or ()),
        files=tuple(files),
    )


# ---------------- Public API ----------------
@lru_cache(maxsize=4)
def _load_explorer_data_cached(files_sig: Tuple[Tuple[str, float], ...], data_dir: str) -> RawDataStore:
    base = Path(data_dir)
    tourism, schema = load_tourism(base / TOURISM_FILE)
    beds = load_beds(base / BEDS_FILE)
    regions = load_region_names(base / GEOJSON_FILE)
    if not regions and not tourism.empty:
        regions = list(dict.fromkeys(tourism["region"].astype(str).tolist()))
    stations = list_stations(base / WEATHER_DIR)
    logger.info(
        "Loaded %d tourism rows, %d bed rows, %d regions, %d stations from %s",
        len(tourism),
        len(beds),
        len(regions),
        len(stations),
        base,
    )
    return RawDataStore(
        tourism=tourism,
        beds=beds,
        schema=schema,
        regions=tuple(regions),
        stations=tuple(stations),
        files=tuple(name for name, _ in files_sig),
    )


def get_source_files(data_dir: Optional[Path] = None) -> List[Path]:
    base = data_dir or DATA_DIR
    return [base / TOURISM_FILE, base / BEDS_FILE, base / GEOJSON_FILE]


def load_explorer_data(data_dir: Optional[Path] = None) -> RawDataStore:
    base = data_dir or DATA_DIR
    files = get_source_files(base)
    return _load_explorer_data_cached(file_signature(files), str(base))
