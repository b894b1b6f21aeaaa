from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import InteractionStateModel, RangeQueryModel
from tourism.aggregation import groups_to_frame
from tourism.charts import build_charts
from tourism.data import RawDataStore, load_explorer_data
from tourism.range_query import buckets_in_range, summarize_range
from tourism.session import DerivedViews, derive_views
from tourism.state import InteractionState, InvalidStateTransition, normalize_state
from tourism.weather import StationCache


app = FastAPI(title="Tourism Explorer API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

station_cache = StationCache()


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _require_station(store: RawDataStore, station_id: str) -> None:
    if station_id not in store.stations:
        raise InvalidStateTransition(f"unknown weather station {station_id!r}")


async def _state_from_model(model: InteractionStateModel, store: RawDataStore) -> tuple[InteractionState, Optional[pd.DataFrame]]:
    raw = model.model_dump()
    attribute = raw.pop("active_attribute", None)
    state = normalize_state(raw, available_countries=store.countries)
    observations = None
    if state.active_station is not None:
        _require_station(store, state.active_station)
        try:
            observations = await station_cache.load(state.active_station)
        except Exception as exc:
            logger.warning("Weather fetch failed for station %s: %s", state.active_station, exc)
            return state, None
        if attribute:
            state.set_attribute(attribute, available=station_cache.attributes_available(state.active_station))
    return state, observations


async def _views_from_model(model: InteractionStateModel) -> DerivedViews:
    store = load_explorer_data()
    state, observations = await _state_from_model(model, store)
    return derive_views(store, state, observations)


@app.get("/meta/countries")
def meta_countries():
    try:
        store = load_explorer_data()
        return _json({"countries": list(store.countries)})
    except Exception as exc:
        logger.exception("meta_countries failed")
        return _error(exc)


@app.get("/meta/regions")
def meta_regions():
    try:
        store = load_explorer_data()
        return _json({"regions": list(store.regions)})
    except Exception as exc:
        logger.exception("meta_regions failed")
        return _error(exc)


@app.get("/meta/stations")
def meta_stations():
    try:
        store = load_explorer_data()
        return _json({"stations": list(store.stations)})
    except Exception as exc:
        logger.exception("meta_stations failed")
        return _error(exc)


@app.get("/meta/stations/{station_id}/attributes")
async def meta_station_attributes(station_id: str):
    try:
        _require_station(load_explorer_data(), station_id)
        await station_cache.load(station_id)
        return _json({"station": station_id, "attributes": station_cache.attributes_available(station_id)})
    except InvalidStateTransition as exc:
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("meta_station_attributes failed")
        return _error(exc)


@app.post("/series")
async def series(state: InteractionStateModel):
    try:
        views = await _views_from_model(state)
        payload = views.to_payload()
        payload["charts"] = build_charts(views)
        return _json(payload)
    except InvalidStateTransition as exc:
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("series failed")
        return _error(exc)


@app.post("/range-summary")
async def range_summary(query: RangeQueryModel):
    try:
        views = await _views_from_model(query.state)
        buckets = query.buckets or buckets_in_range(views.domain, query.start, query.end)
        summary = summarize_range(buckets, views.tourism, views.beds)
        if summary is None:
            return _json({"summary": None})
        return _json({"summary": [s.to_dict() for s in summary], "text": [s.describe() for s in summary]})
    except InvalidStateTransition as exc:
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("range_summary failed")
        return _error(exc)


@app.post("/export/{dataset}")
async def export_dataset(dataset: str, state: InteractionStateModel):
    try:
        views = await _views_from_model(state)
    except InvalidStateTransition as exc:
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("export_dataset failed")
        return _error(exc)

    filename = f"{dataset}.csv"
    if dataset == "tourism":
        export_df = groups_to_frame(views.tourism)
    elif dataset == "beds":
        export_df = groups_to_frame(views.beds)
    elif dataset == "weather":
        export_df = views.weather
    else:
        export_df = pd.DataFrame()

    export_df = export_df.drop(columns=["group_order", "color"], errors="ignore")
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
