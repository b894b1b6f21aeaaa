from __future__ import annotations

from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from tourism.aggregation import COMBINED_COLOR, SeriesGroup, groups_to_frame
from tourism.state import Layer

alt.data_transformers.disable_max_rows()

METRIC_TITLES = {
    "arrivals": "Arrivals",
    "overnights": "Overnights",
    "average_stay": "Average stay (nights)",
}


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _color_scale(groups: List[SeriesGroup]) -> alt.Scale:
    return alt.Scale(domain=[g.label for g in groups], range=[g.color for g in groups])


def y_upper_bound(groups: List[SeriesGroup]) -> float:
    peak = 0.0
    for g in groups:
        if g.points.empty:
            continue
        peak = max(peak, float(g.points[["arrivals", "overnights"]].max().max()))
    return peak * 1.1 if peak > 0 else 1.0


def build_tourism_chart(
    groups: List[SeriesGroup],
    domain: List[str],
    layers: List[Layer],
    *,
    title: str = "",
    weather: Optional[pd.DataFrame] = None,
    weather_label: Optional[str] = None,
) -> Optional[alt.TopLevelMixin]:
    data = groups_to_frame(groups)
    if data.empty:
        return None

    x = alt.X(
        "bucket:O",
        title="Month",
        scale=alt.Scale(domain=domain),
        axis=alt.Axis(values=domain[::3], labelAngle=-45),
    )
    color = alt.Color("region:N", title="Municipality", scale=_color_scale(groups), sort=[g.label for g in groups])
    tooltip = [
        alt.Tooltip("region:N", title="Municipality"),
        alt.Tooltip("bucket:O", title="Month"),
        alt.Tooltip("arrivals:Q", title="Arrivals", format=","),
        alt.Tooltip("overnights:Q", title="Overnights", format=","),
        alt.Tooltip("average_stay:Q", title="Avg stay", format=".2f"),
    ]
    y_scale = alt.Scale(domain=[0, y_upper_bound(groups)])
    base = alt.Chart(data)

    counts: List[alt.Chart] = []
    if Layer.ARRIVALS in layers:
        counts.append(
            base.mark_line(point={"filled": True, "size": 40}, strokeWidth=2.5).encode(
                x=x, y=alt.Y("arrivals:Q", title="Count", scale=y_scale), color=color, tooltip=tooltip
            )
        )
    if Layer.OVERNIGHTS in layers:
        counts.append(
            base.mark_line(strokeDash=[4, 2], strokeWidth=2).encode(
                x=x, y=alt.Y("overnights:Q", title="Count", scale=y_scale), color=color, tooltip=tooltip
            )
        )

    panels: List[alt.TopLevelMixin] = []
    if counts:
        panels.append(alt.layer(*counts))
    if Layer.AVERAGE_STAY in layers:
        panels.append(
            base.mark_line(strokeDash=[1, 2]).encode(
                x=x,
                y=alt.Y("average_stay:Q", title=METRIC_TITLES["average_stay"], axis=alt.Axis(orient="right")),
                color=color,
                tooltip=tooltip,
            )
        )
    if Layer.WEATHER in layers and weather is not None and not weather.empty:
        panels.append(
            alt.Chart(weather)
            .mark_area(opacity=0.15, color=COMBINED_COLOR)
            .encode(
                x=x,
                y=alt.Y("value:Q", title=weather_label or "Weather", axis=alt.Axis(orient="right")),
                tooltip=[alt.Tooltip("bucket:O", title="Month"), alt.Tooltip("value:Q", title=weather_label or "Value", format=".1f")],
            )
        )
    if not panels:
        return None
    chart = panels[0] if len(panels) == 1 else alt.layer(*panels).resolve_scale(y="independent")
    return chart.properties(title=title)


def build_bed_chart(groups: List[SeriesGroup]) -> Optional[alt.Chart]:
    data = groups_to_frame(groups)
    if data.empty:
        return None
    return (
        alt.Chart(data)
        .mark_bar()
        .encode(
            x=alt.X("year:O", title="Year"),
            xOffset=alt.XOffset("region:N", sort=[g.label for g in groups]),
            y=alt.Y("beds:Q", title="Beds", axis=alt.Axis(format="~s")),
            color=alt.Color("region:N", title="Municipality", scale=_color_scale(groups), sort=[g.label for g in groups]),
            tooltip=["region", "year", alt.Tooltip("beds:Q", format=",")],
        )
    )


def build_charts(views) -> Dict[str, Any]:
    """Vega-Lite specs for the enabled layers of a ``DerivedViews``."""
    charts: Dict[str, Any] = {}
    tourism = build_tourism_chart(
        views.tourism,
        views.domain,
        views.layers,
        title=views.title,
        weather=views.weather,
        weather_label=views.attribute,
    )
    if tourism is not None:
        charts["tourism"] = to_vega_spec(tourism)
    if Layer.BEDS in views.layers:
        beds = build_bed_chart(views.beds)
        if beds is not None:
            charts["beds"] = to_vega_spec(beds)
    return charts
