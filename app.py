import asyncio
import logging
from typing import List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from tourism.aggregation import groups_to_frame
from tourism.charts import build_bed_chart, build_tourism_chart
from tourism.data import load_explorer_data
from tourism.range_query import buckets_in_range
from tourism.session import ExplorerSession
from tourism.state import Layer

alt.data_transformers.disable_max_rows()
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

LAYER_LABELS = {
    Layer.ARRIVALS: "Arrivals",
    Layer.OVERNIGHTS: "Overnight stays",
    Layer.AVERAGE_STAY: "Average stay",
    Layer.BEDS: "Beds",
    Layer.WEATHER: "Weather",
}
NO_STATION = "(none)"


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #ffffff;}
        .summary {border: 1px solid #e5e7eb;border-radius: 12px;padding: 12px;background: #ffffff;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


def legend_chips(groups) -> str:
    return "".join(f"<span class='chip' style='background:{g.color}'>{g.label}</span>" for g in groups)


def get_session() -> ExplorerSession:
    session = st.session_state.get("explorer")
    if session is None:
        session = ExplorerSession(load_explorer_data())
        st.session_state["explorer"] = session
    return session


def sync_regions(session: ExplorerSession, wanted: List[str]) -> None:
    current = session.state.selected_regions
    for name in current:
        if name not in wanted:
            session.toggle_region(name)
    for name in wanted:
        if not session.state.is_selected(name):
            session.toggle_region(name)


def sync_station(session: ExplorerSession, choice: Optional[str]) -> None:
    wanted = None if choice in (None, NO_STATION) else choice
    if wanted == session.state.active_station:
        return
    if wanted is None:
        session.deselect_station()
    else:
        asyncio.run(session.select_station(wanted))


# ---------- UI setup ----------
st.set_page_config(page_title="Vipava Valley Tourism Explorer", layout="wide")
inject_base_styles()
st.title("Vipava Valley Tourism Explorer")
st.caption("Select municipalities to compare them; leave the selection empty for the valley total.")

session = get_session()
store = session.store
if store.tourism.empty:
    st.error("No tourism data found. Place turizem_mesecno.csv in the data directory.")
    st.stop()

with st.sidebar:
    st.markdown("### Municipalities")
    selected = st.multiselect("Selected municipalities", options=list(store.regions), default=session.state.selected_regions)
    sync_regions(session, selected)

    st.markdown("### Indicator")
    if store.countries:
        idx = store.countries.index(session.state.active_country) if session.state.active_country in store.countries else 0
        country = st.selectbox("Country of origin", options=list(store.countries), index=idx)
        if country != session.state.active_country:
            session.set_country(country)

    st.markdown("### Layers")
    for layer, label in LAYER_LABELS.items():
        enabled = st.checkbox(label, value=session.state.layer_enabled(layer), key=f"layer_{layer.value}")
        if enabled != session.state.layer_enabled(layer):
            session.set_layer_enabled(layer, enabled)

    if session.state.layer_enabled(Layer.WEATHER):
        st.markdown("### Weather station")
        options = [NO_STATION] + list(store.stations)
        active = session.state.active_station
        station = st.selectbox("Station", options=options, index=options.index(active) if active in options else 0)
        sync_station(session, station)
        attributes = session.attributes_available()
        if session.state.active_station and attributes:
            current = session.state.active_attribute if session.state.active_attribute in attributes else attributes[0]
            attribute = st.selectbox("Attribute", options=attributes, index=attributes.index(current))
            if attribute != session.state.active_attribute:
                session.set_attribute(attribute)
        elif session.state.active_station:
            st.info("No weather data available for this station.")

views = session.views
st.markdown(f"<div class='chip-row'>{legend_chips(views.tourism)}</div>", unsafe_allow_html=True)

chart = build_tourism_chart(
    views.tourism,
    views.domain,
    views.layers,
    title=views.title,
    weather=views.weather,
    weather_label=views.attribute,
)
if chart is None:
    st.info("Enable at least one layer to draw the chart.")
else:
    st.altair_chart(chart, use_container_width=True)

if views.domain:
    st.markdown("### Period summary")
    start, end = st.select_slider("Period", options=views.domain, value=(views.domain[0], views.domain[-1]))
    summary = session.range_summary(buckets_in_range(views.domain, start, end))
    if summary:
        cols = st.columns(min(len(summary), 4))
        for i, item in enumerate(summary):
            with cols[i % len(cols)]:
                st.markdown(f"**{item.label}**  \nPeriod: {item.start} - {item.end}")
                st.metric("Arrivals", f"{item.arrivals:,.0f}")
                st.metric("Overnights", f"{item.overnights:,.0f}")
                st.metric("Avg stay", f"{item.average_stay:.2f} nights")
                if item.beds:
                    st.dataframe(
                        pd.DataFrame({"year": list(item.beds.keys()), "beds": list(item.beds.values())}),
                        hide_index=True,
                    )

if Layer.BEDS in views.layers:
    st.markdown("### Accommodation capacity")
    bed_chart = build_bed_chart(views.beds)
    if bed_chart is not None:
        st.altair_chart(bed_chart, use_container_width=True)

with st.expander("Data", expanded=False):
    export_df = groups_to_frame(views.tourism).drop(columns=["group_order", "color"], errors="ignore")
    st.dataframe(export_df, hide_index=True)
    st.download_button("Export CSV", data=export_df.to_csv(index=False).encode("utf-8"), file_name="tourism.csv", mime="text/csv")
    for message in session.diagnostics:
        st.caption(message)
