import pandas as pd
import pytest

from tourism.aggregation import (
    COMBINED_COLOR,
    COMBINED_LABEL,
    PALETTE,
    average_stay,
    derive_bed_series,
    derive_tourism_series,
    derive_weather_series,
    region_color,
)
from tourism.data import build_store
from tourism.state import InteractionState


def _state(country="X", regions=()):
    state = InteractionState(active_country=country)
    for name in regions:
        state.toggle_region(name)
    return state


def _point(group, bucket):
    row = group.points[group.points["bucket"] == bucket]
    assert len(row) == 1
    return row.iloc[0]


def test_combined_series_sums_then_divides(store):
    groups = derive_tourism_series(store, _state())
    assert len(groups) == 1
    combined = groups[0]
    assert combined.label == COMBINED_LABEL
    assert combined.color == COMBINED_COLOR
    point = _point(combined, "2021M02")
    assert point["arrivals"] == 10
    assert point["overnights"] == 25
    assert point["average_stay"] == pytest.approx(2.5)


def test_per_region_zero_arrivals_gives_zero_stay(store):
    (group,) = derive_tourism_series(store, _state(regions=["B"]))
    point = _point(group, "2021M02")
    assert point["arrivals"] == 0
    assert point["overnights"] == 5
    assert point["average_stay"] == 0


def test_baseline_bucket_dropped(store):
    for groups in (derive_tourism_series(store, _state()), derive_tourism_series(store, _state(regions=["A"]))):
        assert list(groups[0].points["bucket"]) == ["2021M02", "2021M03"]


def test_combined_is_grand_total_regardless_of_selection(store):
    combined = derive_tourism_series(store, _state())[0].points.set_index("bucket")
    per_region = derive_tourism_series(store, _state(regions=["A", "B"]))
    total = sum(g.points.set_index("bucket")[["arrivals", "overnights"]] for g in per_region)
    pd.testing.assert_frame_equal(combined[["arrivals", "overnights"]], total, check_names=False)


def test_malformed_value_is_skipped_not_fatal(store):
    (group,) = derive_tourism_series(store, _state(regions=["B"]))
    point = _point(group, "2021M03")
    assert point["arrivals"] == 0
    assert point["overnights"] == 3
    combined = derive_tourism_series(store, _state())[0]
    assert _point(combined, "2021M03")["arrivals"] == 4


def test_sparse_region_filled_with_zeros():
    raw = pd.DataFrame(
        [["A", "2021M01", 1, 1], ["A", "2021M02", 2, 2], ["A", "2021M03", 3, 3], ["B", "2021M03", 5, 10]],
        columns=["Municipality", "Month", "X (Arrivals)", "X (Overnight stays)"],
    )
    (group,) = derive_tourism_series(build_store(raw), _state(regions=["B"]))
    assert list(group.points["bucket"]) == ["2021M02", "2021M03"]
    assert list(group.points["arrivals"]) == [0, 5]
    assert list(group.points["average_stay"]) == [0, 2]


def test_region_matching_ignores_case_and_whitespace():
    raw = pd.DataFrame(
        [["ajdovščina", "2021M01", 1, 1], ["ajdovščina", "2021M02", 4, 10]],
        columns=["Municipality", "Month", "X (Arrivals)", "X (Overnight stays)"],
    )
    (group,) = derive_tourism_series(build_store(raw), _state(regions=["Ajdovščina "]))
    assert group.label == "Ajdovščina"
    assert _point(group, "2021M02")["arrivals"] == 4


def test_groups_follow_selection_order(store):
    groups = derive_tourism_series(store, _state(regions=["B", "A"]))
    assert [g.label for g in groups] == ["B", "A"]


def test_switching_country(store):
    (group,) = derive_tourism_series(store, _state(country="Y", regions=["A"]))
    point = _point(group, "2021M02")
    assert point["arrivals"] == 2
    assert point["average_stay"] == pytest.approx(3.0)


def test_unknown_country_gives_zero_series(store):
    (group,) = derive_tourism_series(store, _state(country="Nowhere"))
    assert group.points["arrivals"].eq(0).all()
    assert group.points["average_stay"].eq(0).all()


def test_average_stay_never_nan():
    out = average_stay(pd.Series([5.0, 0.0, 3.0]), pd.Series([0.0, 0.0, 2.0]))
    assert list(out) == [0.0, 0.0, 1.5]


def test_region_color_is_stable():
    assert region_color("vipava") == region_color("vipava")
    assert region_color("vipava") in PALETTE
    assert region_color(None) == COMBINED_COLOR


def test_bed_series_combined(store):
    (group,) = derive_bed_series(store, _state())
    assert list(group.points["year"]) == [2021, 2022]
    assert list(group.points["beds"]) == [90, 55]


def test_bed_series_missing_year_is_zero(store):
    groups = derive_bed_series(store, _state(regions=["C", "a"]))
    by_label = {g.label: g.points.set_index("year")["beds"] for g in groups}
    assert by_label["C"][2022] == 0
    assert by_label["C"][2021] == 10
    assert by_label["a"][2022] == 55


def test_weather_series_excludes_non_numeric(observations):
    series = derive_weather_series(observations, "temp")
    assert list(series["bucket"]) == ["2021M02", "2021M03"]
    assert list(series["value"]) == [5.0, 10.0]


def test_weather_series_empty_without_attribute(observations):
    assert derive_weather_series(observations, None).empty
    assert derive_weather_series(None, "temp").empty
    assert derive_weather_series(observations, "missing").empty
