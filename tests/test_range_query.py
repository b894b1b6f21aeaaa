import pytest

from tourism.aggregation import derive_bed_series, derive_tourism_series
from tourism.range_query import buckets_in_range, summarize_range
from tourism.state import InteractionState


def _state(regions=()):
    state = InteractionState(active_country="X")
    for name in regions:
        state.toggle_region(name)
    return state


def test_empty_range_returns_none(store):
    groups = derive_tourism_series(store, _state())
    assert summarize_range([], groups) is None


def test_full_range_matches_series_totals(store):
    state = _state(regions=["A", "B"])
    groups = derive_tourism_series(store, state)
    domain = list(groups[0].points["bucket"])
    summary = summarize_range(domain, groups, derive_bed_series(store, state))
    assert [s.label for s in summary] == ["A", "B"]
    for item, group in zip(summary, groups):
        assert item.arrivals == group.points["arrivals"].sum()
        assert item.overnights == group.points["overnights"].sum()


def test_average_stay_is_sum_then_divide(store):
    groups = derive_tourism_series(store, _state())
    (item,) = summarize_range(["2021M02", "2021M03"], groups)
    assert item.arrivals == 14
    assert item.overnights == 36
    assert item.average_stay == pytest.approx(36 / 14)
    assert item.start == "2021M02"
    assert item.end == "2021M03"


def test_zero_arrivals_range(store):
    groups = derive_tourism_series(store, _state(regions=["B"]))
    (item,) = summarize_range(["2021M02"], groups)
    assert item.arrivals == 0
    assert item.average_stay == 0


def test_beds_restricted_to_spanned_years(store):
    state = _state(regions=["A"])
    (item,) = summarize_range(["2021M02"], derive_tourism_series(store, state), derive_bed_series(store, state))
    assert item.beds == {2021: 50.0}


def test_beds_missing_group_is_zero(store):
    (item,) = summarize_range(["2021M02"], derive_tourism_series(store, _state()))
    assert item.beds == {2021: 0.0}


def test_buckets_in_range():
    domain = ["2021M02", "2021M03", "2021M04", "2021M05"]
    assert buckets_in_range(domain, "2021M04", "2021M03") == ["2021M03", "2021M04"]
    assert buckets_in_range(domain, None, "2021M03") == []
    assert buckets_in_range([], "2021M02", "2021M03") == []


def test_describe_formats_summary(store):
    (item,) = summarize_range(["2021M02"], derive_tourism_series(store, _state()))
    text = item.describe()
    assert "Period: 2021M02 - 2021M02" in text
    assert "Avg stay: 2.50 nights" in text


def test_buckets_in_range_normalizes_edges():
    domain = ["2021M02", "2021M03", "2021M04"]
    assert buckets_in_range(domain, "2021-02", "2021-03") == ["2021M02", "2021M03"]
    assert buckets_in_range(domain, "2021-03-15", "2021m04") == ["2021M03", "2021M04"]
    assert buckets_in_range(domain, "spring", "2021M03") == []


def test_unordered_buckets_report_chronological_period(store):
    (item,) = summarize_range(["2021M03", "2021M02"], derive_tourism_series(store, _state()))
    assert item.start == "2021M02"
    assert item.end == "2021M03"
