from tourism.charts import build_charts, build_tourism_chart, y_upper_bound
from tourism.session import ExplorerSession
from tourism.state import Layer


def test_build_charts_default_layers(store):
    session = ExplorerSession(store)
    charts = build_charts(session.views)
    assert set(charts) == {"tourism"}
    assert charts["tourism"]["title"] == "All Municipalities (total)"


def test_bed_chart_only_when_enabled(store):
    session = ExplorerSession(store)
    session.set_layer_enabled(Layer.BEDS, True)
    assert "beds" in build_charts(session.views)


def test_no_tourism_chart_without_metric_layers(store):
    session = ExplorerSession(store)
    session.set_layer_enabled(Layer.ARRIVALS, False)
    session.set_layer_enabled(Layer.OVERNIGHTS, False)
    views = session.views
    assert build_tourism_chart(views.tourism, views.domain, views.layers) is None


def test_y_upper_bound_has_headroom(store):
    session = ExplorerSession(store)
    assert y_upper_bound(session.views.tourism) == 25 * 1.1
