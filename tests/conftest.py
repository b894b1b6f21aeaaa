import pandas as pd
import pytest

from tourism.data import build_store


@pytest.fixture
def tourism_raw() -> pd.DataFrame:
    return pd.DataFrame(
        [
            ["A", "2021M01", 100, 100, 1, 1],
            ["A", "2021M02", 10, 20, 2, 6],
            ["B", "2021M02", 0, 5, 0, 0],
            ["A", "2021M03", 4, 8, 1, 2],
            ["B", "2021M03", "bad", 3, 3, 3],
        ],
        columns=[
            "Municipality",
            "Month",
            "X (Arrivals)",
            "X (Overnight stays)",
            "Y (Arrivals)",
            "Y (Overnight stays)",
        ],
    )


@pytest.fixture
def beds_raw() -> pd.DataFrame:
    return pd.DataFrame(
        [
            ["A", 2021, 50],
            ["A", 2022, 55],
            ["B", 2021, 30],
            ["C", 2021, 10],
        ],
        columns=["Municipality", "Year", "Beds"],
    )


@pytest.fixture
def store(tourism_raw, beds_raw):
    return build_store(tourism_raw, beds_raw, stations=["S1", "S2"])


@pytest.fixture
def observations() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "date": ["2021-02-01", "2021-02-15", "2021-03-01", "2021-03-15"],
            "bucket": ["2021M02", "2021M02", "2021M03", "2021M03"],
            "station": ["Bilje", "Bilje", "Bilje", "Bilje"],
            "temp": [4.0, 6.0, "n/a", 10.0],
            "rain": [1.5, 0.0, 2.0, 3.0],
        }
    )
