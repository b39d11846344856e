"""Tests for indicator_stats.transforms."""

import pandas as pd

from indicator_stats.config import GeoLevel, IndicatorType
from indicator_stats.models import DataSlice, Followup, GeoLocation, Indicator
from indicator_stats.transforms import (
    DIM_COLUMNS,
    FACT_COLUMNS,
    build_dim_slice,
    build_fact_followup,
    frame_to_records,
    join_observations,
    pivot_chart_series,
    summarise_by_year,
)


def _indicator(n_slices=2):
    indicator = Indicator(
        code="T-1",
        name="Test",
        type=IndicatorType.PROGRAMME_RESULT,
        programme="PRG",
        source=["SRC"],
    )
    indicator.data.append(DataSlice(GeoLocation(GeoLevel.GLOBAL), ref_year=2015, ref_value=1.0))
    for _ in range(n_slices - 1):
        indicator.data.append(DataSlice(GeoLocation(GeoLevel.PROVINCE, "X")))
    return indicator


def _followup(indicator, position, year, value):
    return Followup(indicator.id, indicator.data[position].slice_id, year, value)


class TestDimSlice:
    def test_one_row_per_slice(self):
        dim = build_dim_slice(_indicator(3))
        assert list(dim.columns) == DIM_COLUMNS
        assert list(dim["data_index"]) == [0, 1, 2]
        assert list(dim["geo_type"]) == ["Global", "Province", "Province"]
        assert dim.loc[0, "ref_year"] == 2015
        assert pd.isna(dim.loc[1, "ref_year"])

    def test_no_slices(self):
        empty = Indicator(
            code="E", name="E", type=IndicatorType.PROGRAMME_RESULT, programme="P", source=["S"]
        )
        dim = build_dim_slice(empty)
        assert dim.empty
        assert list(dim.columns) == DIM_COLUMNS


class TestFactFollowup:
    def test_sorted_and_addressed(self):
        indicator = _indicator()
        fact = build_fact_followup(indicator, [
            _followup(indicator, 1, 2021, 3.0),
            _followup(indicator, 0, 2021, 2.0),
            _followup(indicator, 1, 2020, 1.0),
        ])
        assert list(fact.columns) == FACT_COLUMNS
        assert list(zip(fact["year"], fact["data_index"])) == [(2020, 1), (2021, 0), (2021, 1)]

    def test_orphans_dropped(self):
        indicator = _indicator()
        orphan = Followup(indicator.id, "gone", 2020, 9.0)
        fact = build_fact_followup(indicator, [orphan, _followup(indicator, 0, 2020, 1.0)])
        assert list(fact["value"]) == [1.0]

    def test_empty(self):
        fact = build_fact_followup(_indicator(), [])
        assert fact.empty
        assert list(fact.columns) == FACT_COLUMNS


class TestReshape:
    def test_join_and_pivot(self):
        indicator = _indicator()
        fact = build_fact_followup(indicator, [
            _followup(indicator, 0, 2020, 1.0),
            _followup(indicator, 1, 2021, 4.0),
        ])
        joined = join_observations(fact, build_dim_slice(indicator))
        assert list(joined["geo_type"]) == ["Global", "Province"]

        wide = pivot_chart_series(joined)
        assert list(wide.index) == [2020, 2021]
        assert list(wide.columns) == [0, 1]
        assert pd.isna(wide.loc[2021, 0])

    def test_join_empty(self):
        joined = join_observations(pd.DataFrame(columns=FACT_COLUMNS), build_dim_slice(_indicator()))
        assert joined.empty
        assert "ref_value" in joined.columns

    def test_summarise(self):
        fact = pd.DataFrame({"year": [2020, 2020, 2021], "value": [1.0, 2.0, 5.0]})
        summary = summarise_by_year(fact)
        assert summary.to_dict("list") == {
            "year": [2020, 2021],
            "value": [1.5, 5.0],
            "count": [2, 1],
        }

    def test_records_use_none(self):
        df = pd.DataFrame({"a": [1.0, float("nan")], "b": ["x", None]})
        assert frame_to_records(df) == [{"a": 1.0, "b": "x"}, {"a": None, "b": None}]
        assert frame_to_records(pd.DataFrame()) == []
