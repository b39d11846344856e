"""Tests for indicator_stats.simulator and the engine running over its dataset."""

from indicator_stats.config import Polarity
from indicator_stats.geography import InMemoryGeographicHierarchy
from indicator_stats.simulator import build_demo_dataset, generate_followup_values, generate_geo_entities
from indicator_stats.statistics import StatisticsEngine


def test_geo_entities_form_a_valid_hierarchy():
    hierarchy = InMemoryGeographicHierarchy(generate_geo_entities())
    assert len(hierarchy) == 12
    assert hierarchy.check_integrity() == []


def test_followup_values_length():
    values = generate_followup_values(10.0, 20.0, 5, std=0.0)
    assert values == [12.0, 14.0, 16.0, 18.0, 20.0]


def test_demo_dataset():
    indicators, followups, hierarchy = build_demo_dataset(start_year=2015, n_years=4)

    rows = indicators.list_indicators()
    assert len(rows) == 3
    assert all(len(i.data) == 5 for i in rows)
    assert len(followups.list_followups()) == 3 * 5 * 4

    mortality = indicators.list_indicators(search="SAN-04")[0]
    assert mortality.polarity_direction == Polarity.NEGATIVE

    engine = StatisticsEngine(indicators.indicators, indicators.followups, hierarchy)
    years = engine.get_available_years(mortality.id)
    assert years["years"] == [2016, 2017, 2018, 2019]

    chart = engine.get_filtered_chart_data(mortality.id, "Global")
    assert [d["label"] for d in chart["datasets"]] == ["National", "National (Femme)"]
