"""Shared fixtures: a small hierarchy, empty stores and the managers over them."""

import pytest

from indicator_stats.followups import FollowupManager
from indicator_stats.geography import InMemoryGeographicHierarchy
from indicator_stats.indicators import IndicatorManager
from indicator_stats.statistics import StatisticsEngine
from indicator_stats.store import FollowupStore, IndicatorStore

ENTITIES = [
    {"id": "X", "code": "PX", "name": "Province X", "level": "Province", "parent_id": None},
    {"id": "Y", "code": "PY", "name": "Province Y", "level": "Province", "parent_id": None},
    {"id": "D1", "code": "D1", "name": "Departement Un", "level": "Departement", "parent_id": "X"},
    {"id": "CM1", "code": "CM1", "name": "Commune Une", "level": "Commune", "parent_id": "D1"},
]


def indicator_fields(**kw):
    defaults = dict(
        code="IND-01",
        name="Taux de scolarisation",
        type="Indicateur d'impact socio-economique",
        programme="PRG-1",
        source=["SRC-1"],
    )
    defaults.update(kw)
    return defaults


def global_slice(**kw):
    raw = {"geo_location": {"type": "Global"}}
    raw.update(kw)
    return raw


def province_slice(entity_id="X", **kw):
    raw = {"geo_location": {"type": "Province", "reference_id": entity_id}}
    raw.update(kw)
    return raw


@pytest.fixture
def hierarchy():
    return InMemoryGeographicHierarchy.from_records(ENTITIES)


@pytest.fixture
def indicator_store():
    return IndicatorStore()


@pytest.fixture
def followup_store():
    return FollowupStore()


@pytest.fixture
def indicators(indicator_store, followup_store, hierarchy):
    return IndicatorManager(indicator_store, followup_store, hierarchy)


@pytest.fixture
def followups(indicator_store, followup_store):
    return FollowupManager(indicator_store, followup_store)


@pytest.fixture
def engine(indicator_store, followup_store, hierarchy):
    return StatisticsEngine(indicator_store, followup_store, hierarchy)


@pytest.fixture
def scenario(indicators, followups):
    """Indicator with S0 (Global) and S1 (Province X) and three followups."""
    indicator = indicators.create_indicator(indicator_fields())
    indicators.append_data_slice(indicator.id, global_slice(ref_value=90, target_value=130))
    indicators.append_data_slice(indicator.id, province_slice("X"))
    followups.create_followup(indicator.id, 0, 2020, 100)
    followups.create_followup(indicator.id, 0, 2021, 110)
    followups.create_followup(indicator.id, 1, 2020, 40)
    return indicator
