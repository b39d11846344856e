"""
Simulated data generator for the indicator statistics engine.

Generates a small administrative hierarchy, a handful of indicators with
national and provincial breakdowns, and yearly followups drifting from each
slice's reference value toward its target. All values are synthetic.
"""

import numpy as np
import pandas as pd

from .config import Gender, GeoLevel, IndicatorType, Polarity
from .followups import FollowupManager
from .geography import ENTITY_COLUMNS, InMemoryGeographicHierarchy
from .indicators import IndicatorManager
from .store import FollowupStore, IndicatorStore

# Seed for reproducibility
_RNG = np.random.default_rng(42)

# ---------------------------------------------------------------------------
# Synthetic administrative divisions
# ---------------------------------------------------------------------------
# (id, code, name, level, parent_id)
_ENTITIES = [
    ("P01", "P01", "Chari-Baguirmi", GeoLevel.PROVINCE, None),
    ("P02", "P02", "Logone Occidental", GeoLevel.PROVINCE, None),
    ("P03", "P03", "Ouaddaï", GeoLevel.PROVINCE, None),
    ("D011", "D011", "Baguirmi", GeoLevel.DEPARTEMENT, "P01"),
    ("D012", "D012", "Loug-Chari", GeoLevel.DEPARTEMENT, "P01"),
    ("D021", "D021", "Lac Wey", GeoLevel.DEPARTEMENT, "P02"),
    ("D031", "D031", "Ouara", GeoLevel.DEPARTEMENT, "P03"),
    ("SP0111", "SP0111", "Massenya", GeoLevel.SOUS_PREFECTURE, "D011"),
    ("C01111", "C01111", "Massenya rural", GeoLevel.CANTON, "SP0111"),
    ("CM0211", "CM0211", "Moundou", GeoLevel.COMMUNE, "D021"),
    ("CM0311", "CM0311", "Abéché", GeoLevel.COMMUNE, "D031"),
    ("V021101", "V021101", "Doher", GeoLevel.VILLAGE, "CM0211"),
]

# ---------------------------------------------------------------------------
# Synthetic indicators
# ---------------------------------------------------------------------------
_INDICATORS = [
    {
        "code": "EDU-01",
        "name": "Taux d'alphabétisation des adultes",
        "type": IndicatorType.SOCIO_ECONOMIC_IMPACT,
        "polarity_direction": Polarity.POSITIVE,
        "programme": "PRG-EDU",
        "source": ["SRC-ENQ-MENAGES"],
        "unite_de_mesure": "%",
        "ref": 22.0,
        "target": 45.0,
        "std": 1.2,
    },
    {
        "code": "SAN-04",
        "name": "Taux de mortalité infanto-juvénile",
        "type": IndicatorType.SOCIO_ECONOMIC_IMPACT,
        "polarity_direction": Polarity.NEGATIVE,
        "programme": "PRG-SANTE",
        "source": ["SRC-EDS"],
        "unite_de_mesure": "‰",
        "ref": 190.0,
        "target": 110.0,
        "std": 6.0,
    },
    {
        "code": "EAU-02",
        "name": "Proportion de ménages ayant accès à l'eau potable",
        "type": IndicatorType.PROGRAMME_RESULT,
        "polarity_direction": Polarity.POSITIVE,
        "programme": "PRG-HYD",
        "source": ["SRC-MIN-HYD", "SRC-ENQ-MENAGES"],
        "unite_de_mesure": "%",
        "ref": 48.0,
        "target": 75.0,
        "std": 2.0,
    },
]

_PROVINCES = ["P01", "P02", "P03"]


def generate_geo_entities() -> pd.DataFrame:
    """Return the synthetic entity table (id, code, name, level, parent_id)."""
    rows = [
        {
            "id": entity_id,
            "code": code,
            "name": name,
            "level": level.value,
            "parent_id": parent_id,
        }
        for entity_id, code, name, level, parent_id in _ENTITIES
    ]
    return pd.DataFrame(rows, columns=ENTITY_COLUMNS)


def generate_followup_values(
    ref_value: float,
    target_value: float,
    n_years: int,
    std: float,
    bias: float = 1.0,
) -> list[float]:
    """Yearly values drifting from ref_value toward target_value with noise.

    ``bias`` scales the distance covered (below 1 the slice lags behind).
    """
    steps = np.linspace(0.0, 1.0, n_years + 1)[1:]
    values = ref_value + (target_value - ref_value) * steps * bias
    values = values + _RNG.normal(0, std, size=n_years)
    return [round(float(v), 2) for v in values]


def build_demo_dataset(
    start_year: int = 2015,
    n_years: int = 8,
) -> tuple[IndicatorManager, FollowupManager, InMemoryGeographicHierarchy]:
    """Create stores, managers and a populated set of indicators.

    Each indicator gets one national slice, one slice per province, and a
    female-only national slice; every slice gets ``n_years`` followups from
    ``start_year + 1`` on. Reference year is ``start_year``, target year
    ``start_year + 15``.
    """
    hierarchy = InMemoryGeographicHierarchy(generate_geo_entities())
    indicator_store = IndicatorStore()
    followup_store = FollowupStore()
    indicators = IndicatorManager(indicator_store, followup_store, hierarchy)
    followups = FollowupManager(indicator_store, followup_store)

    years = list(range(start_year + 1, start_year + 1 + n_years))

    for params in _INDICATORS:
        fields = {k: v for k, v in params.items() if k not in ("ref", "target", "std")}
        indicator = indicators.create_indicator(fields)

        slices = [{"geo_location": {"type": GeoLevel.GLOBAL}, "gender": Gender.ALL}]
        slices += [
            {"geo_location": {"type": GeoLevel.PROVINCE, "reference_id": pid}}
            for pid in _PROVINCES
        ]
        slices.append({"geo_location": {"type": GeoLevel.GLOBAL}, "gender": Gender.FEMALE})

        for raw in slices:
            spread = _RNG.uniform(0.9, 1.1)
            raw.update({
                "ref_year": start_year,
                "ref_value": round(params["ref"] * spread, 2),
                "target_year": start_year + 15,
                "target_value": params["target"],
            })
            position = indicators.append_data_slice(indicator.id, raw)

            values = generate_followup_values(
                raw["ref_value"],
                params["target"],
                n_years,
                params["std"],
                bias=_RNG.uniform(0.3, 0.8),
            )
            for year, value in zip(years, values):
                followups.create_followup(indicator.id, position, year, value)

    return indicators, followups, hierarchy
