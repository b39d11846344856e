"""
Configuration: closed enumerations, geographic level ordering, policy flags,
file paths and constants.

Every value set used by validation and by the aggregation engine is defined
here exactly once. Labels are the ones stored and displayed by the national
reporting tools, so they stay in French.
"""

from enum import Enum
from pathlib import Path

# ---------------------------------------------------------------------------
# File paths: adjust these if reference files move
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent

GEO_HIERARCHY_FILE = DATA_DIR / "decoupage_administratif.xlsx"


# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------
class GeoLevel(Enum):
    GLOBAL = "Global"
    PROVINCE = "Province"
    DEPARTEMENT = "Departement"
    SOUS_PREFECTURE = "Sous-prefecture"
    CANTON = "Canton"
    COMMUNE = "Commune"
    VILLAGE = "Village"


# Allowed parent level(s) for each administrative level.
# Province > Departement > {Sous-prefecture > Canton, or Commune} > Village
GEO_PARENT_LEVELS: dict[GeoLevel, tuple[GeoLevel, ...]] = {
    GeoLevel.PROVINCE: (),
    GeoLevel.DEPARTEMENT: (GeoLevel.PROVINCE,),
    GeoLevel.SOUS_PREFECTURE: (GeoLevel.DEPARTEMENT,),
    GeoLevel.CANTON: (GeoLevel.SOUS_PREFECTURE,),
    GeoLevel.COMMUNE: (GeoLevel.DEPARTEMENT,),
    GeoLevel.VILLAGE: (GeoLevel.CANTON, GeoLevel.COMMUNE),
}

NATIONAL_ENTITY = {
    "id": None,
    "name": "National",
    "code": "NAT",
    "type": GeoLevel.GLOBAL.value,
}


# ---------------------------------------------------------------------------
# Demographic dimensions
# ---------------------------------------------------------------------------
class AgeRange(Enum):
    A0_4 = "0-4"
    A5_9 = "5-9"
    A10_14 = "10-14"
    A15_19 = "15-19"
    A20_24 = "20-24"
    A25_29 = "25-29"
    A30_34 = "30-34"
    A35_39 = "35-39"
    A40_44 = "40-44"
    A45_49 = "45-49"
    A50_54 = "50-54"
    A55_59 = "55-59"
    A60_64 = "60-64"
    A65_PLUS = "65+"
    A0_14 = "0-14"
    A15_49 = "15-49"
    A15_64 = "15-64"
    A18_PLUS = "18+"
    A25_64 = "25-64"
    ALL = "Tout"


class Gender(Enum):
    MALE = "Homme"
    FEMALE = "Femme"
    ALL = "Tout"


class ResidentialArea(Enum):
    URBAN = "Urbain"
    RURAL = "Rural"
    ALL = "Tout"


class SocialCategory(Enum):
    SENIOR_EXECUTIVE = "Cadre supérieur"
    MIDDLE_MANAGER = "Cadre moyen/agent de maîtrise"
    EMPLOYEE = "Employé/Ouvrier"
    LABOURER = "Manoeuvre"
    SELF_EMPLOYED = "Travailleur indépendant"
    EMPLOYER = "Patron"
    FAMILY_WORKER = "Aide familial/Apprenti"
    ALL = "Tout"


# Labels meaning "no breakdown"; left out of chart dataset labels
ALL_VALUE_LABELS = {"tout", "tous", "tous les âges"}


# ---------------------------------------------------------------------------
# Indicator registry
# ---------------------------------------------------------------------------
class IndicatorType(Enum):
    SOCIO_ECONOMIC_IMPACT = "Indicateur d'impact socio-economique"
    PROGRAMME_RESULT = "Indicateur de resultat de programme"


class Polarity(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


# direction: which way of moving counts as an improvement
POLARITY_REGISTRY: dict[Polarity, dict] = {
    Polarity.POSITIVE: {"direction": "higher_is_better", "label": "Polarité positive"},
    Polarity.NEGATIVE: {"direction": "lower_is_better", "label": "Polarité négative"},
}


# ---------------------------------------------------------------------------
# Validation bounds and policies
# ---------------------------------------------------------------------------
YEAR_MIN = 1900
# Upper bound is the current year plus this many years
YEAR_MAX_AHEAD = 50

# Two slices of one indicator may share geo/age/gender/area/category
ALLOW_DUPLICATE_SLICES = True

# At most one followup per (indicator, slice, year)
UNIQUE_FOLLOWUP_PER_YEAR = True


# ---------------------------------------------------------------------------
# Output constants
# ---------------------------------------------------------------------------
ROUND_DIGITS = 2

CHART_COLORS = [
    "#3B82F6",
    "#EF4444",
    "#10B981",
    "#F59E0B",
    "#8B5CF6",
    "#F97316",
    "#06B6D4",
    "#84CC16",
]
