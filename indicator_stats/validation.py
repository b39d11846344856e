"""
Field-level validation for indicators, data slices and followups.

Every function either returns the normalised value or raises
``ValidationError`` naming the field at fault. Nothing here writes.
"""

import math
from datetime import date
from enum import Enum
from typing import Any

from .config import (
    YEAR_MAX_AHEAD,
    YEAR_MIN,
    AgeRange,
    Gender,
    GeoLevel,
    IndicatorType,
    Polarity,
    ResidentialArea,
    SocialCategory,
)
from .exceptions import ValidationError
from .geography import GeographicHierarchy
from .models import DataSlice, GeoLocation

_SLICE_ENUMS = {
    "age_range": AgeRange,
    "gender": Gender,
    "residential_area": ResidentialArea,
    "social_category": SocialCategory,
}


def max_year() -> int:
    return date.today().year + YEAR_MAX_AHEAD


def coerce_enum(enum_cls: type[Enum], value: Any, field: str, required: bool = False):
    """Return the ``enum_cls`` member for ``value`` (member or stored label)."""
    if value is None or value == "":
        if required:
            raise ValidationError(field, "is required")
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(repr(m.value) for m in enum_cls)
        raise ValidationError(field, f"invalid value {value!r}; expected one of {allowed}") from None


def validate_number(value: Any, field: str, required: bool = False) -> float | None:
    """Return ``value`` as a finite float, or None when absent."""
    if value is None:
        if required:
            raise ValidationError(field, "is required")
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(field, f"must be a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValidationError(field, f"must be a finite number, got {value!r}")
    return number


def validate_year(value: Any, field: str, required: bool = False) -> int | None:
    if value is None:
        if required:
            raise ValidationError(field, "is required")
        return None
    number = validate_number(value, field)
    if not number.is_integer():
        raise ValidationError(field, f"must be a whole year, got {value!r}")
    year = int(number)
    upper = max_year()
    if year < YEAR_MIN or year > upper:
        raise ValidationError(field, f"must be between {YEAR_MIN} and {upper}")
    return year


def _required_text(fields: dict, name: str) -> str:
    value = fields.get(name)
    if value is None or not str(value).strip():
        raise ValidationError(name, "is required")
    return str(value).strip()


def _optional_ref(fields: dict, name: str) -> str | None:
    value = fields.get(name)
    if value is None or value == "":
        return None
    return str(value)


def validate_indicator_fields(fields: dict, partial: bool = False) -> dict:
    """Validate indicator attributes (everything except ``data``).

    Parameters
    ----------
    fields : Raw attribute mapping as received from the caller.
    partial : When True only the keys present in ``fields`` are checked,
              for updates.

    Returns
    -------
    Normalised mapping ready to be set on an ``Indicator``.
    """
    if "data" in fields:
        raise ValidationError("data", "data slices are managed through the slice operations")

    clean: dict = {}

    def wanted(name: str) -> bool:
        return not partial or name in fields

    for name in ("code", "name", "programme"):
        if wanted(name):
            clean[name] = _required_text(fields, name)

    if wanted("type"):
        clean["type"] = coerce_enum(IndicatorType, fields.get("type"), "type", required=True)

    if wanted("polarity_direction"):
        polarity = coerce_enum(Polarity, fields.get("polarity_direction"), "polarity_direction")
        clean["polarity_direction"] = polarity or Polarity.POSITIVE

    if wanted("source"):
        source = fields.get("source")
        if isinstance(source, str):
            source = [source]
        if source is not None and not isinstance(source, (list, tuple, set)):
            raise ValidationError("source", "must be a list of source ids")
        source = [str(s).strip() for s in source or () if s is not None and str(s).strip()]
        if not source:
            raise ValidationError("source", "at least one source is required")
        clean["source"] = source

    for name in ("unite_de_mesure", "meta_data"):
        if name in fields:
            clean[name] = _optional_ref(fields, name)

    return clean


def validate_geo_location(raw: Any, hierarchy: GeographicHierarchy) -> GeoLocation:
    """Check the level and, below Global, that the referenced entity exists."""
    if isinstance(raw, GeoLocation):
        level, reference_id = raw.type, raw.reference_id
    elif isinstance(raw, dict):
        level, reference_id = raw.get("type"), raw.get("reference_id")
    else:
        raise ValidationError("geo_location", "is required")

    level = coerce_enum(GeoLevel, level, "geo_location.type", required=True)

    if level == GeoLevel.GLOBAL:
        return GeoLocation(type=level, reference_id=None)

    if reference_id is None or reference_id == "":
        raise ValidationError(
            "geo_location.reference_id", f"is required for level {level.value}"
        )
    reference_id = str(reference_id)
    if hierarchy.lookup_entity(level, reference_id) is None:
        raise ValidationError(
            "geo_location.reference_id",
            f"unknown {level.value} entity {reference_id!r}",
        )
    return GeoLocation(type=level, reference_id=reference_id)


def validate_slice(raw: Any, hierarchy: GeographicHierarchy) -> DataSlice:
    """Build a validated ``DataSlice`` from a mapping or an existing slice.

    The returned slice always carries a fresh ``slice_id``; callers that edit
    a slice in place copy the old identity over.
    """
    if isinstance(raw, DataSlice):
        raw = raw.to_dict()
    if not isinstance(raw, dict):
        raise ValidationError("data", "a data slice must be a mapping")

    geo_location = validate_geo_location(raw.get("geo_location"), hierarchy)
    dims = {
        name: coerce_enum(enum_cls, raw.get(name), name)
        for name, enum_cls in _SLICE_ENUMS.items()
    }

    return DataSlice(
        geo_location=geo_location,
        ref_year=validate_year(raw.get("ref_year"), "ref_year"),
        ref_value=validate_number(raw.get("ref_value"), "ref_value"),
        target_year=validate_year(raw.get("target_year"), "target_year"),
        target_value=validate_number(raw.get("target_value"), "target_value"),
        **dims,
    )
