"""
Indicator, data slice, followup and geographic entity records.

Plain dataclasses; validation lives in ``validation`` so that records loaded
from storage are never re-checked against today's year window.

A followup points at its data slice through ``slice_id``. The slice position
(``data_index``) is what callers see, and it is always derived from the
current order of ``Indicator.data``.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .config import (
    AgeRange,
    Gender,
    GeoLevel,
    IndicatorType,
    Polarity,
    ResidentialArea,
    SocialCategory,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class GeoEntity:
    id: str
    code: str
    name: str
    level: GeoLevel
    parent_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "level": self.level.value,
            "parent_id": self.parent_id,
        }


@dataclass(frozen=True)
class GeoLocation:
    type: GeoLevel
    reference_id: str | None = None


@dataclass
class DataSlice:
    geo_location: GeoLocation
    age_range: AgeRange | None = None
    gender: Gender | None = None
    residential_area: ResidentialArea | None = None
    social_category: SocialCategory | None = None
    ref_year: int | None = None
    ref_value: float | None = None
    target_year: int | None = None
    target_value: float | None = None
    slice_id: str = field(default_factory=new_id)

    def dimension_key(self) -> tuple:
        """Geography and demographic breakdown, without reference/target values."""
        return (
            self.geo_location.type,
            self.geo_location.reference_id,
            self.age_range,
            self.gender,
            self.residential_area,
            self.social_category,
        )

    def to_dict(self) -> dict:
        return {
            "slice_id": self.slice_id,
            "geo_location": {
                "type": self.geo_location.type.value,
                "reference_id": self.geo_location.reference_id,
            },
            "age_range": _value(self.age_range),
            "gender": _value(self.gender),
            "residential_area": _value(self.residential_area),
            "social_category": _value(self.social_category),
            "ref_year": self.ref_year,
            "ref_value": self.ref_value,
            "target_year": self.target_year,
            "target_value": self.target_value,
        }


@dataclass
class Indicator:
    code: str
    name: str
    type: IndicatorType
    programme: str
    source: list[str]
    polarity_direction: Polarity = Polarity.POSITIVE
    unite_de_mesure: str | None = None
    meta_data: str | None = None
    data: list[DataSlice] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    version: int = 1
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def position_of(self, slice_id: str) -> int | None:
        for position, data_slice in enumerate(self.data):
            if data_slice.slice_id == slice_id:
                return position
        return None

    def touch(self) -> None:
        self.version += 1
        self.updated_at = utcnow()

    def summary(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "type": self.type.value,
            "programme": self.programme,
            "unite_de_mesure": self.unite_de_mesure,
            "polarity_direction": self.polarity_direction.value,
        }

    def to_dict(self) -> dict:
        record = self.summary()
        record.update({
            "source": list(self.source),
            "meta_data": self.meta_data,
            "data": [s.to_dict() for s in self.data],
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        })
        return record


@dataclass
class Followup:
    indicator_id: str
    slice_id: str
    year: int
    value: float
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


def _value(member):
    return member.value if member is not None else None
